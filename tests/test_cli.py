"""Tests for the notepad CLI helpers."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from src.app import create_app
from src.cli import _load_variables, _run
from src.config.settings import Settings


def test_load_variables(tmp_path: Path) -> None:
    path = tmp_path / "variables.json"
    path.write_text(json.dumps([{"name": "Pizza", "type": "meal", "calories": 800}]), encoding="utf-8")

    book = _load_variables(str(path))
    assert book.find("pizza") is not None
    assert len(_load_variables(None)) == 0


def test_load_variables_rejects_non_list(tmp_path: Path) -> None:
    path = tmp_path / "variables.json"
    path.write_text(json.dumps({"name": "pizza"}), encoding="utf-8")
    with pytest.raises(ValueError):
        _load_variables(str(path))


@pytest.mark.asyncio
async def test_run_prints_previews_and_commits(capsys: pytest.CaptureFixture[str], instant_settings: Settings) -> None:
    app = create_app(instant_settings)

    code = await _run(app.new_notepad(), ["Meeting tomorrow at 3pm", "lunch 12 euro"], commit=True)
    out = capsys.readouterr().out

    assert code == 0
    assert "[success] Meeting tomorrow at 3pm" in out
    assert "Event will be created on Tomorrow at 15:00 - Meeting" in out
    assert "- 12.00 EUR" in out
    assert "Processing Complete: Processed 2 item(s). All succeeded." in out


@pytest.mark.asyncio
async def test_run_exit_code_reflects_failures(capsys: pytest.CaptureFixture[str], instant_settings: Settings) -> None:
    app = create_app(instant_settings)
    code = await _run(app.new_notepad(), ["hello there"], commit=False)
    assert code == 1
    assert "[error] hello there" in capsys.readouterr().out
