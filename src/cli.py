"""Parse notepad lines from a text file (or stdin) and print their previews.

Each input line becomes a notepad line. Optional `--variables` points to a JSON file with a list
of variable objects (`{"name": "pizza", "type": "meal", "calories": 800}`). With `--commit` the
lines are committed after parsing and the commit report is printed.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from src.app import create_app
from src.config.logging import configure_logging
from src.config.settings import load_settings
from src.entries.variables import VariableBook
from src.intent.schema import LineStatus, Variable
from src.notepad.orchestrator import Notepad


def _load_variables(path: str | None) -> VariableBook:
    book = VariableBook()
    if not path:
        return book

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError("Unexpected variables format: expected a list of objects")
    for item in payload:
        book.add(Variable.model_validate(item))
    return book


async def _run(notepad: Notepad, texts: list[str], *, commit: bool) -> int:
    first = next(iter(notepad.lines))
    line_ids = notepad.split_line(first.line_id, "\n".join(texts))
    failed = 0
    for line_id in line_ids:
        line = notepad.lines.get(line_id)
        status = await notepad.settled(line_id)
        if line is None or not line.stripped:
            continue
        summary = notepad.summary_for(line_id)
        slots = notepad.results_for(line_id)
        print(f"[{status}] {line.text}")
        if summary:
            print(f"    {summary}")
        for slot in slots:
            marker = "" if slot.is_valid else f"  ({slot.error_message})"
            print(f"    {slot.field}: {slot.value}{marker}")
        failed += int(status != LineStatus.success)

    if commit:
        report = await notepad.commit_all()
        print(f"{report.title}: {report.message}")
        return int(report.failed > 0)
    return int(failed > 0)


def main() -> None:
    """CLI entry point for parsing notepad lines."""

    parser = argparse.ArgumentParser(description="Parse free-form notepad lines into structured entries.")
    parser.add_argument("path", nargs="?", help="Text file with one line per entry (default: stdin).")
    parser.add_argument("--variables", help="Path to a JSON file with saved variables.")
    parser.add_argument("--commit", action="store_true", help="Commit the lines after parsing.")
    args = parser.parse_args()

    load_dotenv(".env")
    settings = load_settings().model_copy(update={"throttle_s": 0.0, "settle_s": 0.0})
    configure_logging(settings.log_level)

    source = Path(args.path).read_text(encoding="utf-8") if args.path else sys.stdin.read()
    texts = [text for text in source.splitlines() if text.strip()]

    app = create_app(settings, variables=_load_variables(args.variables))
    sys.exit(asyncio.run(_run(app.new_notepad(), texts, commit=args.commit)))


if __name__ == "__main__":
    main()
