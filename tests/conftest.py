"""Pytest configuration and shared fixtures.

The repository uses a flat `src/` layout without an installed package, so the repo root is put on
`sys.path` for `import src...` to work when running `pytest` locally.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from src.config.settings import Settings  # noqa: E402


@pytest.fixture
def instant_settings() -> Settings:
    """Settings with zero debounce delays, ignoring any local `.env`."""

    return Settings(_env_file=None, NOTEPAD_THROTTLE_S=0, NOTEPAD_SETTLE_S=0, LLM_ENABLED=False)
