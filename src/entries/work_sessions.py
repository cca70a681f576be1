"""Work-session log: at most one open session at a time."""

from __future__ import annotations

import logging
from datetime import datetime

from src.intent.dates import format_minutes
from src.intent.schema import WorkSession
from src.notepad.errors import CollaboratorFailure

logger = logging.getLogger(__name__)


class WorkSessionError(CollaboratorFailure):
    """Raised when a session cannot be started or ended."""


class WorkSessionLog:
    """Start/end work sessions and keep the finished ones."""

    def __init__(self) -> None:
        self._active: WorkSession | None = None
        self._finished: list[WorkSession] = []

    @property
    def active(self) -> WorkSession | None:
        return self._active

    @property
    def finished(self) -> list[WorkSession]:
        return list(self._finished)

    def start(self, at: datetime, *, label: str | None = None, replace_active: bool = False) -> WorkSession:
        """Open a session.

        Raises:
            WorkSessionError: If a session is already open and `replace_active` is false.
        """

        if self._active is not None:
            if not replace_active:
                raise WorkSessionError("A work session is already active")
            self.end(at)
        self._active = WorkSession(start=at, label=label)
        logger.info("work session started")
        return self._active

    def end(self, at: datetime) -> WorkSession:
        """Close the open session.

        Raises:
            WorkSessionError: If no session is open or `at` precedes its start.
        """

        if self._active is None:
            raise WorkSessionError("No active work session")
        if at < self._active.start:
            raise WorkSessionError("Work session cannot end before it starts")
        finished = self._active.model_copy(update={"end": at})
        self._finished.append(finished)
        self._active = None
        logger.info("work session ended minutes=%d", finished.elapsed_minutes())
        return finished

    def elapsed(self, *, now: datetime | None = None) -> str | None:
        """Elapsed time of the open session ("1h 5m"), or `None` when idle."""

        if self._active is None:
            return None
        return format_minutes(self._active.elapsed_minutes(now))
