"""Notepad error taxonomy.

Validation problems are not exceptions: they are carried as invalid slots. These exceptions cover
the cases that abort work on a line.
"""

from __future__ import annotations


class NotepadError(Exception):
    """Base class for notepad errors."""


class UnparseableInput(NotepadError):
    """No intent could be determined for a line."""


class InvalidSlot(NotepadError):
    """A line cannot be committed because one of its slots is invalid."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class CollaboratorFailure(NotepadError):
    """An external service (calendar, work-session log, model) failed."""


class StaleResult(NotepadError):
    """A parse finished for text that has since changed; its result is discarded."""
