"""Event channel emitted by the notepad on every state transition.

Listeners are plain callables invoked synchronously on the event loop thread. A failing listener
is logged and never breaks the notepad.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

from src.intent.schema import LineStatus, SlotPrediction

logger = logging.getLogger(__name__)


class NotificationLevel(StrEnum):
    info = "info"
    success = "success"
    error = "error"


@dataclass(frozen=True)
class StatusChanged:
    line_id: str
    status: LineStatus


@dataclass(frozen=True)
class LineParsed:
    """Terminal outcome of one parse cycle (exactly one per settled edit)."""

    line_id: str
    status: LineStatus
    slots: tuple[SlotPrediction, ...] = field(default_factory=tuple)
    summary: str | None = None


@dataclass(frozen=True)
class Notification:
    """Dismissible user-facing message."""

    level: NotificationLevel
    title: str
    message: str
    line_id: str | None = None


NotepadEvent = StatusChanged | LineParsed | Notification
Listener = Callable[[NotepadEvent], None]


class EventChannel:
    """Fan-out of notepad events to subscribed listeners."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: NotepadEvent) -> None:
        for listener in list(self._listeners):
            # noinspection PyBroadException
            try:
                listener(event)
            except Exception:
                logger.exception("listener failed event=%s", type(event).__name__)
