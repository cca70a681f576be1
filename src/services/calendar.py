"""Calendar and reminder service.

`CalendarService` is the interface the notepad commits events and reminders through;
`InMemoryCalendar` is the reference implementation used by the bot and the tests.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any, Protocol
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from src.notepad.errors import CollaboratorFailure

logger = logging.getLogger(__name__)

DEFAULT_EVENT_DURATION = timedelta(hours=1)


class CalendarError(CollaboratorFailure):
    """Base class for calendar failures."""


class CalendarPermissionError(CalendarError):
    """Access to the calendar was denied."""


class CalendarItemNotFound(CalendarError):
    """The referenced calendar item does not exist."""


class CalendarItemKind(StrEnum):
    event = "event"
    reminder = "reminder"


class CalendarItem(BaseModel):
    """An event or reminder stored by a calendar service."""

    model_config = ConfigDict(extra="forbid")

    item_id: str = Field(default_factory=lambda: uuid4().hex)
    kind: CalendarItemKind
    title: str
    start: datetime | None = None
    end: datetime | None = None
    notes: str | None = None
    location: str | None = None
    url: str | None = None


class CalendarService(Protocol):
    async def create_event(
            self,
            *,
            title: str,
            start: datetime,
            end: datetime | None = None,
            notes: str | None = None,
            location: str | None = None,
            url: str | None = None,
    ) -> str: ...

    async def create_reminder(
            self,
            *,
            title: str,
            due: datetime | None = None,
            notes: str | None = None,
            location: str | None = None,
            url: str | None = None,
    ) -> str: ...

    async def update(self, item_id: str, **changes: Any) -> CalendarItem: ...

    async def delete(self, item_id: str) -> None: ...


class InMemoryCalendar:
    """Process-local calendar; `granted=False` simulates a denied permission prompt."""

    def __init__(self, *, granted: bool = True) -> None:
        self.granted = granted
        self._items: dict[str, CalendarItem] = {}

    @property
    def items(self) -> list[CalendarItem]:
        return sorted(self._items.values(), key=lambda item: (item.start is None, item.start or datetime.min))

    def _require_access(self) -> None:
        if not self.granted:
            raise CalendarPermissionError("Calendar access denied")

    async def create_event(
            self,
            *,
            title: str,
            start: datetime,
            end: datetime | None = None,
            notes: str | None = None,
            location: str | None = None,
            url: str | None = None,
    ) -> str:
        self._require_access()
        item = CalendarItem(
            kind=CalendarItemKind.event,
            title=title,
            start=start,
            end=end or start + DEFAULT_EVENT_DURATION,
            notes=notes,
            location=location,
            url=url,
        )
        self._items[item.item_id] = item
        logger.info("calendar event created item_id=%s", item.item_id)
        return item.item_id

    async def create_reminder(
            self,
            *,
            title: str,
            due: datetime | None = None,
            notes: str | None = None,
            location: str | None = None,
            url: str | None = None,
    ) -> str:
        self._require_access()
        item = CalendarItem(
            kind=CalendarItemKind.reminder,
            title=title,
            start=due,
            notes=notes,
            location=location,
            url=url,
        )
        self._items[item.item_id] = item
        logger.info("reminder created item_id=%s", item.item_id)
        return item.item_id

    async def update(self, item_id: str, **changes: Any) -> CalendarItem:
        self._require_access()
        current = self._items.get(item_id)
        if current is None:
            raise CalendarItemNotFound(f"Calendar item not found: {item_id}")
        updated = CalendarItem.model_validate({**current.model_dump(), **changes, "item_id": item_id})
        self._items[item_id] = updated
        return updated

    async def delete(self, item_id: str) -> None:
        self._require_access()
        if self._items.pop(item_id, None) is None:
            raise CalendarItemNotFound(f"Calendar item not found: {item_id}")
