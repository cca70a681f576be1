"""Ordered line store."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from uuid import uuid4

from src.intent.schema import LineStatus


def new_line_id() -> str:
    return uuid4().hex


@dataclass
class Line:
    """One editable line of the notepad."""

    text: str = ""
    status: LineStatus = LineStatus.idle
    line_id: str = field(default_factory=new_line_id)

    @property
    def stripped(self) -> str:
        return self.text.strip()


class LineStore:
    """Lines in display order, addressable by id. Always holds at least one line."""

    def __init__(self) -> None:
        self._lines: list[Line] = [Line()]

    def __iter__(self) -> Iterator[Line]:
        return iter(list(self._lines))

    def __len__(self) -> int:
        return len(self._lines)

    def get(self, line_id: str) -> Line | None:
        for line in self._lines:
            if line.line_id == line_id:
                return line
        return None

    def index(self, line_id: str) -> int | None:
        for idx, line in enumerate(self._lines):
            if line.line_id == line_id:
                return idx
        return None

    def insert(self, text: str = "", *, after: str | None = None, line_id: str | None = None) -> Line:
        """Insert a line after `after` (or at the end)."""

        line = Line(text=text, line_id=line_id or new_line_id())
        position = self.index(after) if after is not None else None
        if position is None:
            self._lines.append(line)
        else:
            self._lines.insert(position + 1, line)
        return line

    def remove(self, line_id: str) -> Line | None:
        idx = self.index(line_id)
        if idx is None:
            return None
        removed = self._lines.pop(idx)
        if not self._lines:
            self._lines.append(Line())
        return removed

    def reset(self) -> Line:
        """Drop every line and start over with one empty line."""

        self._lines = [Line()]
        return self._lines[0]

    def non_empty(self) -> list[Line]:
        return [line for line in self._lines if line.stripped]
