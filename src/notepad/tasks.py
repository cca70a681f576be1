"""Per-line background task slots.

At most one parse task exists per line id. Replacing a slot cancels the previous task before the
new one is inserted, so a superseded parse can never commit.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine, Hashable
from typing import Any


class TaskSlots:
    """A map from key to its single in-flight asyncio task."""

    def __init__(self) -> None:
        self._tasks: dict[Hashable, asyncio.Task[Any]] = {}

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, key: object) -> bool:
        return key in self._tasks

    def get(self, key: Hashable) -> asyncio.Task[Any] | None:
        return self._tasks.get(key)

    def replace(self, key: Hashable, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Cancel the task under `key` (if any) and schedule `coro` in its place.

        Must be called from a running event loop.
        """

        self.cancel(key)
        task = asyncio.get_running_loop().create_task(coro, name=f"parse:{key}")
        self._tasks[key] = task
        task.add_done_callback(lambda done: self._discard(key, done))
        return task

    def _discard(self, key: Hashable, task: asyncio.Task[Any]) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

    def cancel(self, key: Hashable) -> bool:
        task = self._tasks.pop(key, None)
        if task is None:
            return False
        task.cancel()
        return True

    def cancel_all(self) -> None:
        for key in list(self._tasks):
            self.cancel(key)
