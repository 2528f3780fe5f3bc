"""Per-run memoization of asynchronous stack work."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, Generic, TypeVar

T = TypeVar("T")


class TaskCache(Generic[T]):
    """Lazily created, write-once tasks keyed by stack name.

    The first lookup of a key schedules ``factory(key)``; every later lookup
    returns the same task, so fan-in callers share one piece of work.
    """

    def __init__(self, factory: Callable[[str], Awaitable[T]]) -> None:
        self._factory = factory
        self._tasks: Dict[str, asyncio.Future[T]] = {}

    def get(self, key: str) -> asyncio.Future[T]:
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(self._factory(key))
            self._tasks[key] = task
        return task

    def __contains__(self, key: object) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)
