"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: query/coalescing.py.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any


class InFlightFetches:
    """
    Deduplicate identical in-flight fetches.

    Registration is synchronous so two subscribers mounting with the same
    key in one turn share a single task.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[Any]] = {}

    def get(self, key_hash: str) -> asyncio.Task[Any] | None:
        task = self._tasks.get(key_hash)
        if task is not None and task.done():
            self._tasks.pop(key_hash, None)
            return None
        return task

    def start(
        self,
        key_hash: str,
        factory: Callable[[], Awaitable[Any]],
    ) -> tuple[asyncio.Task[Any], bool]:
        """Return the in-flight task for `key_hash`, creating it if needed."""
        existing = self.get(key_hash)
        if existing is not None:
            return existing, False

        task: asyncio.Task[Any] = asyncio.ensure_future(factory())
        self._tasks[key_hash] = task

        def _done(done: asyncio.Task[Any]) -> None:
            if self._tasks.get(key_hash) is done:
                self._tasks.pop(key_hash, None)

        task.add_done_callback(_done)
        return task, True

    def __contains__(self, key_hash: object) -> bool:
        return isinstance(key_hash, str) and self.get(key_hash) is not None

    def __len__(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())
