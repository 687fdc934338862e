"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Mounted query subscription handed to views.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..cache.types import CacheEntry, QueryStatus
from ..keys import hash_key
from ..types import CacheKey, FetchFn
from .options import QueryOptions

if TYPE_CHECKING:
    from .client import QueryClient

logger = logging.getLogger("labsync.query")

ChangeCallback = Callable[["QueryObserver"], None]


class QueryObserver:
    """
    Binds one view to one cache entry for as long as the view is mounted.

    Reading ``data``/``status``/``error`` always reflects the shared cache
    entry. ``on_change`` is only invoked while mounted, so a fetch that
    settles after ``unmount()`` still lands in the cache but never reaches
    the departed view.
    """

    def __init__(
        self,
        client: "QueryClient",
        key: CacheKey,
        fetch_fn: FetchFn,
        options: QueryOptions,
        on_change: ChangeCallback | None = None,
    ) -> None:
        self._client = client
        self.key = key
        self.key_hash = hash_key(key)
        self.fetch_fn = fetch_fn
        self.options = options
        self._on_change = on_change
        self._mounted = False

    @property
    def entry(self) -> CacheEntry | None:
        return self._client.cache.get(self.key)

    @property
    def data(self) -> Any:
        entry = self.entry
        return entry.data if entry is not None else None

    @property
    def status(self) -> QueryStatus:
        entry = self.entry
        return entry.status if entry is not None else "idle"

    @property
    def error(self) -> BaseException | None:
        entry = self.entry
        return entry.error if entry is not None else None

    @property
    def is_stale(self) -> bool:
        entry = self.entry
        return entry.is_stale if entry is not None else True

    @property
    def fetched_at(self) -> float | None:
        entry = self.entry
        return entry.fetched_at if entry is not None else None

    @property
    def is_fetching(self) -> bool:
        return self._client.is_fetching(self.key)

    @property
    def mounted(self) -> bool:
        return self._mounted

    def refetch(self) -> asyncio.Task[Any] | None:
        """Force a fetch that ignores the freshness window."""
        return self._client.fetch(self.key, self.fetch_fn, self.options, force=True)

    async def wait(self) -> CacheEntry | None:
        """
        Wait until no fetch of this key is in flight.

        Yields once first so a refetch queued by an invalidation earlier in
        the current turn has started before checking.
        """
        while True:
            await asyncio.sleep(0)
            task = self._client.pending(self.key)
            if task is None:
                return self.entry
            await task

    def unmount(self) -> None:
        self._client.detach(self)

    def notify(self) -> None:
        if not self._mounted or self._on_change is None:
            return
        try:
            self._on_change(self)
        except Exception:  # noqa: BLE001
            logger.exception("on_change callback failed for %s", self.key_hash)

    def __repr__(self) -> str:
        return (
            f"QueryObserver(key={self.key!r}, status={self.status!r}, "
            f"mounted={self._mounted})"
        )
