"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Keyed store of query results with prefix invalidation and coalesced refetch.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterator
from typing import Any

from ..keys import hash_key, key_matches, normalize_key
from ..types import CacheKey, Clock, KeyLike
from .types import PATCHABLE_FIELDS, CacheEntry

logger = logging.getLogger("labsync.cache")

RefetchHandler = Callable[[CacheKey], None]


class QueryCache:
    """
    Process-local mapping from cache key to ``CacheEntry``.

    All mutation goes through ``upsert``/``invalidate``/``evict`` and each
    call completes within one event-loop turn. Invalidated keys that still
    have subscribers are collected into a pending map and drained by a
    single ``call_soon`` flush, so any number of invalidations published in
    the same turn produce one refetch per key.
    """

    def __init__(self, *, clock: Clock = time.monotonic, gc_time_s: float = 300.0) -> None:
        self._clock = clock
        self._gc_time_s = gc_time_s
        self._entries: dict[str, CacheEntry] = {}
        self._pending: dict[str, CacheKey] = {}
        self._flush_scheduled = False
        self._refetch_handler: RefetchHandler | None = None

    def set_refetch_handler(self, handler: RefetchHandler | None) -> None:
        """Register the callable invoked once per coalesced refetch."""
        self._refetch_handler = handler

    def get(self, key: KeyLike) -> CacheEntry | None:
        return self._entries.get(hash_key(key))

    def ensure(self, key: KeyLike, *, stale_time_s: float | None = None) -> CacheEntry:
        """Return the entry for `key`, creating an ``idle`` one if missing."""
        key_t = normalize_key(key)
        key_h = hash_key(key_t)
        entry = self._entries.get(key_h)
        if entry is None:
            entry = CacheEntry(key=key_t, key_hash=key_h, updated_at=self._clock())
            self._entries[key_h] = entry
        if stale_time_s is not None:
            entry.stale_time_s = stale_time_s
        return entry

    def upsert(self, key: KeyLike, **patch: Any) -> CacheEntry:
        """
        Merge partial state into the entry for `key`.

        Raises:
            TypeError: If a patch field is not a writable entry field.
        """
        unknown = set(patch) - PATCHABLE_FIELDS
        if unknown:
            raise TypeError(f"Unknown cache entry field(s): {', '.join(sorted(unknown))}")
        entry = self.ensure(key)
        for name, value in patch.items():
            setattr(entry, name, value)
        entry.updated_at = self._clock()
        return entry

    def retain(self, key: KeyLike) -> CacheEntry:
        entry = self.ensure(key)
        entry.subscriber_count += 1
        return entry

    def release(self, key: KeyLike) -> CacheEntry | None:
        entry = self.get(key)
        if entry is None:
            return None
        entry.subscriber_count = max(0, entry.subscriber_count - 1)
        if entry.subscriber_count == 0:
            entry.released_at = self._clock()
        return entry

    def invalidate(self, key_or_prefix: KeyLike) -> list[CacheEntry]:
        """
        Mark every entry equal to or prefixed by `key_or_prefix` stale.

        Never raises; an unknown key is a no-op that matches nothing.
        """
        try:
            matched = [
                entry
                for entry in self._entries.values()
                if key_matches(key_or_prefix, entry.key)
            ]
        except Exception:  # noqa: BLE001
            logger.exception("Ignoring invalidation for malformed key %r", key_or_prefix)
            return []

        for entry in matched:
            entry.is_stale = True
            if entry.subscriber_count > 0:
                self._pending[entry.key_hash] = entry.key
        if self._pending:
            self._schedule_flush()
        logger.debug(
            "Invalidated %d entr%s for %r",
            len(matched),
            "y" if len(matched) == 1 else "ies",
            key_or_prefix,
        )
        return matched

    def _schedule_flush(self) -> None:
        if self._flush_scheduled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Drained by the next flush_pending() call from inside a loop.
            return
        self._flush_scheduled = True
        loop.call_soon(self.flush_pending)

    @property
    def pending_refetch_count(self) -> int:
        return len(self._pending)

    def flush_pending(self) -> int:
        """Run one refetch per pending key and garbage-collect. Returns refetch count."""
        self._flush_scheduled = False
        pending = list(self._pending.values())
        self._pending.clear()
        refetched = 0
        for key in pending:
            entry = self.get(key)
            if entry is None or entry.subscriber_count == 0:
                continue
            if self._refetch_handler is None:
                continue
            try:
                self._refetch_handler(key)
                refetched += 1
            except Exception:  # noqa: BLE001
                logger.exception("Refetch handler failed for %r", key)
        self.collect_garbage()
        return refetched

    def is_evictable(self, entry: CacheEntry, now: float | None = None) -> bool:
        if entry.subscriber_count > 0 or entry.status == "loading":
            return False
        if entry.is_stale or entry.fetched_at is None:
            return True
        now = self._clock() if now is None else now
        since = max(entry.fetched_at, entry.released_at or entry.fetched_at)
        return now - since >= max(entry.stale_time_s, self._gc_time_s)

    def evict(self, key: KeyLike) -> bool:
        """Remove `key` if it has no subscribers and its window has elapsed."""
        entry = self.get(key)
        if entry is None or not self.is_evictable(entry):
            return False
        self._entries.pop(entry.key_hash, None)
        self._pending.pop(entry.key_hash, None)
        return True

    def collect_garbage(self) -> int:
        now = self._clock()
        doomed = [h for h, entry in self._entries.items() if self.is_evictable(entry, now)]
        for key_h in doomed:
            self._entries.pop(key_h, None)
            self._pending.pop(key_h, None)
        if doomed:
            logger.debug("Evicted %d unobserved cache entries", len(doomed))
        return len(doomed)

    def entries(self) -> list[CacheEntry]:
        return list(self._entries.values())

    def clear(self) -> None:
        self._entries.clear()
        self._pending.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CacheEntry]:
        return iter(list(self._entries.values()))

    def __contains__(self, key: object) -> bool:
        try:
            return hash_key(key) in self._entries  # type: ignore[arg-type]
        except TypeError:
            return False
