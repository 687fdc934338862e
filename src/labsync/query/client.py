"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Query runner: binds observers to cache entries and drives fetch/refetch.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..cache import CacheEntry, QueryCache
from ..errors import FetchError
from ..keys import hash_key, normalize_key
from ..types import CacheKey, Clock, FetchFn, KeyLike
from .coalescing import InFlightFetches
from .observer import ChangeCallback, QueryObserver
from .options import QueryOptions
from .retry import call_with_retry

if TYPE_CHECKING:
    from ..messaging.bus import InvalidationBus
    from ..messaging.types import InvalidationEvent

logger = logging.getLogger("labsync.query")


class QueryClient:
    """
    Owns the query cache and every fetch issued against it.

    Must be used from inside a running event loop: mounting an observer may
    start a fetch task. At most one fetch per key is in flight at any time;
    an invalidation that lands while a fetch is running queues exactly one
    follow-up fetch once it settles.
    """

    def __init__(
        self,
        *,
        bus: "InvalidationBus | None" = None,
        cache: QueryCache | None = None,
        default_options: QueryOptions | None = None,
        clock: Clock = time.monotonic,
        gc_time_s: float = 300.0,
    ) -> None:
        self._clock = clock
        self._cache = cache or QueryCache(clock=clock, gc_time_s=gc_time_s)
        self._cache.set_refetch_handler(self._refetch_for_invalidation)
        self._defaults = default_options or QueryOptions()
        self._inflight = InFlightFetches()
        self._observers: dict[str, list[QueryObserver]] = {}
        self._rerun: set[str] = set()
        self._fetch_count = 0
        self._bus_unsubscribe: Callable[[], None] | None = None
        if bus is not None:
            self._bus_unsubscribe = bus.subscribe(self._on_invalidation)

    @property
    def cache(self) -> QueryCache:
        return self._cache

    @property
    def default_options(self) -> QueryOptions:
        return self._defaults

    @property
    def fetch_count(self) -> int:
        """Number of fetch tasks started (deduplicated attaches excluded)."""
        return self._fetch_count

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def use_query(
        self,
        key: KeyLike,
        fetch_fn: FetchFn,
        options: QueryOptions | None = None,
        *,
        on_change: ChangeCallback | None = None,
    ) -> QueryObserver:
        """
        Mount an observer for `key`.

        Serves cached data without a network call when the entry is fresh;
        otherwise starts (or joins) a fetch.
        """
        observer = QueryObserver(
            self,
            normalize_key(key),
            fetch_fn,
            options or self._defaults,
            on_change,
        )
        entry = self._cache.retain(observer.key)
        entry.stale_time_s = observer.options.stale_time_s
        self._observers.setdefault(observer.key_hash, []).append(observer)
        observer._mounted = True  # noqa: SLF001
        if observer.options.enabled:
            self.fetch(observer.key, fetch_fn, observer.options)
        return observer

    def detach(self, observer: QueryObserver) -> None:
        """Deregister `observer`; cached data is left in place."""
        if not observer.mounted:
            return
        observer._mounted = False  # noqa: SLF001
        observers = self._observers.get(observer.key_hash)
        if observers is not None:
            try:
                observers.remove(observer)
            except ValueError:
                pass
            if not observers:
                self._observers.pop(observer.key_hash, None)
        self._cache.release(observer.key)

    def observer_count(self, key: KeyLike | None = None) -> int:
        if key is None:
            return sum(len(items) for items in self._observers.values())
        return len(self._observers.get(hash_key(key), ()))

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def fetch(
        self,
        key: KeyLike,
        fetch_fn: FetchFn,
        options: QueryOptions | None = None,
        *,
        force: bool = False,
    ) -> asyncio.Task[Any] | None:
        """
        Start a fetch for `key` unless one is running or the entry is fresh.

        Returns the in-flight task (new or joined), or ``None`` when the
        cached entry was served as-is.
        """
        opts = options or self._defaults
        key_t = normalize_key(key)
        key_h = hash_key(key_t)

        existing = self._inflight.get(key_h)
        if existing is not None:
            return existing

        entry = self._cache.ensure(key_t)
        if not force and entry.is_fresh(self._clock()):
            return None

        self._cache.upsert(key_t, status="loading")
        task, _ = self._inflight.start(
            key_h, lambda: self._run_fetch(key_t, fetch_fn, opts)
        )
        self._fetch_count += 1
        self._notify(key_h)
        return task

    async def fetch_query(
        self,
        key: KeyLike,
        fetch_fn: FetchFn,
        options: QueryOptions | None = None,
    ) -> Any:
        """
        Return fresh data for `key`, fetching if needed.

        Raises:
            FetchError: If the fetch failed after retries.
        """
        task = self.fetch(key, fetch_fn, options)
        if task is not None:
            await task
        entry = self._cache.get(key)
        if entry is None:
            raise FetchError(f"Query {hash_key(key)} was evicted before it settled")
        if entry.status == "error" and entry.error is not None:
            raise entry.error
        return entry.data

    def pending(self, key: KeyLike) -> asyncio.Task[Any] | None:
        return self._inflight.get(hash_key(key))

    def is_fetching(self, key: KeyLike) -> bool:
        return self.pending(key) is not None

    async def _run_fetch(
        self,
        key: CacheKey,
        fetch_fn: FetchFn,
        options: QueryOptions,
    ) -> CacheEntry | None:
        key_h = hash_key(key)
        try:
            data = await call_with_retry(
                fetch_fn,
                retries=options.retry,
                timeout_s=options.timeout_s,
                backoff_s=options.retry_backoff_s,
                label=key_h,
            )
        except FetchError as error:
            logger.warning(
                "Query %s failed after %d attempt(s): %s", key_h, error.attempts, error
            )
            self._cache.upsert(key, status="error", error=error)
        except asyncio.CancelledError:
            entry = self._cache.ensure(key)
            self._cache.upsert(
                key,
                status="idle" if entry.data is None else "success",
                is_stale=True,
            )
            self._rerun.discard(key_h)
            raise
        else:
            self._cache.upsert(
                key,
                data=data,
                status="success",
                error=None,
                is_stale=key_h in self._rerun,
                fetched_at=self._clock(),
            )

        self._notify(key_h)
        if key_h in self._rerun:
            self._rerun.discard(key_h)
            asyncio.get_running_loop().call_soon(self._refetch_for_invalidation, key)
        return self._cache.get(key)

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate(self, key_or_prefix: KeyLike) -> int:
        """Mark matching entries stale; returns how many matched."""
        return len(self._cache.invalidate(key_or_prefix))

    def _on_invalidation(self, event: "InvalidationEvent") -> None:
        for prefix in event.prefixes:
            self._cache.invalidate(prefix)

    def _refetch_for_invalidation(self, key: CacheKey) -> None:
        key_h = hash_key(key)
        observers = [o for o in self._observers.get(key_h, ()) if o.options.enabled]
        if not observers:
            return
        if self._inflight.get(key_h) is not None:
            self._rerun.add(key_h)
            return
        observer = observers[-1]
        self.fetch(key, observer.fetch_fn, observer.options, force=True)

    # ------------------------------------------------------------------
    # Direct cache access
    # ------------------------------------------------------------------

    def get_query_data(self, key: KeyLike) -> Any:
        entry = self._cache.get(key)
        return entry.data if entry is not None else None

    def set_query_data(self, key: KeyLike, updater: Any) -> Any:
        """
        Replace cached data for `key`.

        `updater` may be a value or a callable receiving the previous data.
        """
        previous = self.get_query_data(key)
        data = updater(previous) if callable(updater) else updater
        self._cache.upsert(
            key,
            data=data,
            status="success",
            error=None,
            is_stale=False,
            fetched_at=self._clock(),
        )
        self._notify(hash_key(key))
        return data

    def collect_garbage(self) -> int:
        return self._cache.collect_garbage()

    def _notify(self, key_h: str) -> None:
        for observer in list(self._observers.get(key_h, ())):
            observer.notify()

    def close(self) -> None:
        """Stop listening to the invalidation bus."""
        if self._bus_unsubscribe is not None:
            self._bus_unsubscribe()
            self._bus_unsubscribe = None
