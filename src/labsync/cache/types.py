"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Cache entry model.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from ..types import CacheKey

QueryStatus = Literal["idle", "loading", "success", "error"]

PATCHABLE_FIELDS = frozenset(
    {"data", "status", "error", "fetched_at", "is_stale", "stale_time_s"}
)


@dataclass(slots=True)
class CacheEntry:
    """
    One cached query result.

    Attributes:
        key: Structural cache key.
        key_hash: Canonical serialized key used for lookups.
        data: Last successfully fetched data (kept across errors/refetches).
        status: Lifecycle status.
        error: Last fetch error when ``status == "error"``.
        fetched_at: Clock reading of the last successful fetch.
        is_stale: Set by invalidation, cleared by a successful fetch.
        stale_time_s: Freshness window for this entry.
        subscriber_count: Number of mounted observers.
        updated_at: Clock reading of the last patch.
        released_at: Clock reading of the last observer release.
    """

    key: CacheKey
    key_hash: str
    data: Any = None
    status: QueryStatus = "idle"
    error: BaseException | None = None
    fetched_at: float | None = None
    is_stale: bool = False
    stale_time_s: float = 0.0
    subscriber_count: int = 0
    updated_at: float | None = None
    released_at: float | None = None

    def is_fresh(self, now: float) -> bool:
        """Whether the entry can be served without a network call."""
        if self.status != "success" or self.is_stale or self.fetched_at is None:
            return False
        return now - self.fetched_at < self.stale_time_s
