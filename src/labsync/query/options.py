"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Per-query options.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from ..settings import LabSyncSettings


@dataclass(frozen=True, slots=True)
class QueryOptions:
    """
    Options recognized by ``QueryClient.use_query``.

    Attributes:
        stale_time_s: Freshness window; a successful entry younger than this
            is served from cache to new subscribers.
        enabled: When false the observer mounts without fetching.
        retry: Extra attempts after the first failed fetch.
        timeout_s: Per-attempt timeout; ``None`` disables it.
        retry_backoff_s: Fixed delay between attempts.
    """

    stale_time_s: float = 0.0
    enabled: bool = True
    retry: int = 3
    timeout_s: float | None = 30.0
    retry_backoff_s: float = 0.0

    def __post_init__(self) -> None:
        if self.retry < 0:
            raise ValueError("retry must be >= 0")
        if self.stale_time_s < 0:
            raise ValueError("stale_time_s must be >= 0")

    def merged(self, **overrides: Any) -> "QueryOptions":
        return replace(self, **overrides)

    @staticmethod
    def from_settings(settings: LabSyncSettings) -> "QueryOptions":
        return QueryOptions(
            stale_time_s=settings.stale_time_s,
            retry=settings.query_retry,
            timeout_s=settings.request_timeout_s,
        )
