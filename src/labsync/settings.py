"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Portal runtime settings and explicit environment loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import SettingsError


def _env_first(*names: str, default: str | None = None) -> str | None:
    """Return the first non-empty environment variable in `names`."""
    for name in names:
        raw = os.getenv(name)
        if raw is None:
            continue
        value = raw.strip()
        if value:
            return value
    return default


def _env_float(name: str, default: float) -> float:
    raw = _env_first(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise SettingsError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = _env_first(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise SettingsError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True, slots=True)
class LabSyncSettings:
    """
    Process-wide settings, loaded once at start and immutable afterwards.

    Attributes:
        store_url: Base URL of the hosted data store.
        store_api_key: Public (anon) API key for the hosted data store.
        store_backend: ``inmemory`` or ``rest``.
        stale_time_s: Default freshness window for queries.
        gc_time_s: How long an unobserved entry is kept before eviction.
        query_retry: Default retry count for failed fetches.
        request_timeout_s: Timeout for ordinary store requests.
        poll_interval_s: Operational poll timer interval.
        chart_interval_s: Chart re-animation poll timer interval.
        lab_reports_interval_s: Lab reports dashboard poll interval.
        redis_url: Optional Redis URL for cross-process invalidation relay.
        redis_channel: Pub/sub channel used by the relay.
    """

    store_url: str | None = None
    store_api_key: str | None = None
    store_backend: str = "inmemory"

    stale_time_s: float = 0.0
    gc_time_s: float = 300.0
    query_retry: int = 3
    request_timeout_s: float = 30.0

    poll_interval_s: float = 10.0
    chart_interval_s: float = 30.0
    lab_reports_interval_s: float = 9.0

    redis_url: str | None = None
    redis_channel: str = "labsync:invalidations"

    def __post_init__(self) -> None:
        if self.query_retry < 0:
            raise SettingsError("query_retry must be >= 0")
        for name in ("stale_time_s", "gc_time_s"):
            if getattr(self, name) < 0:
                raise SettingsError(f"{name} must be >= 0")
        for name in (
            "poll_interval_s",
            "chart_interval_s",
            "lab_reports_interval_s",
            "request_timeout_s",
        ):
            if getattr(self, name) <= 0:
                raise SettingsError(f"{name} must be > 0")

    @staticmethod
    def from_env() -> "LabSyncSettings":
        """Load settings from ``LABSYNC_*`` environment variables."""
        return LabSyncSettings(
            store_url=_env_first("LABSYNC_STORE_URL"),
            store_api_key=_env_first("LABSYNC_STORE_API_KEY"),
            store_backend=(
                _env_first("LABSYNC_STORE_BACKEND", default="inmemory") or "inmemory"
            ).lower(),
            stale_time_s=_env_float("LABSYNC_STALE_TIME_S", 0.0),
            gc_time_s=_env_float("LABSYNC_GC_TIME_S", 300.0),
            query_retry=_env_int("LABSYNC_QUERY_RETRY", 3),
            request_timeout_s=_env_float("LABSYNC_REQUEST_TIMEOUT_S", 30.0),
            poll_interval_s=_env_float("LABSYNC_POLL_INTERVAL_S", 10.0),
            chart_interval_s=_env_float("LABSYNC_CHART_INTERVAL_S", 30.0),
            lab_reports_interval_s=_env_float("LABSYNC_LAB_REPORTS_INTERVAL_S", 9.0),
            redis_url=_env_first("LABSYNC_REDIS_URL"),
            redis_channel=(
                _env_first("LABSYNC_REDIS_CHANNEL", default="labsync:invalidations")
                or "labsync:invalidations"
            ),
        )
