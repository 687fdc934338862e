"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Factory helpers for selecting data store backends from settings.
"""

from __future__ import annotations

from ..errors import SettingsError
from ..settings import LabSyncSettings
from .memory import InMemoryDataStore
from .rest import RestDataStore
from .types import DataStore


def create_data_store_from_env(settings: LabSyncSettings | None = None) -> DataStore:
    """
    Create a data store backend from `LABSYNC_STORE_*` settings.

    Backends:
    - `inmemory` (default)
    - `rest` (requires `LABSYNC_STORE_URL` and `LABSYNC_STORE_API_KEY`)
    """
    settings = settings or LabSyncSettings.from_env()
    backend = settings.store_backend.strip().lower()

    if backend in ("mem", "memory", "inmemory", "in_memory"):
        return InMemoryDataStore()

    if backend in ("rest", "http"):
        if not settings.store_url or not settings.store_api_key:
            raise SettingsError(
                "REST data store requires LABSYNC_STORE_URL and LABSYNC_STORE_API_KEY"
            )
        return RestDataStore(
            settings.store_url,
            settings.store_api_key,
            timeout_s=settings.request_timeout_s,
        )

    raise SettingsError(f"Unknown LABSYNC_STORE_BACKEND: {backend}")
