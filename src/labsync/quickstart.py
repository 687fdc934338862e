"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Quickstart re-exports for common labsync usage.

Usage::

    from labsync.quickstart import PortalRuntime, HomeView, AdminSewerDataView

    runtime = PortalRuntime.create()
    home = HomeView(runtime)
    admin = AdminSewerDataView(runtime)
    home.mount()
    admin.mount()
    await admin.delete(record_id)   # home refetches through the bus
"""

from __future__ import annotations

from .app import PortalRuntime
from .datastore import InMemoryDataStore, RestDataStore
from .messaging import InvalidationBus, InvalidationEvent
from .query import QueryClient, QueryOptions
from .settings import LabSyncSettings
from .views import (
    AdminLabTestReportsView,
    AdminLabTestsView,
    AdminLicenseApplicationsView,
    AdminSewerDataView,
    AdminWaterSamplesView,
    HomeView,
    TrackingView,
)

__all__ = [
    "PortalRuntime",
    "LabSyncSettings",
    "InvalidationBus",
    "InvalidationEvent",
    "QueryClient",
    "QueryOptions",
    "InMemoryDataStore",
    "RestDataStore",
    "HomeView",
    "AdminSewerDataView",
    "AdminLabTestsView",
    "AdminLabTestReportsView",
    "AdminLicenseApplicationsView",
    "AdminWaterSamplesView",
    "TrackingView",
]
