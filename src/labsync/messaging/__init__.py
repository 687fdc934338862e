"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Invalidation messaging package.

Provides the process-wide ``InvalidationBus``, the event envelope, a toast
notification listener and an optional Redis relay.

Quick start::

    from labsync.messaging import InvalidationBus, ToastNotifier

    bus = InvalidationBus()
    notifier = ToastNotifier()
    notifier.attach(bus)

    bus.data_changed(("sewerData",), source_label="sewer_quality_data")
    print(notifier.history[-1].title)  # "Sewer quality data updated"
"""

from .bus import InvalidationBus
from .notifications import (
    DATASET_LABELS,
    Notification,
    NotificationLevel,
    NotificationSink,
    ToastNotifier,
    dataset_label,
)
from .types import InvalidationEvent, InvalidationHandler, InvalidationKind, Unsubscribe

__all__ = [
    "InvalidationBus",
    "InvalidationEvent",
    "InvalidationHandler",
    "InvalidationKind",
    "Unsubscribe",
    "ToastNotifier",
    "Notification",
    "NotificationLevel",
    "NotificationSink",
    "DATASET_LABELS",
    "dataset_label",
]


# Lazy import for the Redis relay to avoid a hard dependency
def __getattr__(name: str):
    if name in ("RedisInvalidationRelay", "create_invalidation_relay"):
        from . import redis_relay

        return getattr(redis_relay, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
