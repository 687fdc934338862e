"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Poll timers providing a freshness floor.

Quick start::

    from labsync.messaging import InvalidationBus
    from labsync.polling import PollTimerRegistry, default_poll_configs

    bus = InvalidationBus()
    registry = PollTimerRegistry(bus, default_poll_configs())
    registry.acquire("operational")   # inside a running event loop
    ...
    registry.release("operational")
"""

from .registry import (
    CHART_ANIMATION,
    LAB_REPORTS_POLL,
    OPERATIONAL,
    PollTimerRegistry,
    default_poll_configs,
)
from .timer import PollConfig, PollTimer

__all__ = [
    "PollTimer",
    "PollConfig",
    "PollTimerRegistry",
    "default_poll_configs",
    "OPERATIONAL",
    "CHART_ANIMATION",
    "LAB_REPORTS_POLL",
]
