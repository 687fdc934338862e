"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Realtime change bridge and transports.
"""

from .bridge import RealtimeBridge
from .memory import InMemoryChannel, InMemoryRealtimeTransport
from .types import (
    BridgeState,
    ChangeEventSpec,
    ChangeEventType,
    ChangeHandler,
    ChangePayload,
    ChannelStatus,
    RealtimeChannel,
    RealtimeTransport,
    StatusCallback,
)

__all__ = [
    "RealtimeBridge",
    "RealtimeTransport",
    "RealtimeChannel",
    "InMemoryRealtimeTransport",
    "InMemoryChannel",
    "BridgeState",
    "ChannelStatus",
    "ChangeEventSpec",
    "ChangeEventType",
    "ChangePayload",
    "ChangeHandler",
    "StatusCallback",
]
