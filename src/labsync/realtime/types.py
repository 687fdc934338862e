"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Realtime transport protocols and change payloads.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal, Protocol, runtime_checkable

from ..types import Row

ChannelStatus = Literal["SUBSCRIBED", "CHANNEL_ERROR", "TIMED_OUT", "CLOSED"]
ChangeEventType = Literal["INSERT", "UPDATE", "DELETE"]
BridgeState = Literal["disconnected", "connecting", "subscribed"]


@dataclass(frozen=True, slots=True)
class ChangeEventSpec:
    """Row-change filter for one channel binding (``event="*"`` matches all)."""

    table: str
    event: ChangeEventType | Literal["*"] = "*"
    schema: str = "public"

    def matches(self, payload: "ChangePayload") -> bool:
        if payload.table != self.table or payload.schema != self.schema:
            return False
        return self.event == "*" or self.event == payload.event_type


@dataclass(frozen=True, slots=True)
class ChangePayload:
    """One server-pushed row change."""

    table: str
    event_type: ChangeEventType
    schema: str = "public"
    new: Row = field(default_factory=dict)
    old: Row = field(default_factory=dict)
    commit_timestamp: str | None = None


ChangeHandler = Callable[[ChangePayload], None]
StatusCallback = Callable[[ChannelStatus], None]


@runtime_checkable
class RealtimeChannel(Protocol):
    """Channel surface of the hosted realtime client."""

    name: str

    def on(self, event_spec: ChangeEventSpec, handler: ChangeHandler) -> "RealtimeChannel": ...

    def subscribe(self, status_callback: StatusCallback | None = None) -> "RealtimeChannel": ...


@runtime_checkable
class RealtimeTransport(Protocol):
    """Client surface of the hosted realtime service."""

    def channel(self, name: str) -> RealtimeChannel: ...

    def remove_channel(self, channel: RealtimeChannel) -> None: ...
