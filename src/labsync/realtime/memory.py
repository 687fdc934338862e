"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

In-memory realtime transport.
"""

from __future__ import annotations

import logging

from ..types import Row
from .types import (
    ChangeEventSpec,
    ChangeEventType,
    ChangeHandler,
    ChangePayload,
    ChannelStatus,
    StatusCallback,
)

logger = logging.getLogger("labsync.realtime.memory")


class InMemoryChannel:
    """Channel created by ``InMemoryRealtimeTransport``."""

    def __init__(self, transport: "InMemoryRealtimeTransport", name: str) -> None:
        self.name = name
        self._transport = transport
        self._bindings: list[tuple[ChangeEventSpec, ChangeHandler]] = []
        self._status_callback: StatusCallback | None = None
        self.subscribed = False
        self.removed = False

    def on(self, event_spec: ChangeEventSpec, handler: ChangeHandler) -> "InMemoryChannel":
        self._bindings.append((event_spec, handler))
        return self

    def subscribe(self, status_callback: StatusCallback | None = None) -> "InMemoryChannel":
        if self.removed:
            raise RuntimeError(f"Channel '{self.name}' was removed")
        self._status_callback = status_callback
        self.subscribed = True
        if self._transport.online:
            self.report("SUBSCRIBED")
        return self

    def report(self, status: ChannelStatus) -> None:
        if self._status_callback is not None:
            self._status_callback(status)

    def dispatch(self, payload: ChangePayload) -> int:
        delivered = 0
        for spec, handler in list(self._bindings):
            if spec.matches(payload):
                handler(payload)
                delivered += 1
        return delivered


class InMemoryRealtimeTransport:
    """
    Process-local realtime transport.

    Suitable for tests and local development: row changes are pushed with
    ``emit`` and connection loss is simulated with ``drop_connection``.
    """

    def __init__(self) -> None:
        self._channels: list[InMemoryChannel] = []
        self.online = True
        self.removed_count = 0

    def channel(self, name: str) -> InMemoryChannel:
        channel = InMemoryChannel(self, name)
        self._channels.append(channel)
        return channel

    def remove_channel(self, channel: InMemoryChannel) -> None:
        if channel.removed:
            raise RuntimeError(f"Channel '{channel.name}' was already removed")
        channel.removed = True
        channel.subscribed = False
        self.removed_count += 1
        if channel in self._channels:
            self._channels.remove(channel)
        channel.report("CLOSED")

    @property
    def active_channels(self) -> list[InMemoryChannel]:
        return [c for c in self._channels if c.subscribed and not c.removed]

    def emit(
        self,
        table: str,
        event_type: ChangeEventType,
        *,
        new: Row | None = None,
        old: Row | None = None,
        schema: str = "public",
    ) -> int:
        """Push one row change to every subscribed channel; returns deliveries."""
        if not self.online:
            return 0
        payload = ChangePayload(
            table=table,
            event_type=event_type,
            schema=schema,
            new=dict(new or {}),
            old=dict(old or {}),
        )
        delivered = 0
        for channel in self.active_channels:
            delivered += channel.dispatch(payload)
        logger.debug("Emitted %s on %s to %d binding(s)", event_type, table, delivered)
        return delivered

    def drop_connection(self, status: ChannelStatus = "CHANNEL_ERROR") -> None:
        self.online = False
        for channel in self.active_channels:
            channel.report(status)

    def restore_connection(self) -> None:
        self.online = True
        for channel in self.active_channels:
            channel.report("SUBSCRIBED")
