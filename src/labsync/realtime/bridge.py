"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Bridge from server-pushed row changes to local invalidation events.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ..keys import normalize_key
from ..messaging.bus import InvalidationBus
from ..messaging.types import InvalidationEvent
from ..mutations.derived_keys import derived_keys_for
from ..types import CacheKey, KeyLike
from .types import (
    BridgeState,
    ChangeEventSpec,
    ChangePayload,
    ChannelStatus,
    RealtimeChannel,
    RealtimeTransport,
)

logger = logging.getLogger("labsync.realtime")


class RealtimeBridge:
    """
    Subscribes to row changes for one table and republishes them.

    State machine: ``disconnected -> connecting -> subscribed``; a channel
    error, timeout or close drops back to ``disconnected`` and the bridge
    stays quiet until the transport reports ``SUBSCRIBED`` again. Retry
    and backoff belong to the transport, not to the bridge.

    ``disconnect()`` removes the channel exactly once, no matter how many
    times it is called.
    """

    def __init__(
        self,
        transport: RealtimeTransport,
        bus: InvalidationBus,
        *,
        table: str,
        key_prefixes: Sequence[KeyLike] | None = None,
        schema: str = "public",
        channel_name: str | None = None,
    ) -> None:
        self._transport = transport
        self._bus = bus
        self._table = table
        self._schema = schema
        self._channel_name = channel_name or f"table-db-changes:{schema}:{table}"
        self._prefixes: tuple[CacheKey, ...] = (
            tuple(normalize_key(k) for k in key_prefixes)
            if key_prefixes
            else derived_keys_for(table)
        )
        self._channel: RealtimeChannel | None = None
        self._generation = 0
        self._state: BridgeState = "disconnected"
        self.events_received = 0

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def table(self) -> str:
        return self._table

    @property
    def is_connected(self) -> bool:
        return self._channel is not None

    def connect(self) -> None:
        """Open the channel. No-op while a channel is already held."""
        if self._channel is not None:
            return
        self._generation += 1
        generation = self._generation
        self._state = "connecting"
        channel = self._transport.channel(self._channel_name)
        self._channel = channel
        channel.on(
            ChangeEventSpec(table=self._table, event="*", schema=self._schema),
            lambda payload: self._on_change(generation, payload),
        )
        channel.subscribe(lambda status: self._on_status(generation, status))
        logger.info("Realtime bridge connecting (channel=%s)", self._channel_name)

    def disconnect(self) -> None:
        """Remove the channel if one is held."""
        channel = self._channel
        if channel is None:
            return
        self._channel = None
        self._generation += 1
        self._state = "disconnected"
        self._transport.remove_channel(channel)
        logger.info("Realtime bridge disconnected (channel=%s)", self._channel_name)

    def _on_status(self, generation: int, status: ChannelStatus) -> None:
        if generation != self._generation:
            return
        if status == "SUBSCRIBED":
            self._state = "subscribed"
            logger.debug("Realtime channel %s subscribed", self._channel_name)
        else:
            if self._state != "disconnected":
                logger.info(
                    "Realtime channel %s lost (%s); waiting for transport to resubscribe",
                    self._channel_name,
                    status,
                )
            self._state = "disconnected"

    def _on_change(self, generation: int, payload: ChangePayload) -> None:
        if generation != self._generation or self._state != "subscribed":
            return
        self.events_received += 1
        logger.debug("Realtime %s on %s", payload.event_type, payload.table)
        self._bus.publish(
            InvalidationEvent.data_changed(*self._prefixes, source_label=self._table)
        )
