"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Composition root wiring the portal's shared runtime objects.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from .datastore.factory import create_data_store_from_env
from .datastore.types import DataStore
from .messaging.bus import InvalidationBus
from .messaging.notifications import ToastNotifier
from .mutations.invalidator import MutationInvalidator
from .polling.registry import PollTimerRegistry, default_poll_configs
from .query.client import QueryClient
from .query.options import QueryOptions
from .realtime.memory import InMemoryRealtimeTransport
from .realtime.types import RealtimeTransport
from .settings import LabSyncSettings
from .types import Clock

logger = logging.getLogger("labsync.app")


@dataclass(slots=True)
class PortalRuntime:
    """
    Process-wide objects handed to every view by reference.

    Build with ``PortalRuntime.create()`` once at start; call ``close()``
    on shutdown.
    """

    settings: LabSyncSettings
    bus: InvalidationBus
    client: QueryClient
    notifier: ToastNotifier
    polls: PollTimerRegistry
    invalidator: MutationInvalidator
    store: DataStore
    transport: RealtimeTransport
    query_options: QueryOptions
    relay: Any = None
    _closed: bool = field(default=False, repr=False)

    @classmethod
    def create(
        cls,
        settings: LabSyncSettings | None = None,
        *,
        store: DataStore | None = None,
        transport: RealtimeTransport | None = None,
        notifier: ToastNotifier | None = None,
        clock: Clock = time.monotonic,
    ) -> "PortalRuntime":
        cfg = settings or LabSyncSettings.from_env()
        bus = InvalidationBus()
        options = QueryOptions.from_settings(cfg)
        client = QueryClient(
            bus=bus,
            default_options=options,
            clock=clock,
            gc_time_s=cfg.gc_time_s,
        )
        toasts = notifier or ToastNotifier()
        toasts.attach(bus)
        runtime = cls(
            settings=cfg,
            bus=bus,
            client=client,
            notifier=toasts,
            polls=PollTimerRegistry(bus, default_poll_configs(cfg)),
            invalidator=MutationInvalidator(bus),
            store=store if store is not None else create_data_store_from_env(cfg),
            transport=transport if transport is not None else InMemoryRealtimeTransport(),
            query_options=options,
        )
        logger.info(
            "Portal runtime created (store=%s, poll=%.1fs)",
            type(runtime.store).__name__,
            cfg.poll_interval_s,
        )
        return runtime

    async def start_relay(self, *, redis_client: Any | None = None) -> bool:
        """
        Start the cross-process Redis relay when one is configured.

        Returns whether a relay is running.
        """
        if self.relay is not None:
            return True
        from .messaging.redis_relay import create_invalidation_relay

        relay = create_invalidation_relay(self.bus, self.settings, redis_client=redis_client)
        if relay is None:
            return False
        await relay.start()
        self.relay = relay
        return True

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.polls.stop_all()
        if self.relay is not None:
            await self.relay.stop()
            self.relay = None
        self.notifier.detach()
        self.client.close()
        logger.info("Portal runtime closed")
