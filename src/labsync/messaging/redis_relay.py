"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Redis pub/sub relay that fans invalidations out across portal processes.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any

from ..settings import LabSyncSettings
from .bus import InvalidationBus
from .types import InvalidationEvent, Unsubscribe

logger = logging.getLogger("labsync.messaging.redis")


class RedisInvalidationRelay:
    """
    Mirror a local ``InvalidationBus`` onto a Redis pub/sub channel.

    Local events are published to Redis tagged with this relay's origin id;
    events received from Redis with a different origin are republished on
    the local bus. Remote events are never forwarded back out.

    Requires ``redis.asyncio`` (``pip install redis``).

    Args:
        bus: Local invalidation bus.
        redis: An ``redis.asyncio.Redis`` client instance.
        channel: Pub/sub channel name.
        origin: Stable id for this process; random when omitted.
        poll_timeout_s: How long one ``get_message`` call may block.
    """

    def __init__(
        self,
        bus: InvalidationBus,
        redis: Any,
        *,
        channel: str = "labsync:invalidations",
        origin: str | None = None,
        poll_timeout_s: float = 1.0,
    ) -> None:
        self._bus = bus
        self._redis = redis
        self._channel = channel
        self._origin = origin or uuid.uuid4().hex
        self._poll_timeout_s = poll_timeout_s
        self._pubsub: Any | None = None
        self._listener: asyncio.Task[None] | None = None
        self._unsubscribe: Unsubscribe | None = None
        self._outgoing: set[asyncio.Task[None]] = set()
        self._running = False

    @property
    def origin(self) -> str:
        return self._origin

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            raise RuntimeError("RedisInvalidationRelay is already running")
        self._pubsub = self._redis.pubsub()
        await self._pubsub.subscribe(self._channel)
        self._running = True
        self._unsubscribe = self._bus.subscribe(self._forward)
        self._listener = asyncio.create_task(self._listen())
        logger.info(
            "Invalidation relay started (channel=%s, origin=%s)",
            self._channel,
            self._origin[:8],
        )

    async def stop(self) -> None:
        self._running = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        if self._listener is not None and not self._listener.done():
            self._listener.cancel()
            await asyncio.gather(self._listener, return_exceptions=True)
        self._listener = None

        if self._outgoing:
            await asyncio.gather(*list(self._outgoing), return_exceptions=True)

        if self._pubsub is not None:
            try:
                await self._pubsub.unsubscribe(self._channel)
                await self._pubsub.aclose()
            except Exception:  # noqa: BLE001
                logger.exception("Failed to close Redis pubsub (channel=%s)", self._channel)
            self._pubsub = None
        logger.info("Invalidation relay stopped (origin=%s)", self._origin[:8])

    def _forward(self, event: InvalidationEvent) -> None:
        if event.origin is not None:
            return
        payload = event.to_wire()
        payload["origin"] = self._origin
        task = asyncio.get_running_loop().create_task(self._publish(json.dumps(payload)))
        self._outgoing.add(task)
        task.add_done_callback(self._outgoing.discard)

    async def _publish(self, raw: str) -> None:
        try:
            await self._redis.publish(self._channel, raw)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to publish invalidation to Redis (channel=%s)", self._channel)

    async def _listen(self) -> None:
        while self._running:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=self._poll_timeout_s,
                )
                if message is None:
                    continue
                self._deliver(message.get("data"))
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                logger.exception("Invalidation relay listener error")
                await asyncio.sleep(self._poll_timeout_s)

    def _deliver(self, raw: Any) -> None:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        if not isinstance(raw, str):
            return
        event = InvalidationEvent.from_wire(json.loads(raw))
        if event.origin == self._origin:
            return
        self._bus.publish(event)


def create_invalidation_relay(
    bus: InvalidationBus,
    settings: LabSyncSettings,
    *,
    redis_client: Any | None = None,
) -> RedisInvalidationRelay | None:
    """
    Build a relay from settings, or ``None`` when no Redis is configured.

    Uses the provided `redis_client` when supplied, otherwise builds one
    from ``settings.redis_url``.
    """
    client = redis_client
    if client is None:
        if not settings.redis_url:
            return None
        try:
            import redis.asyncio as redis
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "Invalidation relay requires `redis` to be installed."
            ) from exc
        client = redis.Redis.from_url(settings.redis_url)
    return RedisInvalidationRelay(bus, client, channel=settings.redis_channel)
