"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Fixed-interval poll timer publishing silent invalidations.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..keys import normalize_key
from ..messaging.bus import InvalidationBus
from ..messaging.types import InvalidationEvent
from ..types import CacheKey, KeyLike

logger = logging.getLogger("labsync.polling")


@dataclass(frozen=True, slots=True)
class PollConfig:
    """Named poll timer configuration."""

    name: str
    keys: tuple[CacheKey, ...]
    interval_s: float

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("PollConfig.name must be non-empty")
        if not self.keys:
            raise ValueError("PollConfig.keys must be non-empty")
        if self.interval_s <= 0:
            raise ValueError("PollConfig.interval_s must be > 0")

    @classmethod
    def of(cls, name: str, keys: Sequence[KeyLike], interval_s: float) -> "PollConfig":
        return cls(name=name, keys=tuple(normalize_key(k) for k in keys), interval_s=interval_s)


class PollTimer:
    """
    Repeating timer that republishes a fixed set of keys as ``invalidate``.

    Each tick is silent (``notify_user=False``). The loop runs as a single
    asyncio task; ``start()`` while running raises, ``stop()`` is a no-op
    when already stopped.
    """

    def __init__(
        self,
        bus: InvalidationBus,
        keys: Sequence[KeyLike],
        interval_s: float,
        *,
        name: str = "poll",
        source_label: str | None = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        if not keys:
            raise ValueError("keys must be non-empty")
        self._bus = bus
        self._keys = tuple(normalize_key(k) for k in keys)
        self._interval_s = interval_s
        self._name = name
        self._source_label = source_label or name
        self._task: asyncio.Task[None] | None = None
        self.ticks = 0

    @classmethod
    def from_config(cls, bus: InvalidationBus, config: PollConfig) -> "PollTimer":
        return cls(bus, config.keys, config.interval_s, name=config.name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def interval_s(self) -> float:
        return self._interval_s

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the tick loop on the running event loop."""
        if self.is_running:
            raise RuntimeError(f"PollTimer '{self._name}' is already running")
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._loop(), name=f"labsync-poll-{self._name}")
        logger.info("PollTimer started (name=%s, interval=%.1fs)", self._name, self._interval_s)

    def stop(self) -> None:
        """Cancel the tick loop."""
        task = self._task
        self._task = None
        if task is None:
            return
        if not task.done():
            task.cancel()
        logger.info("PollTimer stopped (name=%s, ticks=%d)", self._name, self.ticks)

    def tick(self) -> None:
        """Publish one silent invalidation for every configured key."""
        self.ticks += 1
        self._bus.publish(
            InvalidationEvent.invalidate(*self._keys, source_label=self._source_label)
        )

    async def _loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self._interval_s)
                self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                logger.exception("PollTimer tick failed (name=%s)", self._name)
