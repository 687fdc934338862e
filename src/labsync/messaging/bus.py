"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

In-process invalidation bus.
"""

from __future__ import annotations

import logging

from ..types import KeyLike
from .types import InvalidationEvent, InvalidationHandler, Unsubscribe

logger = logging.getLogger("labsync.messaging.bus")


class InvalidationBus:
    """
    Synchronous publish/subscribe channel for cache invalidation.

    Built once at process start and passed by reference to everything that
    publishes (mutation handlers, realtime bridges, poll timers) or listens
    (the query client, notification listeners). Delivery happens in
    registration order within the publishing call; a failing handler is
    logged and skipped so the rest still receive the event.
    """

    def __init__(self) -> None:
        self._handlers: list[InvalidationHandler] = []
        self._published = 0

    def subscribe(self, handler: InvalidationHandler) -> Unsubscribe:
        """
        Register `handler` and return an idempotent unsubscribe callable.
        """
        self._handlers.append(handler)
        removed = False

        def _unsubscribe() -> None:
            nonlocal removed
            if removed:
                return
            removed = True
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass

        return _unsubscribe

    def publish(self, event: InvalidationEvent) -> None:
        """Deliver `event` to every current handler. Never raises."""
        self._published += 1
        logger.debug(
            "Publishing %s from %r for %r",
            event.kind,
            event.source_label,
            event.prefixes,
        )
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "Invalidation handler %r failed for event %s",
                    handler,
                    event.id[:8],
                )

    def invalidate(self, *keys: KeyLike, source_label: str = "") -> InvalidationEvent:
        event = InvalidationEvent.invalidate(*keys, source_label=source_label)
        self.publish(event)
        return event

    def data_changed(self, *keys: KeyLike, source_label: str = "") -> InvalidationEvent:
        event = InvalidationEvent.data_changed(*keys, source_label=source_label)
        self.publish(event)
        return event

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    @property
    def published_count(self) -> int:
        return self._published
