"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Publishes invalidations after a local write has succeeded.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Literal

from ..datastore.types import StoreResult
from ..errors import MutationError
from ..messaging.bus import InvalidationBus
from ..messaging.types import InvalidationEvent
from .derived_keys import derived_keys_for

logger = logging.getLogger("labsync.mutations")

MutationOperation = Literal["insert", "update", "delete"]
MUTATION_OPERATIONS: tuple[MutationOperation, ...] = ("insert", "update", "delete")


class MutationInvalidator:
    """
    Closes the gap between a local write and every view derived from it.

    Invalidation is published only after the store confirms the write;
    nothing is published speculatively.
    """

    def __init__(self, bus: InvalidationBus) -> None:
        self._bus = bus

    def after_mutation(self, table: str, operation: MutationOperation) -> InvalidationEvent:
        """Publish ``data-changed`` for every prefix derived from `table`."""
        if operation not in MUTATION_OPERATIONS:
            raise ValueError(f"Unknown mutation operation: {operation!r}")
        prefixes = derived_keys_for(table)
        event = InvalidationEvent.data_changed(*prefixes, source_label=table)
        logger.info(
            "%s on %s invalidates %d prefix(es)", operation, table, len(prefixes)
        )
        self._bus.publish(event)
        return event

    async def run(
        self,
        table: str,
        operation: MutationOperation,
        request: Callable[[], Awaitable[StoreResult]],
    ) -> StoreResult:
        """
        Await one store write and invalidate on success.

        Raises:
            UnknownTableError: If `table` has no derived keys (checked before
                the write is sent).
            MutationError: If the store reports an error or the request fails.
        """
        derived_keys_for(table)
        try:
            result = await request()
        except Exception as exc:
            raise MutationError(
                str(exc) or type(exc).__name__, table=table, operation=operation
            ) from exc
        if result.error is not None:
            logger.warning(
                "%s on %s failed: %s", operation, table, result.error.message
            )
            raise MutationError(
                result.error.message,
                table=table,
                operation=operation,
                code=result.error.code,
            )
        self.after_mutation(table, operation)
        return result
