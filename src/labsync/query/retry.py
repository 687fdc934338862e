"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Bounded retry with a per-attempt timeout for query fetches.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import Awaitable, Callable
from typing import TypeVar

from ..errors import FetchError

T = TypeVar("T")

logger = logging.getLogger("labsync.query.retry")


def classify_error(error: BaseException, *, attempts: int = 1) -> FetchError:
    """Wrap any failure as a ``FetchError``; timeouts are not a separate kind."""
    if isinstance(error, FetchError):
        error.attempts = attempts
        return error
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, socket.timeout)):
        return FetchError("Request timed out", attempts=attempts)
    message = str(error) or type(error).__name__
    return FetchError(message, attempts=attempts)


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    retries: int,
    timeout_s: float | None = None,
    backoff_s: float = 0.0,
    label: str = "",
) -> T:
    """
    Await ``fn()`` with up to `retries` extra attempts.

    Each attempt gets its own `timeout_s` budget (``None`` waits forever).

    Raises:
        FetchError: Wrapping the last failure once attempts run out.
    """
    last: BaseException | None = None
    for attempt in range(retries + 1):
        try:
            if timeout_s is None:
                return await fn()
            return await asyncio.wait_for(fn(), timeout=timeout_s)
        except Exception as error:
            last = error
            if attempt < retries:
                logger.debug(
                    "Fetch attempt %d/%d failed for %s: %s",
                    attempt + 1,
                    retries + 1,
                    label or "query",
                    error,
                )
                if backoff_s > 0:
                    await asyncio.sleep(backoff_s)
                continue
            wrapped = classify_error(error, attempts=attempt + 1)
            if wrapped is error:
                raise
            raise wrapped from error
    raise FetchError("Retry loop exhausted", attempts=retries + 1) from last
