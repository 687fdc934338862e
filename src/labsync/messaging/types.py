"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Invalidation event envelope and handler types.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal

from ..keys import key_from_wire, key_to_wire, normalize_key
from ..types import CacheKey, KeyLike

# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

InvalidationKind = Literal["invalidate", "data-changed"]


@dataclass(frozen=True, slots=True)
class InvalidationEvent:
    """
    A transient request to mark cache entries stale.

    Attributes:
        prefixes: One or more cache keys or key prefixes to invalidate.
        kind: ``invalidate`` (silent) or ``data-changed`` (user-facing).
        notify_user: Whether a notification listener should surface it.
        source_label: Table or timer name that produced the event.
        id: Unique event identifier.
        timestamp: Unix timestamp when the event was created.
        origin: Identifier of the process that first published it.
    """

    prefixes: tuple[CacheKey, ...]
    kind: InvalidationKind = "invalidate"
    notify_user: bool = False
    source_label: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: float = field(default_factory=time.time)
    origin: str | None = None

    def __post_init__(self) -> None:
        if not self.prefixes:
            raise ValueError("InvalidationEvent needs at least one key or prefix")

    @property
    def key_or_prefix(self) -> CacheKey:
        return self.prefixes[0]

    @classmethod
    def invalidate(cls, *keys: KeyLike, source_label: str = "") -> "InvalidationEvent":
        """Silent invalidation, as published by poll timers."""
        return cls(
            prefixes=tuple(normalize_key(k) for k in keys),
            kind="invalidate",
            notify_user=False,
            source_label=source_label,
        )

    @classmethod
    def data_changed(
        cls,
        *keys: KeyLike,
        source_label: str = "",
        notify_user: bool = True,
    ) -> "InvalidationEvent":
        """Invalidation that should also surface a notification."""
        return cls(
            prefixes=tuple(normalize_key(k) for k in keys),
            kind="data-changed",
            notify_user=notify_user,
            source_label=source_label,
        )

    def to_wire(self) -> dict[str, Any]:
        return {
            "prefixes": [key_to_wire(p) for p in self.prefixes],
            "kind": self.kind,
            "notify_user": self.notify_user,
            "source_label": self.source_label,
            "id": self.id,
            "timestamp": self.timestamp,
            "origin": self.origin,
        }

    @classmethod
    def from_wire(cls, payload: dict[str, Any]) -> "InvalidationEvent":
        kind = payload.get("kind", "invalidate")
        if kind not in ("invalidate", "data-changed"):
            raise ValueError(f"Unknown invalidation kind: {kind!r}")
        return cls(
            prefixes=tuple(key_from_wire(p) for p in payload["prefixes"]),
            kind=kind,
            notify_user=bool(payload.get("notify_user", False)),
            source_label=str(payload.get("source_label", "")),
            id=str(payload.get("id") or uuid.uuid4().hex),
            timestamp=float(payload.get("timestamp") or time.time()),
            origin=payload.get("origin"),
        )


InvalidationHandler = Callable[[InvalidationEvent], None]
Unsubscribe = Callable[[], None]
