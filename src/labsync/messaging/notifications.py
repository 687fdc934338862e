"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

User-facing notifications raised by data changes and mutations.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal

from .bus import InvalidationBus
from .types import InvalidationEvent, Unsubscribe

logger = logging.getLogger("labsync.messaging.notifications")

NotificationLevel = Literal["info", "success", "error"]

DATASET_LABELS: dict[str, str] = {
    "sewer_quality_data": "Sewer quality data",
    "water_quality_data": "Water quality data",
    "amrit_yojna_data": "Amrit Yojna data",
    "lab_tests": "Lab tests",
    "water_samples": "Water samples",
    "water_test_reports": "Water test reports",
    "license_applications": "License applications",
    "sewer_treatment_plants": "Sewer treatment plants",
    "water_treatment_plants": "Water treatment plants",
}


def dataset_label(source_label: str) -> str:
    """Human-readable name for a table or timer label."""
    if source_label in DATASET_LABELS:
        return DATASET_LABELS[source_label]
    return source_label.replace("_", " ").strip().capitalize() or "Data"


@dataclass(frozen=True, slots=True)
class Notification:
    """One transient toast."""

    level: NotificationLevel
    title: str
    message: str = ""
    source_label: str = ""
    timestamp: float = field(default_factory=time.time)


NotificationSink = Callable[[Notification], None]


class ToastNotifier:
    """
    Bus listener that turns ``notify_user`` events into notifications.

    Silent invalidations (poll ticks) are ignored. Views also call
    ``success``/``error`` directly for feedback scoped to the action the
    user just took.
    """

    def __init__(self, *, sink: NotificationSink | None = None, history: int = 50) -> None:
        self._sink = sink
        self._history: deque[Notification] = deque(maxlen=history)
        self._unsubscribe: Unsubscribe | None = None

    def attach(self, bus: InvalidationBus) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = bus.subscribe(self.handle)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def handle(self, event: InvalidationEvent) -> None:
        if not event.notify_user:
            return
        self.info(f"{dataset_label(event.source_label)} updated", source_label=event.source_label)

    def info(self, title: str, message: str = "", *, source_label: str = "") -> Notification:
        return self._emit(Notification("info", title, message, source_label))

    def success(self, title: str, message: str = "", *, source_label: str = "") -> Notification:
        return self._emit(Notification("success", title, message, source_label))

    def error(self, title: str, message: str = "", *, source_label: str = "") -> Notification:
        return self._emit(Notification("error", title, message, source_label))

    def _emit(self, notification: Notification) -> Notification:
        self._history.append(notification)
        log = logger.warning if notification.level == "error" else logger.info
        log("%s: %s", notification.level.upper(), notification.title)
        if self._sink is not None:
            try:
                self._sink(notification)
            except Exception:  # noqa: BLE001
                logger.exception("Notification sink failed")
        return notification

    @property
    def history(self) -> list[Notification]:
        return list(self._history)

    def clear(self) -> None:
        self._history.clear()
