"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Reference-counted ownership of named poll timers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..keys import (
    ADMIN_AMRIT_DATA,
    ADMIN_SEWER_DATA,
    ADMIN_WATER_DATA,
    AMRIT_DATA,
    LAB_REPORTS,
    LAB_TESTS,
    LAB_TESTS_QUERY_KEY,
    LICENSE_APPLICATIONS,
    SEWER_DATA_QUERY_KEY,
    WATER_DATA,
    WATER_SAMPLES,
)
from ..messaging.bus import InvalidationBus
from ..settings import LabSyncSettings
from .timer import PollConfig, PollTimer

logger = logging.getLogger("labsync.polling")

OPERATIONAL = "operational"
CHART_ANIMATION = "chart-animation"
LAB_REPORTS_POLL = "lab-reports"


def default_poll_configs(settings: LabSyncSettings | None = None) -> dict[str, PollConfig]:
    """Build the portal's standard timers from settings."""
    cfg = settings or LabSyncSettings()
    return {
        OPERATIONAL: PollConfig.of(
            OPERATIONAL,
            [
                SEWER_DATA_QUERY_KEY,
                WATER_DATA,
                AMRIT_DATA,
                ADMIN_SEWER_DATA,
                ADMIN_WATER_DATA,
                ADMIN_AMRIT_DATA,
                LAB_TESTS,
                LAB_TESTS_QUERY_KEY,
                WATER_SAMPLES,
                LICENSE_APPLICATIONS,
            ],
            cfg.poll_interval_s,
        ),
        CHART_ANIMATION: PollConfig.of(
            CHART_ANIMATION,
            [SEWER_DATA_QUERY_KEY, WATER_DATA],
            cfg.chart_interval_s,
        ),
        LAB_REPORTS_POLL: PollConfig.of(
            LAB_REPORTS_POLL,
            [LAB_REPORTS],
            cfg.lab_reports_interval_s,
        ),
    }


@dataclass(slots=True)
class _Slot:
    timer: PollTimer
    refs: int


class PollTimerRegistry:
    """
    Owns at most one running ``PollTimer`` per configuration name.

    Views ``acquire`` on mount and ``release`` on unmount. The timer starts
    on the first acquire and stops when the last holder releases, so
    repeated mount/unmount cycles never leave overlapping timers behind.
    """

    def __init__(
        self,
        bus: InvalidationBus,
        configs: dict[str, PollConfig] | None = None,
    ) -> None:
        self._bus = bus
        self._configs = dict(configs or {})
        self._slots: dict[str, _Slot] = {}

    def config(self, name: str) -> PollConfig:
        try:
            return self._configs[name]
        except KeyError as exc:
            raise KeyError(f"Unknown poll configuration: {name}") from exc

    def register(self, config: PollConfig) -> None:
        self._configs[config.name] = config

    def acquire(self, config: PollConfig | str) -> PollTimer:
        """Take a reference on the named timer, starting it if needed."""
        if isinstance(config, str):
            config = self.config(config)
        else:
            self._configs.setdefault(config.name, config)

        slot = self._slots.get(config.name)
        if slot is not None:
            slot.refs += 1
            return slot.timer

        timer = PollTimer.from_config(self._bus, config)
        timer.start()
        self._slots[config.name] = _Slot(timer=timer, refs=1)
        return timer

    def release(self, name: str) -> None:
        """Drop a reference; the timer stops when none remain."""
        slot = self._slots.get(name)
        if slot is None:
            logger.debug("PollTimerRegistry.release for inactive timer %s", name)
            return
        slot.refs -= 1
        if slot.refs <= 0:
            del self._slots[name]
            slot.timer.stop()

    def refs(self, name: str) -> int:
        slot = self._slots.get(name)
        return 0 if slot is None else slot.refs

    def timer(self, name: str) -> PollTimer | None:
        slot = self._slots.get(name)
        return None if slot is None else slot.timer

    @property
    def active_count(self) -> int:
        """Number of running timers."""
        return sum(1 for slot in self._slots.values() if slot.timer.is_running)

    def stop_all(self) -> None:
        slots = list(self._slots.values())
        self._slots.clear()
        for slot in slots:
            slot.timer.stop()
