"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Per-plant quality charts comparing two stages of treatment.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from ..datasets import homepage_sewer_data, homepage_water_data
from ..datasets.models import parameter_value
from ..polling import CHART_ANIMATION
from .base import RenderCallback, View

if TYPE_CHECKING:
    from ..app import PortalRuntime

ChartKind = Literal["sewer", "water"]

# (label, column) pairs plotted for each chart kind.
SEWER_CHART_PARAMETERS: tuple[tuple[str, str], ...] = (
    ("TSS", "tss"),
    ("pH Value", "ph_value"),
    ("COD", "cod"),
    ("BOD", "bod"),
    ("Ammonical Nitrogen", "ammonical_nitrogen"),
)
WATER_CHART_PARAMETERS: tuple[tuple[str, str], ...] = (
    ("Turbidity", "turbidity"),
    ("pH Value", "ph_value"),
    ("Alkalinity", "alkalinity"),
    ("Chlorides", "chlorides"),
    ("Hardness", "hardness"),
)

_STAGES: dict[ChartKind, tuple[str, str]] = {
    "sewer": ("inlet_water", "outlet_water"),
    "water": ("raw_water", "clean_water"),
}


@dataclass(frozen=True, slots=True)
class ChartPoint:
    name: str
    before: float
    after: float


class QualityChartView(View):
    """
    Bar chart of the latest before/after readings for one plant.

    Re-animates on the chart timer; every tick refetches the source rows
    and re-renders.
    """

    name = "quality-chart"

    def __init__(
        self,
        runtime: "PortalRuntime",
        *,
        plant_id: str,
        kind: ChartKind = "sewer",
        on_render: RenderCallback | None = None,
    ) -> None:
        if kind not in _STAGES:
            raise ValueError(f"Unknown chart kind: {kind!r}")
        super().__init__(runtime, on_render=on_render)
        self.plant_id = plant_id
        self.kind = kind

    def setup(self) -> None:
        store = self.runtime.store
        query = homepage_sewer_data(store) if self.kind == "sewer" else homepage_water_data(store)
        self.use("rows", query)
        self.poll(CHART_ANIMATION)

    def _latest(self, water_type: str) -> Any:
        for row in self.data("rows", []):
            if row.plant_id == self.plant_id and row.water_type == water_type:
                return row
        return None

    def series(self) -> list[ChartPoint]:
        """Chart points; empty when the plant has no readings at either stage."""
        before_type, after_type = _STAGES[self.kind]
        before = self._latest(before_type)
        after = self._latest(after_type)
        if before is None and after is None:
            return []
        params = SEWER_CHART_PARAMETERS if self.kind == "sewer" else WATER_CHART_PARAMETERS
        return [
            ChartPoint(
                name=label,
                before=parameter_value(getattr(before, column, None)),
                after=parameter_value(getattr(after, column, None)),
            )
            for label, column in params
        ]
