"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Public homepage.
"""

from __future__ import annotations

from ..datasets import (
    homepage_amrit_data,
    homepage_sewer_data,
    homepage_water_data,
    sewer_treatment_plants,
    water_treatment_plants,
)
from ..datasets.models import (
    AmritYojnaRecord,
    SewerQualityRecord,
    TreatmentPlant,
    WaterQualityRecord,
)
from ..polling import OPERATIONAL
from .base import View


class HomeView(View):
    """
    Public water, sewer and Amrit Yojna tables.

    Shares no parent with the admin screens; it stays current through the
    invalidation bus and the operational poll timer.
    """

    name = "home"

    def setup(self) -> None:
        store = self.runtime.store
        self.use("water_plants", water_treatment_plants(store))
        self.use("sewer_plants", sewer_treatment_plants(store))
        self.use("water", homepage_water_data(store))
        self.use("sewer", homepage_sewer_data(store))
        self.use("amrit", homepage_amrit_data(store))
        self.poll(OPERATIONAL)

    @property
    def water_plants(self) -> list[TreatmentPlant]:
        return self.data("water_plants", [])

    @property
    def sewer_plants(self) -> list[TreatmentPlant]:
        return self.data("sewer_plants", [])

    @property
    def water_data(self) -> list[WaterQualityRecord]:
        return self.data("water", [])

    @property
    def sewer_data(self) -> list[SewerQualityRecord]:
        return self.data("sewer", [])

    @property
    def amrit_data(self) -> list[AmritYojnaRecord]:
        return self.data("amrit", [])

    def water_rows(self, plant_id: str, water_type: str) -> list[WaterQualityRecord]:
        """Rows shown in one plant tab (``raw_water`` or ``clean_water``)."""
        return [
            r for r in self.water_data if r.plant_id == plant_id and r.water_type == water_type
        ]

    def sewer_rows(self, plant_id: str, water_type: str) -> list[SewerQualityRecord]:
        """Rows shown in one plant tab (``inlet_water`` or ``outlet_water``)."""
        return [
            r for r in self.sewer_data if r.plant_id == plant_id and r.water_type == water_type
        ]
