"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Row models for the portal's tables.

Measurement columns are free-text in the store (lab staff enter values such
as ``"7.2"`` or ``"BDL"``), so they are kept as optional strings. Use
``parameter_value`` to read one as a number.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


def parameter_value(raw: Any) -> float:
    """Numeric reading of a free-text measurement; ``0.0`` when unparseable."""
    if raw is None or raw == "":
        return 0.0
    try:
        return float(str(raw).strip())
    except ValueError:
        return 0.0


class _Row(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    created_at: str | None = None
    updated_at: str | None = None


class TreatmentPlant(_Row):
    name: str
    location: str = ""
    capacity: str | None = None


class PlantRef(BaseModel):
    """Embedded plant columns returned alongside a quality row."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    name: str | None = None
    location: str | None = None
    capacity: str | None = None


class SewerQualityRecord(_Row):
    plant_id: str
    water_type: str
    ph_value: str | None = None
    bod: str | None = None
    cod: str | None = None
    tss: str | None = None
    total_nitrogen: str | None = None
    total_phosphorus: str | None = None
    ammonical_nitrogen: str | None = None
    fecal_coliform: str | None = None
    document_url: str | None = None
    user_id: str | None = None
    sewer_treatment_plants: PlantRef | None = None

    @property
    def plant_name(self) -> str:
        plant = self.sewer_treatment_plants
        return (plant.name or "") if plant is not None else ""


class WaterQualityRecord(_Row):
    plant_id: str
    water_type: str
    ph_value: str | None = None
    turbidity: str | None = None
    alkalinity: str | None = None
    chlorides: str | None = None
    hardness: str | None = None
    iron: str | None = None
    dissolved_oxygen: str | None = None
    document_url: str | None = None
    user_id: str | None = None
    water_treatment_plants: PlantRef | None = None

    @property
    def plant_name(self) -> str:
        plant = self.water_treatment_plants
        return (plant.name or "") if plant is not None else ""


class AmritYojnaRecord(_Row):
    customer_name: str
    connection_number: str
    ward_no: str
    mobile_no: str
    date: str
    ph_value: str | None = None
    tds: str | None = None
    color: str | None = None
    smell: str | None = None
    conductivity_cl: str | None = None
    signature: str | None = None
    document_url: str | None = None
    user_id: str | None = None


class LabTestRecord(_Row):
    sample_id: str
    sample_image_url: str = ""
    sample_type: str | None = None
    submitter_name: str
    submitter_email: str = ""
    submitter_mobile: str = ""
    submitter_address: str = ""
    ph: str | None = None
    tds: str | None = None
    turbidity: str | None = None
    chloride: str | None = None
    fluoride: str | None = None
    iron: str | None = None
    calcium: str | None = None
    magnesium: str | None = None
    sulphate: str | None = None
    total_alkalinity: str | None = None
    total_hardness: str | None = None
    free_residual_chlorine: str | None = None
    total_coliform: str | None = None
    e_coli: str | None = None
    notes: str | None = None
    user_id: str | None = None


class LicenseApplication(_Row):
    applicant_name: str
    email: str
    mobile_number: str
    shop_registration_number: str
    status: str
    tracking_number: str | None = None
    documents_url: list[str] | None = None
    user_id: str

    @property
    def is_approved(self) -> bool:
        return self.status.lower() == "approved"


class WaterSample(_Row):
    """Citizen-submitted water sample awaiting lab testing."""

    name: str
    mobile_number: str
    address: str
    source_of_sample: str
    sample_image_url: str = ""
    status: str = "pending"
    admin_notes: str | None = None
    user_id: str | None = None

    @property
    def is_treated(self) -> bool:
        return self.status == "treated"


class WaterTestReport(_Row):
    sample_id: str
    ph_level: float | None = None
    tds: float | None = None
    turbidity: float | None = None
    calcium_ca: float | None = None
    chloride_cl: float | None = None
    fluoride_f: float | None = None
    iron_fe: float | None = None
    magnesium_mg: float | None = None
    residual_chlorine: float | None = None
    sulphate_so4: float | None = None
    total_alkalinity: float | None = None
    total_hardness: float | None = None
    ecoli: str | None = None
    total_coliform: str | None = None
    additional_notes: str | None = None
