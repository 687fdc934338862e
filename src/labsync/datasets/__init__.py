"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Portal datasets: row models and cache-keyed query builders.
"""

from .models import (
    AmritYojnaRecord,
    LabTestRecord,
    LicenseApplication,
    PlantRef,
    SewerQualityRecord,
    TreatmentPlant,
    WaterQualityRecord,
    WaterSample,
    WaterTestReport,
    parameter_value,
)
from .queries import (
    ALL,
    EXCLUDED_PLANT_NAMES,
    DatasetQuery,
    DateRange,
    LabTestFilters,
    LabTestSorting,
    admin_amrit_data,
    admin_sewer_data,
    admin_water_data,
    homepage_amrit_data,
    homepage_sewer_data,
    homepage_water_data,
    lab_reports,
    lab_test_reports,
    lab_tests,
    license_applications,
    normalize_tracking_number,
    sewer_treatment_plants,
    track_application,
    water_samples,
    water_test_report,
    water_treatment_plants,
)

__all__ = [
    "ALL",
    "EXCLUDED_PLANT_NAMES",
    "DatasetQuery",
    "DateRange",
    "LabTestFilters",
    "LabTestSorting",
    "AmritYojnaRecord",
    "LabTestRecord",
    "LicenseApplication",
    "PlantRef",
    "SewerQualityRecord",
    "TreatmentPlant",
    "WaterQualityRecord",
    "WaterSample",
    "WaterTestReport",
    "parameter_value",
    "admin_sewer_data",
    "admin_water_data",
    "admin_amrit_data",
    "homepage_sewer_data",
    "homepage_water_data",
    "homepage_amrit_data",
    "lab_tests",
    "lab_test_reports",
    "lab_reports",
    "sewer_treatment_plants",
    "water_treatment_plants",
    "track_application",
    "normalize_tracking_number",
    "license_applications",
    "water_samples",
    "water_test_report",
]
