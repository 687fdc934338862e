"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Portal screens driving the data-freshness core.
"""

from .admin import (
    LAB_TESTS_CHANNEL,
    AdminAmritDataView,
    AdminLabReportsView,
    AdminLabTestReportsView,
    AdminLabTestsView,
    AdminLicenseApplicationsView,
    AdminSewerDataView,
    AdminWaterDataView,
    AdminWaterSamplesView,
)
from .base import AdminDatasetView, RenderCallback, View
from .charts import (
    SEWER_CHART_PARAMETERS,
    WATER_CHART_PARAMETERS,
    ChartKind,
    ChartPoint,
    QualityChartView,
)
from .home import HomeView
from .tracking import TrackingView, status_step, status_text

__all__ = [
    "View",
    "AdminDatasetView",
    "RenderCallback",
    "HomeView",
    "AdminSewerDataView",
    "AdminWaterDataView",
    "AdminAmritDataView",
    "AdminLabTestsView",
    "AdminLabReportsView",
    "AdminLabTestReportsView",
    "AdminLicenseApplicationsView",
    "AdminWaterSamplesView",
    "LAB_TESTS_CHANNEL",
    "QualityChartView",
    "ChartKind",
    "ChartPoint",
    "SEWER_CHART_PARAMETERS",
    "WATER_CHART_PARAMETERS",
    "TrackingView",
    "status_step",
    "status_text",
]
