"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Admin dashboard screens.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..datasets import (
    ALL,
    DatasetQuery,
    DateRange,
    LabTestFilters,
    LabTestSorting,
    admin_amrit_data,
    admin_sewer_data,
    admin_water_data,
    lab_reports,
    lab_test_reports,
    lab_tests,
    license_applications,
    sewer_treatment_plants,
    water_samples,
    water_test_report,
)
from ..datasets.models import (
    LabTestRecord,
    LicenseApplication,
    TreatmentPlant,
    WaterSample,
    WaterTestReport,
)
from ..polling import LAB_REPORTS_POLL
from ..types import Row
from .base import AdminDatasetView, RenderCallback, View

if TYPE_CHECKING:
    from ..app import PortalRuntime

# Channel name used by the lab tests screen in the hosted backend.
LAB_TESTS_CHANNEL = "table-db-changes"


class AdminSewerDataView(AdminDatasetView):
    name = "admin-sewer-data"
    table = "sewer_quality_data"
    realtime = True

    def __init__(
        self,
        runtime: "PortalRuntime",
        *,
        date_range: DateRange = DateRange(),
        plant_filter: str = ALL,
        water_type: str = ALL,
        on_render: RenderCallback | None = None,
    ) -> None:
        super().__init__(runtime, on_render=on_render)
        self.date_range = date_range
        self.plant_filter = plant_filter
        self.water_type = water_type

    def setup(self) -> None:
        super().setup()
        self.use("plants", sewer_treatment_plants(self.runtime.store))

    def build_query(self) -> DatasetQuery:
        return admin_sewer_data(
            self.runtime.store, self.date_range, self.plant_filter, self.water_type
        )

    @property
    def plants(self) -> list[TreatmentPlant]:
        return self.data("plants", [])

    def set_filters(
        self,
        *,
        date_range: DateRange | None = None,
        plant_filter: str | None = None,
        water_type: str | None = None,
    ) -> None:
        """Change filters; a mounted view switches to the new cache key."""
        if date_range is not None:
            self.date_range = date_range
        if plant_filter is not None:
            self.plant_filter = plant_filter
        if water_type is not None:
            self.water_type = water_type
        if self.mounted:
            self.use("rows", self.build_query())


class AdminWaterDataView(AdminDatasetView):
    name = "admin-water-data"
    table = "water_quality_data"

    def __init__(
        self,
        runtime: "PortalRuntime",
        *,
        date_range: DateRange = DateRange(),
        plant_filter: str = ALL,
        water_type: str = ALL,
        on_render: RenderCallback | None = None,
    ) -> None:
        super().__init__(runtime, on_render=on_render)
        self.date_range = date_range
        self.plant_filter = plant_filter
        self.water_type = water_type

    def build_query(self) -> DatasetQuery:
        return admin_water_data(
            self.runtime.store, self.date_range, self.plant_filter, self.water_type
        )


class AdminAmritDataView(AdminDatasetView):
    name = "admin-amrit-data"
    table = "amrit_yojna_data"

    def __init__(
        self,
        runtime: "PortalRuntime",
        *,
        date_range: DateRange = DateRange(),
        ward: str = "",
        on_render: RenderCallback | None = None,
    ) -> None:
        super().__init__(runtime, on_render=on_render)
        self.date_range = date_range
        self.ward = ward

    def build_query(self) -> DatasetQuery:
        return admin_amrit_data(self.runtime.store, self.date_range, self.ward)

    def set_ward(self, ward: str) -> None:
        self.ward = ward.strip()
        if self.mounted:
            self.use("rows", self.build_query())


class AdminLabTestsView(AdminDatasetView):
    """Lab test register, kept live by row-change notifications."""

    name = "admin-lab-tests"
    table = "lab_tests"
    realtime = True
    channel_name = LAB_TESTS_CHANNEL

    def __init__(
        self,
        runtime: "PortalRuntime",
        *,
        filters: LabTestFilters = LabTestFilters(),
        sorting: LabTestSorting = LabTestSorting(),
        on_render: RenderCallback | None = None,
    ) -> None:
        super().__init__(runtime, on_render=on_render)
        self.filters = filters
        self.sorting = sorting

    def build_query(self) -> DatasetQuery:
        return lab_tests(self.runtime.store, self.filters, self.sorting)

    def set_filters(self, filters: LabTestFilters) -> None:
        self.filters = filters
        if self.mounted:
            self.use("rows", self.build_query())

    def sort_by(self, column: str) -> None:
        """Toggle direction when re-sorting the same column, else sort descending."""
        if column == self.sorting.column:
            direction = "asc" if self.sorting.direction == "desc" else "desc"
        else:
            direction = "desc"
        self.sorting = LabTestSorting(column=column, direction=direction)
        if self.mounted:
            self.use("rows", self.build_query())


class AdminLabReportsView(View):
    """Lab reports dashboard refreshed by its own short poll timer."""

    name = "admin-lab-reports"

    def setup(self) -> None:
        self.use("reports", lab_reports(self.runtime.store))
        self.poll(LAB_REPORTS_POLL)

    @property
    def reports(self) -> list[LabTestRecord]:
        return self.data("reports", [])

    def search(self, text: str) -> list[LabTestRecord]:
        """Case-insensitive match on sample id or creation date."""
        needle = text.strip().lower()
        if not needle:
            return self.reports
        return [
            r
            for r in self.reports
            if needle in r.sample_id.lower() or needle in (r.created_at or "")[:10]
        ]


class AdminLabTestReportsView(AdminDatasetView):
    """
    Lab test report list.

    After a delete the cached list is patched in place so the row vanishes
    without waiting for the refetch.
    """

    name = "admin-lab-test-reports"
    table = "lab_tests"

    def build_query(self) -> DatasetQuery:
        return lab_test_reports(self.runtime.store)

    async def delete(self, record_id: str) -> None:
        await super().delete(record_id)
        observer = self.observers.get("rows")
        if observer is None:
            return
        self.runtime.client.set_query_data(
            observer.key,
            lambda rows: [r for r in (rows or []) if r.id != record_id],
        )


class AdminLicenseApplicationsView(AdminDatasetView):
    """License application review queue."""

    name = "admin-license-applications"
    table = "license_applications"

    def build_query(self) -> DatasetQuery:
        return license_applications(self.runtime.store)

    @property
    def applications(self) -> list[LicenseApplication]:
        return self.rows

    async def update_status(self, app_id: str, status: str) -> None:
        """
        Move an application to `status`.

        Public tracking lookups of the application refetch once the store
        confirms the change.

        Raises:
            ValueError: If `status` is blank.
            MutationError: If the store rejected the update.
        """
        status = status.strip()
        if not status:
            raise ValueError("status must be non-empty")
        await self._mutate(
            "update",
            lambda: self.runtime.store.update(self.table, {"status": status}, match={"id": app_id}),
            success="Status Updated",
            message=f"Application marked as {status.replace('_', ' ')}",
            failure="Error",
        )


REPORT_SUBMITTED = "Test report submitted successfully! Sample status updated to treated."
REPORT_FAILED = "Failed to submit test report. Please try again."


class AdminWaterSamplesView(AdminDatasetView):
    """
    Water sample queue with test report entry.

    Submitting a report inserts it and then marks the sample ``treated``;
    each step invalidates its own derived datasets.
    """

    name = "admin-water-samples"
    table = "water_samples"

    def build_query(self) -> DatasetQuery:
        return water_samples(self.runtime.store)

    @property
    def samples(self) -> list[WaterSample]:
        return self.rows

    @property
    def report(self) -> WaterTestReport | None:
        return self.data("report")

    def open_report(self, sample_id: str) -> None:
        """Show the test report of `sample_id`."""
        if not self.mounted:
            self.mount()
        self.use("report", water_test_report(self.runtime.store, sample_id))

    async def submit_report(self, sample_id: str, values: Row) -> None:
        """
        Record test results for `sample_id` and mark the sample treated.

        Raises:
            MutationError: If either write was rejected.
        """
        await self._mutate(
            "insert",
            lambda: self.runtime.store.insert(
                "water_test_reports", {**values, "sample_id": sample_id}
            ),
            success=None,
            failure=REPORT_FAILED,
            table="water_test_reports",
        )
        await self._mutate(
            "update",
            lambda: self.runtime.store.update(
                self.table, {"status": "treated"}, match={"id": sample_id}
            ),
            success="Success",
            message=REPORT_SUBMITTED,
            failure=REPORT_FAILED,
        )
