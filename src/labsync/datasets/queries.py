"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Query builders for the portal's datasets.

Each builder returns a ``DatasetQuery`` pairing the cache key with a
zero-argument fetch coroutine, ready for ``QueryClient.use_query``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Literal, NamedTuple

from ..datastore.types import NO_ROWS_CODE, DataStore, SelectQuery
from ..keys import (
    ADMIN_AMRIT_DATA,
    ADMIN_SEWER_DATA,
    ADMIN_WATER_DATA,
    AMRIT_DATA,
    APPLICATION_TRACKING,
    LAB_REPORTS,
    LAB_TESTS,
    LAB_TESTS_QUERY_KEY,
    LICENSE_APPLICATIONS,
    SEWER_DATA_QUERY_KEY,
    SEWER_TREATMENT_PLANTS,
    WATER_DATA,
    WATER_SAMPLES,
    WATER_TEST_REPORTS,
    WATER_TREATMENT_PLANTS,
)
from ..types import CacheKey
from .models import (
    AmritYojnaRecord,
    LabTestRecord,
    LicenseApplication,
    SewerQualityRecord,
    TreatmentPlant,
    WaterQualityRecord,
    WaterSample,
    WaterTestReport,
)

logger = logging.getLogger("labsync.datasets")

ALL = "all"
HOMEPAGE_AMRIT_LIMIT = 20

# Legacy plants still present in the store but retired from reporting.
EXCLUDED_PLANT_NAMES: frozenset[str] = frozenset(
    {
        "Motijheel WTP - Motijheel Area",
        "Maharajpura STP - Maharajpura",
        "Morar STP - Morar Region",
        "Hazira STP - Hazira Area",
        "Lashkar STP - Lashkar Region",
        "Jhansi Road STP - Jhansi Road",
    }
)


class DatasetQuery(NamedTuple):
    key: CacheKey
    fetch: Callable[[], Awaitable[Any]]


def _as_utc(value: date | datetime, *, end: bool) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, time.max if end else time.min, tzinfo=timezone.utc)


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive ``created_at`` window; open when either side is missing."""

    start: date | datetime | None = None
    end: date | datetime | None = None

    @property
    def is_complete(self) -> bool:
        return self.start is not None and self.end is not None

    def bounds(self) -> tuple[str, str] | None:
        if self.start is None or self.end is None:
            return None
        return (
            _as_utc(self.start, end=False).isoformat(),
            _as_utc(self.end, end=True).isoformat(),
        )

    def apply(self, query: SelectQuery, column: str = "created_at") -> SelectQuery:
        bounds = self.bounds()
        if bounds is None:
            return query
        return query.gte(column, bounds[0]).lte(column, bounds[1])


@dataclass(frozen=True, slots=True)
class LabTestFilters:
    sample_id: str = ""
    submitter_name: str = ""
    date_range: DateRange = DateRange()


@dataclass(frozen=True, slots=True)
class LabTestSorting:
    column: str = "created_at"
    direction: Literal["asc", "desc"] = "desc"


def _not_excluded(plant_name: str | None) -> bool:
    return (plant_name or "") not in EXCLUDED_PLANT_NAMES


async def _select(store: DataStore, query: SelectQuery) -> list[dict[str, Any]]:
    result = await store.select(query)
    return list(result.unwrap() or [])


# ---------------------------------------------------------------------------
# Admin datasets
# ---------------------------------------------------------------------------


def admin_sewer_data(
    store: DataStore,
    date_range: DateRange = DateRange(),
    plant_filter: str = ALL,
    water_type: str = ALL,
) -> DatasetQuery:
    key: CacheKey = (ADMIN_SEWER_DATA, date_range, plant_filter, water_type)

    async def fetch() -> list[SewerQualityRecord]:
        query = SelectQuery("sewer_quality_data").embed(
            "sewer_treatment_plants", "plant_id", "id", "name", "location", "capacity"
        )
        query = date_range.apply(query)
        if plant_filter != ALL:
            query = query.eq("plant_id", plant_filter)
        if water_type != ALL:
            query = query.eq("water_type", water_type)
        rows = await _select(store, query.order("created_at", descending=True))
        records = [SewerQualityRecord.model_validate(row) for row in rows]
        return [r for r in records if _not_excluded(r.plant_name)]

    return DatasetQuery(key, fetch)


def admin_water_data(
    store: DataStore,
    date_range: DateRange = DateRange(),
    plant_filter: str = ALL,
    water_type: str = ALL,
) -> DatasetQuery:
    key: CacheKey = (ADMIN_WATER_DATA, date_range, plant_filter, water_type)

    async def fetch() -> list[WaterQualityRecord]:
        query = SelectQuery("water_quality_data").embed(
            "water_treatment_plants", "plant_id", "name", "location"
        )
        query = date_range.apply(query)
        if plant_filter != ALL:
            query = query.eq("plant_id", plant_filter)
        if water_type != ALL:
            query = query.eq("water_type", water_type)
        rows = await _select(store, query.order("created_at", descending=True))
        return [WaterQualityRecord.model_validate(row) for row in rows]

    return DatasetQuery(key, fetch)


def admin_amrit_data(
    store: DataStore,
    date_range: DateRange = DateRange(),
    ward: str = "",
) -> DatasetQuery:
    key: CacheKey = (ADMIN_AMRIT_DATA, date_range, ward)

    async def fetch() -> list[AmritYojnaRecord]:
        query = date_range.apply(SelectQuery("amrit_yojna_data"))
        if ward:
            query = query.eq("ward_no", ward)
        rows = await _select(store, query.order("created_at", descending=True))
        return [AmritYojnaRecord.model_validate(row) for row in rows]

    return DatasetQuery(key, fetch)


def lab_tests(
    store: DataStore,
    filters: LabTestFilters = LabTestFilters(),
    sorting: LabTestSorting = LabTestSorting(),
) -> DatasetQuery:
    key: CacheKey = (LAB_TESTS, filters, sorting)

    async def fetch() -> list[LabTestRecord]:
        query = SelectQuery("lab_tests").order(
            sorting.column, descending=sorting.direction == "desc"
        )
        if filters.sample_id:
            query = query.ilike("sample_id", f"%{filters.sample_id}%")
        if filters.submitter_name:
            query = query.ilike("submitter_name", f"%{filters.submitter_name}%")
        query = filters.date_range.apply(query)
        rows = await _select(store, query)
        return [LabTestRecord.model_validate(row) for row in rows]

    return DatasetQuery(key, fetch)


def _latest_lab_tests(store: DataStore, key: CacheKey) -> DatasetQuery:
    async def fetch() -> list[LabTestRecord]:
        rows = await _select(
            store, SelectQuery("lab_tests").order("created_at", descending=True)
        )
        return [LabTestRecord.model_validate(row) for row in rows]

    return DatasetQuery(key, fetch)


def lab_test_reports(store: DataStore) -> DatasetQuery:
    """Lab test report list, newest first."""
    return _latest_lab_tests(store, (LAB_TESTS_QUERY_KEY,))


def lab_reports(store: DataStore) -> DatasetQuery:
    """Lab reports dashboard feed, newest first."""
    return _latest_lab_tests(store, (LAB_REPORTS,))


# ---------------------------------------------------------------------------
# Public homepage datasets
# ---------------------------------------------------------------------------


def homepage_sewer_data(store: DataStore) -> DatasetQuery:
    async def fetch() -> list[SewerQualityRecord]:
        query = (
            SelectQuery("sewer_quality_data")
            .embed("sewer_treatment_plants", "plant_id", "name")
            .order("created_at", descending=True)
        )
        return [SewerQualityRecord.model_validate(row) for row in await _select(store, query)]

    return DatasetQuery((SEWER_DATA_QUERY_KEY,), fetch)


def homepage_water_data(store: DataStore) -> DatasetQuery:
    async def fetch() -> list[WaterQualityRecord]:
        query = (
            SelectQuery("water_quality_data")
            .embed("water_treatment_plants", "plant_id", "name")
            .order("created_at", descending=True)
        )
        return [WaterQualityRecord.model_validate(row) for row in await _select(store, query)]

    return DatasetQuery((WATER_DATA,), fetch)


def homepage_amrit_data(store: DataStore, limit: int = HOMEPAGE_AMRIT_LIMIT) -> DatasetQuery:
    async def fetch() -> list[AmritYojnaRecord]:
        query = (
            SelectQuery("amrit_yojna_data")
            .order("created_at", descending=True)
            .limit_to(limit)
        )
        return [AmritYojnaRecord.model_validate(row) for row in await _select(store, query)]

    return DatasetQuery((AMRIT_DATA,), fetch)


def sewer_treatment_plants(store: DataStore) -> DatasetQuery:
    async def fetch() -> list[TreatmentPlant]:
        rows = await _select(store, SelectQuery("sewer_treatment_plants"))
        plants = [TreatmentPlant.model_validate(row) for row in rows]
        return [p for p in plants if _not_excluded(p.name)]

    return DatasetQuery((SEWER_TREATMENT_PLANTS,), fetch)


def water_treatment_plants(store: DataStore) -> DatasetQuery:
    async def fetch() -> list[TreatmentPlant]:
        rows = await _select(store, SelectQuery("water_treatment_plants"))
        return [TreatmentPlant.model_validate(row) for row in rows]

    return DatasetQuery((WATER_TREATMENT_PLANTS,), fetch)


# ---------------------------------------------------------------------------
# Tracking
# ---------------------------------------------------------------------------


def normalize_tracking_number(raw: str) -> str:
    return raw.strip().upper()


def track_application(store: DataStore, tracking_number: str) -> DatasetQuery:
    """
    Look up a license application by its public tracking number.

    The fetch resolves to ``None`` when no application carries the number.

    Raises:
        ValueError: If `tracking_number` is blank.
    """
    number = normalize_tracking_number(tracking_number)
    if not number:
        raise ValueError("tracking_number must be non-empty")

    async def fetch() -> LicenseApplication | None:
        result = await store.select(
            SelectQuery("license_applications").eq("tracking_number", number).one()
        )
        if result.error is not None and result.error.code == NO_ROWS_CODE:
            logger.debug("No application found for tracking number %s", number)
            return None
        return LicenseApplication.model_validate(result.unwrap())

    return DatasetQuery((APPLICATION_TRACKING, number), fetch)


# ---------------------------------------------------------------------------
# Admin review queues
# ---------------------------------------------------------------------------


def license_applications(store: DataStore, statuses: tuple[str, ...] = ()) -> DatasetQuery:
    """License applications, newest first, optionally limited to `statuses`."""
    key: CacheKey = (LICENSE_APPLICATIONS, statuses)

    async def fetch() -> list[LicenseApplication]:
        query = SelectQuery("license_applications").order("created_at", descending=True)
        if statuses:
            query = query.in_("status", statuses)
        return [LicenseApplication.model_validate(row) for row in await _select(store, query)]

    return DatasetQuery(key, fetch)


def water_samples(store: DataStore) -> DatasetQuery:
    async def fetch() -> list[WaterSample]:
        query = SelectQuery("water_samples").order("created_at", descending=True)
        return [WaterSample.model_validate(row) for row in await _select(store, query)]

    return DatasetQuery((WATER_SAMPLES,), fetch)


def water_test_report(store: DataStore, sample_id: str) -> DatasetQuery:
    """Test report for one sample; resolves to ``None`` before one is submitted."""

    async def fetch() -> WaterTestReport | None:
        result = await store.select(
            SelectQuery("water_test_reports").eq("sample_id", sample_id).one()
        )
        if result.error is not None and result.error.code == NO_ROWS_CODE:
            return None
        return WaterTestReport.model_validate(result.unwrap())

    return DatasetQuery((WATER_TEST_REPORTS, sample_id), fetch)
