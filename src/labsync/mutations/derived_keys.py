"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Table -> cache-key prefix mapping.

Every query whose result is derived from a table must have its prefix
listed here; a missing prefix leaves that view stale until the next poll.
"""

from __future__ import annotations

from types import MappingProxyType

from .. import keys
from ..errors import UnknownTableError
from ..types import CacheKey

DERIVED_KEYS = MappingProxyType(
    {
        "sewer_quality_data": (
            (keys.ADMIN_SEWER_DATA,),
            (keys.SEWER_DATA_QUERY_KEY,),
        ),
        "water_quality_data": (
            (keys.ADMIN_WATER_DATA,),
            (keys.WATER_DATA,),
        ),
        "amrit_yojna_data": (
            (keys.ADMIN_AMRIT_DATA,),
            (keys.AMRIT_DATA,),
        ),
        "lab_tests": (
            (keys.LAB_TESTS,),
            (keys.LAB_TESTS_QUERY_KEY,),
            (keys.LAB_REPORTS,),
        ),
        "water_samples": (
            (keys.WATER_SAMPLES,),
        ),
        # Submitting a test report flips the sample to "treated".
        "water_test_reports": (
            (keys.WATER_TEST_REPORTS,),
            (keys.WATER_SAMPLES,),
        ),
        "license_applications": (
            (keys.LICENSE_APPLICATIONS,),
            (keys.APPLICATION_TRACKING,),
        ),
        # Plant names are joined into the quality tables.
        "sewer_treatment_plants": (
            (keys.SEWER_TREATMENT_PLANTS,),
            (keys.ADMIN_SEWER_DATA,),
            (keys.SEWER_DATA_QUERY_KEY,),
        ),
        "water_treatment_plants": (
            (keys.WATER_TREATMENT_PLANTS,),
            (keys.ADMIN_WATER_DATA,),
            (keys.WATER_DATA,),
        ),
    }
)


def derived_keys_for(table: str) -> tuple[CacheKey, ...]:
    """
    Return the cache-key prefixes derived from `table`.

    Raises:
        UnknownTableError: If `table` has no mapping.
    """
    try:
        return DERIVED_KEYS[table]
    except KeyError:
        raise UnknownTableError(f"No derived cache keys registered for table '{table}'") from None


def known_tables() -> list[str]:
    return sorted(DERIVED_KEYS)
