"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Cache-key normalization, hashing and prefix matching.

Keys are compared structurally: two keys are equal iff their canonical JSON
serializations are equal, regardless of object identity.
"""

from __future__ import annotations

import dataclasses
import json
from datetime import date, datetime, time
from typing import Any

from .types import CacheKey, KeyLike

SEWER_DATA_QUERY_KEY = "sewerData"
LAB_TESTS_QUERY_KEY = "lab-tests"

ADMIN_SEWER_DATA = "adminSewerData"
ADMIN_WATER_DATA = "adminWaterData"
ADMIN_AMRIT_DATA = "adminAmritData"
WATER_DATA = "waterData"
AMRIT_DATA = "amritData"
LAB_TESTS = "labTests"
LAB_REPORTS = "lab_reports"
WATER_SAMPLES = "waterSamples"
WATER_TEST_REPORTS = "waterTestReports"
SEWER_TREATMENT_PLANTS = "sewerTreatmentPlants"
WATER_TREATMENT_PLANTS = "waterTreatmentPlants"
LICENSE_APPLICATIONS = "licenseApplications"
APPLICATION_TRACKING = "applicationTracking"


def _encode(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    model_dump = getattr(value, "model_dump", None)
    if callable(model_dump):
        return model_dump(mode="json")
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    return str(value)


def normalize_key(key: KeyLike) -> CacheKey:
    """Coerce a string, list or tuple into a tuple cache key."""
    if isinstance(key, str):
        return (key,)
    if isinstance(key, (list, tuple)):
        return tuple(key)
    raise TypeError(f"Cache key must be a str, list or tuple, got {type(key).__name__}")


def _dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=_encode)


def hash_key(key: KeyLike) -> str:
    """Return the canonical serialized form of a cache key."""
    return _dumps(list(normalize_key(key)))


def key_matches(prefix: KeyLike, key: KeyLike) -> bool:
    """
    Return whether ``key`` equals or starts with ``prefix``.

    Matching is segment-wise on serialized segments, so
    ``("adminSewerData",)`` matches every admin sewer key whatever its
    filter segments are. An empty prefix matches everything.
    """
    prefix_t = normalize_key(prefix)
    key_t = normalize_key(key)
    if len(prefix_t) > len(key_t):
        return False
    return all(_dumps(p) == _dumps(k) for p, k in zip(prefix_t, key_t))


def key_from_wire(raw: list[Any]) -> CacheKey:
    """Rebuild a key received as a decoded JSON array."""
    return tuple(raw)


def key_to_wire(key: KeyLike) -> list[Any]:
    """Serialize a key into a JSON-safe list."""
    return json.loads(hash_key(key))
