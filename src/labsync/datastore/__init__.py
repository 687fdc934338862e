"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Data store adapters for the hosted relational backend.
"""

from .factory import create_data_store_from_env
from .memory import InMemoryDataStore
from .rest import RestDataStore, StoreTransportError
from .types import (
    NO_ROWS_CODE,
    DataStore,
    Embed,
    Filter,
    FilterOp,
    SelectQuery,
    StoreCallLog,
    StoreError,
    StoreResult,
)

__all__ = [
    "DataStore",
    "InMemoryDataStore",
    "RestDataStore",
    "StoreTransportError",
    "SelectQuery",
    "Filter",
    "FilterOp",
    "Embed",
    "StoreResult",
    "StoreError",
    "StoreCallLog",
    "NO_ROWS_CODE",
    "create_data_store_from_env",
]
