"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Query runner package.

Quick start::

    from labsync.query import QueryClient, QueryOptions

    client = QueryClient(bus=bus)
    observer = client.use_query(("sewerData",), fetch_sewer_rows)
    await observer.wait()
    print(observer.status, observer.data)
"""

from .client import QueryClient
from .coalescing import InFlightFetches
from .observer import ChangeCallback, QueryObserver
from .options import QueryOptions
from .retry import call_with_retry, classify_error

__all__ = [
    "QueryClient",
    "QueryObserver",
    "QueryOptions",
    "ChangeCallback",
    "InFlightFetches",
    "call_with_retry",
    "classify_error",
]
