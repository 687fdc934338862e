"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

In-memory query cache.
"""

from .store import QueryCache
from .types import CacheEntry, QueryStatus

__all__ = ["CacheEntry", "QueryCache", "QueryStatus"]
