"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Common type aliases used across labsync modules.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeAlias

JSONPrimitive: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]

Row: TypeAlias = dict[str, Any]

CacheKey: TypeAlias = tuple[Any, ...]
KeyLike: TypeAlias = CacheKey | list[Any] | str

FetchFn: TypeAlias = Callable[[], Awaitable[Any]]
Clock: TypeAlias = Callable[[], float]
