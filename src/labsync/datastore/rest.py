"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

REST adapter for the hosted data store's ``/rest/v1`` endpoint.
"""

from __future__ import annotations

import asyncio
import json
import logging
import socket
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Callable, Mapping
from typing import Any

from ..types import Row
from .types import SelectQuery, StoreError, StoreResult, plain_value

logger = logging.getLogger("labsync.datastore.rest")

HttpFn = Callable[[str, str, bytes | None, dict[str, str], float], tuple[int, bytes]]


class StoreTransportError(RuntimeError):
    """Raised by the HTTP layer for network-level failures."""


def _encode_filter_value(op: str, value: Any) -> str:
    value = plain_value(value)
    if op == "in":
        return "in.(" + ",".join(str(v) for v in value) + ")"
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"{op}.{str(value).lower()}"
    return f"{op}.{value}"


class RestDataStore:
    """
    Data store client speaking the hosted backend's REST dialect.

    Blocking HTTP runs in a worker thread via ``asyncio.to_thread``. Every
    failure (HTTP error, network error, timeout) is returned as
    ``StoreResult.error`` rather than raised.

    Args:
        base_url: Project URL, e.g. ``https://<ref>.example.co``.
        api_key: Public (anon) API key.
        access_token: Optional user session token; the API key is used
            as bearer when omitted.
        timeout_s: Per-request timeout.
        schema: Database schema exposed by the REST layer.
        http: Optional replacement for the blocking HTTP call.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        access_token: str | None = None,
        timeout_s: float = 30.0,
        schema: str = "public",
        headers: Mapping[str, str] | None = None,
        http: HttpFn | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url must be non-empty")
        if not api_key:
            raise ValueError("api_key must be non-empty")
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._access_token = access_token
        self._timeout_s = timeout_s
        self._schema = schema
        self._extra_headers = dict(headers or {})
        self._http = http or self.http_request

    def set_access_token(self, token: str | None) -> None:
        """Swap the bearer token after sign-in/sign-out."""
        self._access_token = token

    def _headers(self, *, write: bool = False, single: bool = False) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._access_token or self._api_key}",
            "Accept": "application/vnd.pgrst.object+json" if single else "application/json",
            "Accept-Profile": self._schema,
            "Cache-Control": "no-cache",
            "x-application-name": "water-mgmt-dashboard",
            **self._extra_headers,
        }
        if write:
            headers["Content-Type"] = "application/json"
            headers["Content-Profile"] = self._schema
            headers["Prefer"] = "return=representation"
        return headers

    def _url(self, table: str, params: list[tuple[str, str]]) -> str:
        query = urllib.parse.urlencode(params, safe="(),.*:")
        url = f"{self._base_url}/rest/v1/{urllib.parse.quote(table)}"
        return f"{url}?{query}" if query else url

    @staticmethod
    def _match_params(match: Mapping[str, Any]) -> list[tuple[str, str]]:
        return [(column, _encode_filter_value("eq", value)) for column, value in match.items()]

    async def select(self, query: SelectQuery) -> StoreResult:
        params: list[tuple[str, str]] = [("select", query.select_list())]
        for f in query.filters:
            params.append((f.column, _encode_filter_value(f.op, f.value)))
        if query.order_by is not None:
            direction = "desc" if query.descending else "asc"
            params.append(("order", f"{query.order_by}.{direction}"))
        if query.limit is not None:
            params.append(("limit", str(query.limit)))
        return await self._request(
            "GET",
            self._url(query.table, params),
            headers=self._headers(single=query.single),
        )

    async def insert(self, table: str, rows: Row | list[Row]) -> StoreResult:
        return await self._request(
            "POST",
            self._url(table, []),
            body=rows,
            headers=self._headers(write=True),
        )

    async def update(self, table: str, values: Row, *, match: Mapping[str, Any]) -> StoreResult:
        return await self._request(
            "PATCH",
            self._url(table, self._match_params(match)),
            body=values,
            headers=self._headers(write=True),
        )

    async def delete(self, table: str, *, match: Mapping[str, Any]) -> StoreResult:
        if not match:
            return StoreResult(error=StoreError("DELETE requires a filter", code="21000"))
        return await self._request(
            "DELETE",
            self._url(table, self._match_params(match)),
            headers=self._headers(write=True),
        )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        body: Any = None,
    ) -> StoreResult:
        payload = json.dumps(body, default=str).encode("utf-8") if body is not None else None
        try:
            status, raw = await asyncio.to_thread(
                self._http, method, url, payload, headers, self._timeout_s
            )
        except (TimeoutError, socket.timeout):
            logger.warning("%s %s timed out after %.1fs", method, url, self._timeout_s)
            return StoreResult(error=StoreError("Request timed out", code="timeout"))
        except StoreTransportError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            return StoreResult(error=StoreError(str(exc), code="network"))

        decoded: Any = None
        if raw:
            try:
                decoded = json.loads(raw.decode("utf-8"))
            except ValueError:
                return StoreResult(
                    error=StoreError("Invalid JSON response", code="invalid_json", status=status)
                )

        if status >= 400:
            return StoreResult(error=self._parse_error(decoded, status))
        return StoreResult(data=decoded)

    @staticmethod
    def _parse_error(decoded: Any, status: int) -> StoreError:
        if isinstance(decoded, dict):
            message = decoded.get("message") or decoded.get("error") or f"HTTP {status}"
            return StoreError(
                str(message),
                code=decoded.get("code"),
                status=status,
                details=decoded.get("details") or decoded.get("hint"),
            )
        return StoreError(f"HTTP {status}", status=status)

    def http_request(
        self,
        method: str,
        url: str,
        payload: bytes | None,
        headers: dict[str, str],
        timeout_s: float,
    ) -> tuple[int, bytes]:
        req = urllib.request.Request(url, data=payload, method=method, headers=headers)
        try:
            with urllib.request.urlopen(req, timeout=timeout_s) as resp:  # noqa: S310
                return resp.status, resp.read()
        except urllib.error.HTTPError as e:
            body = b""
            try:
                body = e.read()
            except Exception:  # noqa: BLE001
                body = b""
            return e.code, body
        except urllib.error.URLError as e:
            if isinstance(e.reason, (TimeoutError, socket.timeout)):
                raise TimeoutError(str(e.reason)) from e
            raise StoreTransportError(f"Network error calling data store: {e.reason}") from e
