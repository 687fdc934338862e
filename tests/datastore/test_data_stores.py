from __future__ import annotations

import asyncio
import json
import urllib.parse

import pytest

from labsync.datastore import (
    NO_ROWS_CODE,
    InMemoryDataStore,
    RestDataStore,
    SelectQuery,
    StoreError,
    StoreTransportError,
    create_data_store_from_env,
)
from labsync.errors import SettingsError, StoreRequestError
from labsync.settings import LabSyncSettings


def run_async(coro):
    return asyncio.run(coro)


def _seeded() -> InMemoryDataStore:
    return InMemoryDataStore(
        {
            "sewer_treatment_plants": [
                {"id": "p1", "name": "Jalalpur STP", "location": "Jalalpur"},
            ],
            "sewer_quality_data": [
                {"id": "a", "plant_id": "p1", "water_type": "inlet_water", "created_at": "2026-01-01T08:00:00+00:00"},
                {"id": "b", "plant_id": "p1", "water_type": "outlet_water", "created_at": "2026-01-03T08:00:00+00:00"},
                {"id": "c", "plant_id": "p9", "water_type": "inlet_water", "created_at": "2026-01-02T08:00:00+00:00"},
            ],
        }
    )


def test_memory_select_filters_orders_limits_and_embeds():
    async def scenario() -> None:
        store = _seeded()
        result = await store.select(
            SelectQuery("sewer_quality_data")
            .embed("sewer_treatment_plants", "plant_id", "name")
            .gte("created_at", "2026-01-02T00:00:00+00:00")
            .order("created_at", descending=True)
        )

        assert result.ok
        assert [r["id"] for r in result.data] == ["b", "c"]
        assert result.data[0]["sewer_treatment_plants"] == {"name": "Jalalpur STP"}
        assert result.data[1]["sewer_treatment_plants"] is None

        limited = await store.select(SelectQuery("sewer_quality_data").order("id").limit_to(1))
        assert [r["id"] for r in limited.data] == ["a"]
        assert store.calls.count("select", "sewer_quality_data") == 2

    run_async(scenario())


def test_memory_ilike_filter_is_case_insensitive():
    async def scenario() -> None:
        store = InMemoryDataStore(
            {"lab_tests": [{"id": "1", "sample_id": "WS-001"}, {"id": "2", "sample_id": "ss-9"}]}
        )
        result = await store.select(SelectQuery("lab_tests").ilike("sample_id", "%ws%"))
        assert [r["id"] for r in result.data] == ["1"]

    run_async(scenario())


def test_memory_comparison_and_membership_filters():
    async def scenario() -> None:
        store = _seeded()
        table = SelectQuery("sewer_quality_data")

        not_inlet = await store.select(table.neq("water_type", "inlet_water"))
        assert [r["id"] for r in not_inlet.data] == ["b"]

        after = await store.select(table.gt("created_at", "2026-01-01T08:00:00+00:00").order("id"))
        assert [r["id"] for r in after.data] == ["b", "c"]

        before = await store.select(table.lt("created_at", "2026-01-02T08:00:00+00:00"))
        assert [r["id"] for r in before.data] == ["a"]

        chosen = await store.select(table.in_("id", ["a", "c"]).order("id"))
        assert [r["id"] for r in chosen.data] == ["a", "c"]

    run_async(scenario())


def test_memory_single_row_missing_reports_no_rows_code():
    async def scenario() -> None:
        store = _seeded()
        result = await store.select(SelectQuery("sewer_quality_data").eq("id", "zzz").one())
        assert result.error is not None
        assert result.error.code == NO_ROWS_CODE
        with pytest.raises(StoreRequestError):
            result.unwrap()

        found = await store.select(SelectQuery("sewer_quality_data").eq("id", "a").one())
        assert found.unwrap()["water_type"] == "inlet_water"

    run_async(scenario())


def test_memory_writes_and_injected_failures():
    async def scenario() -> None:
        store = InMemoryDataStore()
        inserted = await store.insert("lab_tests", {"sample_id": "S1"})
        row_id = inserted.data[0]["id"]
        assert inserted.data[0]["created_at"]

        updated = await store.update("lab_tests", {"ph": "7.1"}, match={"id": row_id})
        assert updated.data[0]["ph"] == "7.1"

        store.fail_next("delete", "lab_tests", StoreError("nope", code="42501"))
        failed = await store.delete("lab_tests", match={"id": row_id})
        assert failed.error is not None and failed.error.code == "42501"
        assert len(store.rows("lab_tests")) == 1

        unfiltered = await store.delete("lab_tests", match={})
        assert unfiltered.error is not None

        deleted = await store.delete("lab_tests", match={"id": row_id})
        assert deleted.ok and store.rows("lab_tests") == []

    run_async(scenario())


class _RecordingHttp:
    def __init__(self, status: int = 200, body: object = None, raises: Exception | None = None):
        self.status = status
        self.body = body if body is not None else []
        self.raises = raises
        self.requests: list[tuple[str, str, bytes | None, dict[str, str], float]] = []

    def __call__(self, method, url, payload, headers, timeout_s):
        self.requests.append((method, url, payload, headers, timeout_s))
        if self.raises is not None:
            raise self.raises
        return self.status, json.dumps(self.body).encode("utf-8")


def test_rest_select_builds_query_string_and_headers():
    async def scenario() -> None:
        http = _RecordingHttp(body=[{"id": "a"}])
        store = RestDataStore("https://db.example.co/", "anon-key", http=http, timeout_s=12.0)

        result = await store.select(
            SelectQuery("sewer_quality_data")
            .embed("sewer_treatment_plants", "plant_id", "name")
            .eq("plant_id", "p1")
            .order("created_at", descending=True)
            .limit_to(20)
        )

        assert result.data == [{"id": "a"}]
        method, url, payload, headers, timeout_s = http.requests[0]
        assert method == "GET"
        assert payload is None
        assert timeout_s == 12.0
        parsed = urllib.parse.urlparse(url)
        assert parsed.path == "/rest/v1/sewer_quality_data"
        params = urllib.parse.parse_qs(parsed.query)
        assert params["select"] == ["*,sewer_treatment_plants(name)"]
        assert params["plant_id"] == ["eq.p1"]
        assert params["order"] == ["created_at.desc"]
        assert params["limit"] == ["20"]
        assert headers["apikey"] == "anon-key"
        assert headers["Authorization"] == "Bearer anon-key"

    run_async(scenario())


def test_rest_select_encodes_comparison_and_membership_filters():
    async def scenario() -> None:
        http = _RecordingHttp()
        store = RestDataStore("https://db.example.co", "anon-key", http=http)

        await store.select(
            SelectQuery("water_samples")
            .in_("status", ["pending", "in_progress"])
            .neq("source_of_sample", "tank")
            .gt("created_at", "2026-01-01")
            .lt("created_at", "2026-02-01")
        )

        params = urllib.parse.parse_qs(urllib.parse.urlparse(http.requests[0][1]).query)
        assert params["status"] == ["in.(pending,in_progress)"]
        assert params["source_of_sample"] == ["neq.tank"]
        assert params["created_at"] == ["gt.2026-01-01", "lt.2026-02-01"]

    run_async(scenario())


def test_rest_single_uses_object_accept_header_and_session_token():
    async def scenario() -> None:
        http = _RecordingHttp(body={"id": "x"})
        store = RestDataStore("https://db.example.co", "anon-key", http=http)
        store.set_access_token("user-jwt")

        await store.select(SelectQuery("license_applications").eq("tracking_number", "LA1").one())

        headers = http.requests[0][3]
        assert headers["Accept"] == "application/vnd.pgrst.object+json"
        assert headers["Authorization"] == "Bearer user-jwt"

    run_async(scenario())


def test_rest_delete_sends_match_filter_and_representation_header():
    async def scenario() -> None:
        http = _RecordingHttp(body=[{"id": "r1"}])
        store = RestDataStore("https://db.example.co", "anon-key", http=http)

        result = await store.delete("sewer_quality_data", match={"id": "r1"})

        method, url, _, headers, _ = http.requests[0]
        assert result.ok
        assert method == "DELETE"
        assert urllib.parse.parse_qs(urllib.parse.urlparse(url).query)["id"] == ["eq.r1"]
        assert headers["Prefer"] == "return=representation"

        refused = await store.delete("sewer_quality_data", match={})
        assert refused.error is not None
        assert len(http.requests) == 1

    run_async(scenario())


def test_rest_errors_come_back_in_result():
    async def scenario() -> None:
        server_error = RestDataStore(
            "https://db.example.co",
            "k",
            http=_RecordingHttp(
                status=406,
                body={"code": NO_ROWS_CODE, "message": "JSON object requested", "details": "0 rows"},
            ),
        )
        result = await server_error.select(SelectQuery("license_applications").one())
        assert result.error is not None
        assert result.error.code == NO_ROWS_CODE
        assert result.error.status == 406

        timed_out = RestDataStore(
            "https://db.example.co", "k", http=_RecordingHttp(raises=TimeoutError("slow"))
        )
        result = await timed_out.select(SelectQuery("lab_tests"))
        assert result.error is not None and result.error.code == "timeout"

        offline = RestDataStore(
            "https://db.example.co", "k", http=_RecordingHttp(raises=StoreTransportError("down"))
        )
        result = await offline.select(SelectQuery("lab_tests"))
        assert result.error is not None and result.error.code == "network"

    run_async(scenario())


def test_rest_requires_url_and_key():
    with pytest.raises(ValueError):
        RestDataStore("", "k")
    with pytest.raises(ValueError):
        RestDataStore("https://db.example.co", "")


def test_factory_defaults_to_in_memory():
    assert isinstance(create_data_store_from_env(LabSyncSettings()), InMemoryDataStore)


def test_factory_builds_rest_store_from_env(monkeypatch):
    monkeypatch.setenv("LABSYNC_STORE_BACKEND", "rest")
    monkeypatch.setenv("LABSYNC_STORE_URL", "https://db.example.co")
    monkeypatch.setenv("LABSYNC_STORE_API_KEY", "anon")
    assert isinstance(create_data_store_from_env(), RestDataStore)


def test_factory_rest_without_credentials_raises(monkeypatch):
    monkeypatch.delenv("LABSYNC_STORE_URL", raising=False)
    monkeypatch.delenv("LABSYNC_STORE_API_KEY", raising=False)
    with pytest.raises(SettingsError, match="LABSYNC_STORE_URL"):
        create_data_store_from_env(LabSyncSettings(store_backend="rest"))


def test_factory_unknown_backend_raises():
    with pytest.raises(SettingsError, match="Unknown LABSYNC_STORE_BACKEND"):
        create_data_store_from_env(LabSyncSettings(store_backend="sqlite"))
