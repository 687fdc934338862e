from __future__ import annotations

import asyncio

import pytest

from labsync.app import PortalRuntime
from labsync.datastore import InMemoryDataStore, StoreError
from labsync.errors import MutationError
from labsync.polling import CHART_ANIMATION, LAB_REPORTS_POLL, OPERATIONAL
from labsync.realtime import InMemoryRealtimeTransport
from labsync.settings import LabSyncSettings
from labsync.views import (
    AdminLabReportsView,
    AdminLabTestReportsView,
    AdminLabTestsView,
    AdminLicenseApplicationsView,
    AdminSewerDataView,
    AdminWaterSamplesView,
    HomeView,
    QualityChartView,
    TrackingView,
    status_step,
    status_text,
)
from labsync.views.admin import REPORT_FAILED, REPORT_SUBMITTED


def run_async(coro):
    return asyncio.run(coro)


def _store() -> InMemoryDataStore:
    return InMemoryDataStore(
        {
            "sewer_treatment_plants": [{"id": "p1", "name": "Jalalpur STP", "location": "Jalalpur"}],
            "water_treatment_plants": [{"id": "w1", "name": "Tighra WTP", "location": "Tighra"}],
            "sewer_quality_data": [
                {"id": "s1", "plant_id": "p1", "water_type": "inlet_water", "tss": "210", "bod": "140", "created_at": "2026-04-01T08:00:00+00:00"},
                {"id": "s2", "plant_id": "p1", "water_type": "outlet_water", "tss": "18", "bod": "bdl", "created_at": "2026-04-01T09:00:00+00:00"},
            ],
            "water_quality_data": [
                {"id": "q1", "plant_id": "w1", "water_type": "raw_water", "turbidity": "12", "created_at": "2026-04-01T08:00:00+00:00"},
            ],
            "amrit_yojna_data": [],
            "lab_tests": [
                {"id": "t1", "sample_id": "WS-1", "submitter_name": "Asha", "created_at": "2026-04-02T00:00:00+00:00"},
                {"id": "t2", "sample_id": "WS-2", "submitter_name": "Ravi", "created_at": "2026-04-03T00:00:00+00:00"},
            ],
            "license_applications": [
                {
                    "id": "l1",
                    "applicant_name": "Shop",
                    "email": "s@example.com",
                    "mobile_number": "9000000000",
                    "shop_registration_number": "SR-9",
                    "status": "approved",
                    "tracking_number": "LA-0001",
                    "user_id": "u1",
                },
                {
                    "id": "l2",
                    "applicant_name": "Kirana",
                    "email": "k@example.com",
                    "mobile_number": "9000000001",
                    "shop_registration_number": "SR-10",
                    "status": "under_review",
                    "tracking_number": "LA-0002",
                    "user_id": "u2",
                    "created_at": "2026-04-05T00:00:00+00:00",
                },
            ],
            "water_samples": [
                {"id": "ws1", "name": "Asha", "mobile_number": "9000000002", "address": "Ward 4", "source_of_sample": "tap", "status": "pending", "created_at": "2026-04-06T00:00:00+00:00"},
            ],
            "water_test_reports": [],
        }
    )


def _runtime(**settings) -> PortalRuntime:
    return PortalRuntime.create(
        LabSyncSettings(query_retry=0, **settings),
        store=_store(),
        transport=InMemoryRealtimeTransport(),
    )


def test_admin_delete_reaches_unrelated_homepage_view():
    async def scenario() -> None:
        runtime = _runtime()
        store = runtime.store
        home = HomeView(runtime)
        admin = AdminSewerDataView(runtime)
        home.mount()
        admin.mount()
        await home.settle()
        await admin.settle()
        assert [r.id for r in home.sewer_data] == ["s2", "s1"]
        home_selects = store.calls.count("select", "sewer_quality_data")

        await admin.delete("s1")
        await home.settle()
        await admin.settle()

        assert [r.id for r in home.sewer_data] == ["s2"]
        assert [r.id for r in admin.rows] == ["s2"]
        assert store.calls.count("select", "sewer_quality_data") == home_selects + 2
        titles = [n.title for n in runtime.notifier.history]
        assert "Record deleted successfully" in titles
        assert "Sewer quality data updated" in titles

        home.unmount()
        admin.unmount()
        await runtime.close()

    run_async(scenario())


def test_failed_delete_is_reported_only_to_initiating_view():
    async def scenario() -> None:
        runtime = _runtime()
        home = HomeView(runtime)
        admin = AdminSewerDataView(runtime)
        home.mount()
        admin.mount()
        await home.settle()
        await admin.settle()
        runtime.store.fail_next(
            "delete", "sewer_quality_data", StoreError("permission denied", code="42501")
        )
        published = runtime.bus.published_count

        with pytest.raises(MutationError):
            await admin.delete("s1")
        await home.settle()

        assert runtime.bus.published_count == published
        assert [r.id for r in home.sewer_data] == ["s2", "s1"]
        assert runtime.notifier.history[-1].level == "error"
        assert runtime.notifier.history[-1].title == "Failed to delete record"

        home.unmount()
        admin.unmount()
        await runtime.close()

    run_async(scenario())


def test_fifty_mount_cycles_leave_no_channels_or_timers():
    async def scenario() -> None:
        runtime = _runtime()
        transport = runtime.transport
        for _ in range(50):
            home = HomeView(runtime)
            admin = AdminLabTestsView(runtime)
            home.mount()
            admin.mount()
            home.mount()
            assert len(transport.active_channels) == 1
            assert runtime.polls.active_count == 1
            admin.unmount()
            home.unmount()
            home.unmount()

        await asyncio.sleep(0)
        assert transport.active_channels == []
        assert transport.removed_count == 50
        assert runtime.polls.active_count == 0
        assert runtime.client.observer_count() == 0
        await runtime.close()

    run_async(scenario())


def test_views_sharing_a_timer_keep_exactly_one_running():
    async def scenario() -> None:
        runtime = _runtime()
        first = HomeView(runtime)
        second = HomeView(runtime)
        first.mount()
        second.mount()

        assert runtime.polls.refs(OPERATIONAL) == 2
        assert runtime.polls.active_count == 1

        first.unmount()
        assert runtime.polls.active_count == 1
        second.unmount()
        assert runtime.polls.active_count == 0
        await runtime.close()

    run_async(scenario())


def test_operational_poll_refreshes_homepage_silently():
    async def scenario() -> None:
        runtime = _runtime(poll_interval_s=0.02)
        home = HomeView(runtime)
        home.mount()
        await home.settle()

        runtime.store.seed(
            "sewer_quality_data",
            [{"id": "s9", "plant_id": "p1", "water_type": "inlet_water", "created_at": "2026-04-09T00:00:00+00:00"}],
        )
        for _ in range(100):
            await asyncio.sleep(0.01)
            if any(r.id == "s9" for r in home.sewer_data):
                break

        assert home.sewer_data[0].id == "s9"
        assert runtime.notifier.history == []

        home.unmount()
        await runtime.close()

    run_async(scenario())


def test_realtime_change_refreshes_lab_tests_with_notification():
    async def scenario() -> None:
        runtime = _runtime()
        view = AdminLabTestsView(runtime)
        view.mount()
        await view.settle()
        assert len(view.rows) == 2

        runtime.store.seed(
            "lab_tests",
            [{"id": "t3", "sample_id": "WS-3", "submitter_name": "Meena", "created_at": "2026-04-04T00:00:00+00:00"}],
        )
        runtime.transport.emit("lab_tests", "INSERT", new={"id": "t3"})
        await view.settle()

        assert [r.id for r in view.rows] == ["t3", "t2", "t1"]
        assert runtime.notifier.history[-1].title == "Lab tests updated"
        assert runtime.transport.active_channels[0].name == "table-db-changes"

        view.unmount()
        await runtime.close()

    run_async(scenario())


def test_lab_test_reports_delete_patches_cache_and_syncs_lab_reports():
    async def scenario() -> None:
        runtime = _runtime()
        reports = AdminLabTestReportsView(runtime)
        dashboard = AdminLabReportsView(runtime)
        reports.mount()
        dashboard.mount()
        assert runtime.polls.timer(LAB_REPORTS_POLL) is not None
        await reports.settle()
        await dashboard.settle()

        await reports.delete("t1")
        assert [r.id for r in reports.rows] == ["t2"]

        await dashboard.settle()
        assert [r.id for r in dashboard.reports] == ["t2"]
        assert [r.id for r in dashboard.search("ws-2")] == ["t2"]
        assert dashboard.search("") == dashboard.reports

        reports.unmount()
        dashboard.unmount()
        await runtime.close()

    run_async(scenario())


def test_admin_filter_change_switches_cache_key():
    async def scenario() -> None:
        runtime = _runtime()
        admin = AdminSewerDataView(runtime)
        admin.mount()
        await admin.settle()
        assert len(admin.rows) == 2
        old_key = admin.observer("rows").key

        admin.set_filters(water_type="outlet_water")
        await admin.settle()

        assert [r.id for r in admin.rows] == ["s2"]
        assert admin.observer("rows").key[3] == "outlet_water"
        assert runtime.client.observer_count(old_key) == 0
        assert runtime.client.observer_count(admin.observer("rows").key) == 1
        assert [p.name for p in admin.plants] == ["Jalalpur STP"]

        admin.unmount()
        await runtime.close()

    run_async(scenario())


def test_quality_chart_series_uses_latest_stage_readings():
    async def scenario() -> None:
        runtime = _runtime()
        chart = QualityChartView(runtime, plant_id="p1", kind="sewer")
        chart.mount()
        assert runtime.polls.timer(CHART_ANIMATION) is not None
        await chart.settle()

        series = {p.name: (p.before, p.after) for p in chart.series()}
        assert series["TSS"] == (210.0, 18.0)
        assert series["BOD"] == (140.0, 0.0)
        assert list(series) == ["TSS", "pH Value", "COD", "BOD", "Ammonical Nitrogen"]

        empty = QualityChartView(runtime, plant_id="nope", kind="water")
        empty.mount()
        await empty.settle()
        assert empty.series() == []

        chart.unmount()
        empty.unmount()
        assert runtime.polls.active_count == 0
        await runtime.close()

    run_async(scenario())


def test_quality_chart_rejects_unknown_kind():
    runtime = PortalRuntime.create(LabSyncSettings(), store=InMemoryDataStore())
    with pytest.raises(ValueError):
        QualityChartView(runtime, plant_id="p1", kind="air")  # type: ignore[arg-type]


def test_tracking_view_finds_and_misses_applications():
    async def scenario() -> None:
        runtime = _runtime()
        view = TrackingView(runtime)

        found = await view.track(" la-0001 ")
        assert found is not None
        assert found.is_approved
        assert status_step(found.status) == 3
        assert status_text("under_review") == "Under Review"

        missing = await view.track("LA-9999")
        assert missing is None
        assert view.application is None
        assert runtime.notifier.history[-1].title == "Not Found"

        assert await view.track("   ") is None
        assert runtime.notifier.history[-1].message == "Please enter a tracking number"

        view.unmount()
        await runtime.close()

    run_async(scenario())


def test_fetch_error_is_scoped_to_the_affected_view():
    async def scenario() -> None:
        runtime = _runtime()
        runtime.store.fail_next("select", "amrit_yojna_data", StoreError("JWT expired", code="PGRST301"))
        home = HomeView(runtime)
        home.mount()
        await home.settle()

        assert set(home.errors) == {"amrit"}
        assert home.amrit_data == []
        assert [r.id for r in home.sewer_data] == ["s2", "s1"]

        home.unmount()
        await runtime.close()

    run_async(scenario())


def test_render_callback_stops_after_unmount():
    async def scenario() -> None:
        runtime = PortalRuntime.create(
            LabSyncSettings(query_retry=0),
            store=InMemoryDataStore(
                {"lab_tests": [{"id": "t", "sample_id": "S", "submitter_name": "N"}]},
                latency_s=0.01,
            ),
        )
        rendered: list[str] = []
        view = AdminLabReportsView(runtime, on_render=lambda v, o: rendered.append(o.status))
        view.mount()
        assert rendered == ["loading"]
        view.unmount()
        await asyncio.sleep(0.03)

        assert rendered == ["loading"]
        assert runtime.client.get_query_data(("lab_reports",))[0].id == "t"
        await runtime.close()

    run_async(scenario())


def test_admin_screens_alone_stay_fresh_through_realtime_gap():
    async def scenario() -> None:
        runtime = _runtime(poll_interval_s=0.05)
        lab = AdminLabTestsView(runtime)
        sewer = AdminSewerDataView(runtime)
        lab.mount()
        sewer.mount()
        await lab.settle()
        await sewer.settle()
        assert runtime.polls.refs(OPERATIONAL) == 2
        assert runtime.polls.active_count == 1

        runtime.transport.drop_connection()
        runtime.store.seed(
            "lab_tests",
            [{"id": "t3", "sample_id": "WS-3", "submitter_name": "Meena", "created_at": "2026-04-04T00:00:00+00:00"}],
        )
        runtime.store.seed(
            "sewer_quality_data",
            [{"id": "s3", "plant_id": "p1", "water_type": "inlet_water", "created_at": "2026-04-09T00:00:00+00:00"}],
        )
        assert runtime.transport.emit("lab_tests", "INSERT", new={"id": "t3"}) == 0

        for _ in range(100):
            await asyncio.sleep(0.02)
            if lab.rows and lab.rows[0].id == "t3" and sewer.rows and sewer.rows[0].id == "s3":
                break

        assert lab.rows[0].id == "t3"
        assert sewer.rows[0].id == "s3"
        assert not any(n.title.endswith(" updated") for n in runtime.notifier.history)

        lab.unmount()
        sewer.unmount()
        assert runtime.polls.active_count == 0
        await runtime.close()

    run_async(scenario())


def test_admin_create_reaches_homepage_view():
    async def scenario() -> None:
        runtime = _runtime()
        home = HomeView(runtime)
        admin = AdminSewerDataView(runtime)
        home.mount()
        admin.mount()
        await home.settle()
        await admin.settle()

        created = await admin.create({"plant_id": "p1", "water_type": "outlet_water", "tss": "20"})
        await home.settle()
        await admin.settle()

        assert home.sewer_data[0].id == created["id"]
        assert admin.rows[0].id == created["id"]
        assert "Record added successfully" in [n.title for n in runtime.notifier.history]

        await admin.update(created["id"], {"tss": "22"})
        await home.settle()
        assert home.sewer_data[0].tss == "22"

        home.unmount()
        admin.unmount()
        await runtime.close()

    run_async(scenario())


def test_license_status_update_refreshes_public_tracking():
    async def scenario() -> None:
        runtime = _runtime()
        tracking = TrackingView(runtime)
        found = await tracking.track("LA-0002")
        assert found is not None and found.status == "under_review"

        admin = AdminLicenseApplicationsView(runtime)
        admin.mount()
        await admin.settle()
        assert [a.id for a in admin.applications] == ["l1", "l2"]

        await admin.update_status("l2", "approved")
        await tracking.settle()
        await admin.settle()

        assert tracking.application is not None
        assert tracking.application.status == "approved"
        assert {a.id: a.status for a in admin.applications}["l2"] == "approved"
        toast = next(n for n in runtime.notifier.history if n.title == "Status Updated")
        assert toast.message == "Application marked as approved"

        await admin.update_status("l2", "under_review")
        assert runtime.notifier.history[-1].message == "Application marked as under review"

        with pytest.raises(ValueError):
            await admin.update_status("l2", "  ")

        tracking.unmount()
        admin.unmount()
        await runtime.close()

    run_async(scenario())


def test_submitted_report_marks_sample_treated():
    async def scenario() -> None:
        runtime = _runtime()
        view = AdminWaterSamplesView(runtime)
        view.mount()
        view.open_report("ws1")
        await view.settle()
        assert view.report is None
        assert view.samples[0].status == "pending"

        await view.submit_report("ws1", {"ph_level": 7.2, "tds": 180.0, "ecoli": "absent"})
        await view.settle()

        assert view.samples[0].is_treated
        assert view.report is not None
        assert view.report.ph_level == 7.2
        assert view.report.ecoli == "absent"
        assert any(
            n.level == "success" and n.message == REPORT_SUBMITTED
            for n in runtime.notifier.history
        )

        view.unmount()
        await runtime.close()

    run_async(scenario())


def test_failed_report_submission_leaves_sample_pending():
    async def scenario() -> None:
        runtime = _runtime()
        view = AdminWaterSamplesView(runtime)
        view.mount()
        await view.settle()
        runtime.store.fail_next(
            "insert", "water_test_reports", StoreError("violates check constraint", code="23514")
        )

        with pytest.raises(MutationError):
            await view.submit_report("ws1", {"ph_level": 99.0})
        await view.settle()

        assert view.samples[0].status == "pending"
        assert runtime.store.calls.count("update", "water_samples") == 0
        assert runtime.notifier.history[-1].level == "error"
        assert runtime.notifier.history[-1].title == REPORT_FAILED

        view.unmount()
        await runtime.close()

    run_async(scenario())
