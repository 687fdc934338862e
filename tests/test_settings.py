from __future__ import annotations

import pytest

from labsync.errors import SettingsError
from labsync.query.options import QueryOptions
from labsync.settings import LabSyncSettings

_VARS = (
    "LABSYNC_STORE_URL",
    "LABSYNC_STORE_API_KEY",
    "LABSYNC_STORE_BACKEND",
    "LABSYNC_STALE_TIME_S",
    "LABSYNC_QUERY_RETRY",
    "LABSYNC_POLL_INTERVAL_S",
    "LABSYNC_CHART_INTERVAL_S",
    "LABSYNC_LAB_REPORTS_INTERVAL_S",
    "LABSYNC_REDIS_URL",
    "LABSYNC_REDIS_CHANNEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_from_env_defaults():
    settings = LabSyncSettings.from_env()
    assert settings.store_backend == "inmemory"
    assert settings.poll_interval_s == 10.0
    assert settings.chart_interval_s == 30.0
    assert settings.lab_reports_interval_s == 9.0
    assert settings.redis_url is None
    assert settings.redis_channel == "labsync:invalidations"


def test_from_env_reads_overrides(monkeypatch):
    monkeypatch.setenv("LABSYNC_STORE_BACKEND", " REST ")
    monkeypatch.setenv("LABSYNC_STORE_URL", "https://db.example.co")
    monkeypatch.setenv("LABSYNC_QUERY_RETRY", "1")
    monkeypatch.setenv("LABSYNC_POLL_INTERVAL_S", "2.5")
    monkeypatch.setenv("LABSYNC_REDIS_CHANNEL", "   ")

    settings = LabSyncSettings.from_env()

    assert settings.store_backend == "rest"
    assert settings.store_url == "https://db.example.co"
    assert settings.query_retry == 1
    assert settings.poll_interval_s == 2.5
    assert settings.redis_channel == "labsync:invalidations"


def test_from_env_rejects_malformed_numbers(monkeypatch):
    monkeypatch.setenv("LABSYNC_POLL_INTERVAL_S", "ten")
    with pytest.raises(SettingsError, match="LABSYNC_POLL_INTERVAL_S"):
        LabSyncSettings.from_env()

    monkeypatch.setenv("LABSYNC_POLL_INTERVAL_S", "10")
    monkeypatch.setenv("LABSYNC_QUERY_RETRY", "2.5")
    with pytest.raises(SettingsError, match="integer"):
        LabSyncSettings.from_env()


def test_constructor_validates_ranges():
    with pytest.raises(SettingsError):
        LabSyncSettings(query_retry=-1)
    with pytest.raises(SettingsError, match="chart_interval_s"):
        LabSyncSettings(chart_interval_s=0)
    with pytest.raises(SettingsError, match="gc_time_s"):
        LabSyncSettings(gc_time_s=-5)


def test_negative_stale_time_from_env_is_a_settings_error(monkeypatch):
    monkeypatch.setenv("LABSYNC_STALE_TIME_S", "-1")
    with pytest.raises(SettingsError, match="stale_time_s"):
        LabSyncSettings.from_env()


def test_query_options_follow_settings():
    options = QueryOptions.from_settings(
        LabSyncSettings(stale_time_s=5.0, query_retry=2, request_timeout_s=4.0)
    )
    assert options.stale_time_s == 5.0
    assert options.retry == 2
    assert options.timeout_s == 4.0
