"""Tests for analytics settings."""

import pytest
from inventory_pro.config import AnalyticsSettings, get_settings
from inventory_pro.time_buckets import ReportPeriod
from pydantic import ValidationError


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestAnalyticsSettings:
    def test_defaults(self, monkeypatch):
        for name in ("STORE_NAME", "DEFAULT_PERIOD", "SIDECAR_PORT"):
            monkeypatch.delenv(f"INVENTORY_PRO_{name}", raising=False)
        settings = AnalyticsSettings(_env_file=None)
        assert settings.store_name == "Inventory Pro"
        assert settings.default_period is ReportPeriod.MONTH
        assert settings.top_products == 10
        assert settings.sidecar_port == 8002
        assert settings.sidecar_dev_mode is False

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("INVENTORY_PRO_STORE_NAME", "Main Street")
        monkeypatch.setenv("INVENTORY_PRO_DEFAULT_PERIOD", "week")
        monkeypatch.setenv("INVENTORY_PRO_SIDECAR_DEV_MODE", "true")
        settings = AnalyticsSettings(_env_file=None)
        assert settings.store_name == "Main Street"
        assert settings.default_period is ReportPeriod.WEEK
        assert settings.sidecar_dev_mode is True

    def test_rejects_negative_limits(self):
        with pytest.raises(ValidationError):
            AnalyticsSettings(_env_file=None, top_products=-1)

    def test_get_settings_is_cached(self, monkeypatch):
        monkeypatch.setenv("INVENTORY_PRO_STORE_NAME", "Cached")
        first = get_settings()
        monkeypatch.setenv("INVENTORY_PRO_STORE_NAME", "Changed")
        assert get_settings() is first
        assert first.store_name == "Cached"
