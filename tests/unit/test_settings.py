"""Tests for application settings."""

from src.config import get_settings, reset_settings
from src.config.settings import FiscalSettings, PricingSettings


class TestSettings:
    """Tests for settings defaults and environment overrides."""

    def test_pricing_defaults(self):
        pricing = PricingSettings()

        assert pricing.aggregate_epsilon == 1e-3
        assert pricing.audit_tolerance == 0.01
        assert pricing.clamp_line_totals is False

    def test_fiscal_timeout_default(self):
        assert FiscalSettings().timeout_seconds == 30.0

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PRICING_CLAMP_LINE_TOTALS", "true")
        monkeypatch.setenv("FISCAL_ENABLED", "false")
        reset_settings()

        settings = get_settings()

        assert settings.pricing.clamp_line_totals is True
        assert settings.fiscal.enabled is False

    def test_data_dir_created(self):
        assert get_settings().storage.data_dir.is_dir()

    def test_singleton(self):
        assert get_settings() is get_settings()
