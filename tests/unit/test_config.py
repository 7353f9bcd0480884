"""Tests for settings defaults and the production guard."""

import warnings

import pytest

from feedback_engine.common.config import EPHEMERAL_DB_URL, FeedbackSettings


class TestDefaults:
    def test_no_storage_by_default(self):
        settings = FeedbackSettings(db_url="")
        assert settings.storage_configured is False
        assert settings.effective_db_url == EPHEMERAL_DB_URL

    def test_configured_storage(self):
        settings = FeedbackSettings(db_url="sqlite+aiosqlite:///feedback.db")
        assert settings.storage_configured is True
        assert settings.effective_db_url == "sqlite+aiosqlite:///feedback.db"

    def test_rate_limit_defaults(self, monkeypatch):
        monkeypatch.delenv("FEEDBACK_RATE_LIMIT_MAX", raising=False)
        monkeypatch.delenv("FEEDBACK_RATE_LIMIT_WINDOW_MS", raising=False)
        settings = FeedbackSettings()
        assert settings.rate_limit_window_ms == 60_000
        assert settings.rate_limit_max == 30

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("FEEDBACK_RATE_LIMIT_MAX", "7")
        assert FeedbackSettings().rate_limit_max == 7


class TestProductionGuard:
    def test_open_dashboard_refused_outside_development(self):
        settings = FeedbackSettings(environment="production", dashboard_token=None)
        with pytest.raises(RuntimeError, match="FEEDBACK_DASHBOARD_TOKEN"):
            settings.validate_for_production()

    def test_token_set_in_production(self):
        settings = FeedbackSettings(
            environment="production", dashboard_token="s3cret", db_url="",
        )
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            settings.validate_for_production()

    def test_open_dashboard_warns_in_development(self):
        settings = FeedbackSettings(environment="development", dashboard_token=None)
        with pytest.warns(UserWarning, match="dev-account"):
            settings.validate_for_production()

    def test_dev_key_with_storage_warns(self):
        settings = FeedbackSettings(
            dashboard_token="s3cret", dev_api_key="k", db_url="sqlite+aiosqlite://",
        )
        with pytest.warns(UserWarning, match="FEEDBACK_DEV_API_KEY"):
            settings.validate_for_production()
