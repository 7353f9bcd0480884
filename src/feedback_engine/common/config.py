"""Feedback-Engine configuration via pydantic-settings."""

import warnings
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ACCOUNT_ID = "dev-account"
EPHEMERAL_DB_URL = "sqlite+aiosqlite://"


class FeedbackSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FEEDBACK_")

    environment: str = "development"

    # Database. Empty means no persistent storage: an in-memory store is
    # used and the development credential bypass becomes reachable.
    db_url: str = ""

    # API
    api_title: str = "Feedback-Engine"
    api_version: str = "0.1.0"
    host: str = "0.0.0.0"
    port: int = 4000
    api_prefix: str = "/v1"
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"

    # Rate limiting defaults (per game + end-user identity)
    rate_limit_window_ms: int = 60_000
    rate_limit_max: int = 30
    rate_limit_max_buckets: int = 100_000
    rate_limit_sweep_interval_seconds: float = 60.0

    # Development-only credential, honoured only without persistent storage
    dev_api_key: Optional[str] = None
    dev_game_id: Optional[str] = None

    # Dashboard gate. Without a token every caller is DEFAULT_ACCOUNT_ID.
    dashboard_token: Optional[str] = None
    dashboard_account_id: Optional[str] = None

    # Beta gate on game creation
    beta_access_required: bool = False

    @property
    def storage_configured(self) -> bool:
        return bool(self.db_url)

    @property
    def effective_db_url(self) -> str:
        return self.db_url or EPHEMERAL_DB_URL

    @property
    def dashboard_open(self) -> bool:
        return not self.dashboard_token

    def validate_for_production(self) -> None:
        """Raise if the dashboard gate is open outside development."""
        if self.environment != "development" and self.dashboard_open:
            raise RuntimeError(
                f"Dashboard authentication is disabled in '{self.environment}' environment. "
                "Set FEEDBACK_DASHBOARD_TOKEN (and FEEDBACK_DASHBOARD_ACCOUNT_ID) to a secret value. "
                "Generate one with: feedback seed-account"
            )

        if self.dashboard_open:
            warnings.warn(
                "FEEDBACK_DASHBOARD_TOKEN is not set: every dashboard caller is treated as "
                f"'{DEFAULT_ACCOUNT_ID}'. Never expose this configuration on a shared deployment.",
                UserWarning,
                stacklevel=2,
            )

        if self.storage_configured and self.dev_api_key:
            warnings.warn(
                "FEEDBACK_DEV_API_KEY is ignored because FEEDBACK_DB_URL is configured",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> FeedbackSettings:
    settings = FeedbackSettings()
    settings.validate_for_production()
    return settings
