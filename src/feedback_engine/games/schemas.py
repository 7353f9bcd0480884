"""Pydantic schemas for game endpoints."""

from typing import Optional

from pydantic import Field

from feedback_engine.common.schemas import CamelModel


class RateLimitOverride(CamelModel):
    window_ms: Optional[int] = Field(default=None, ge=1)
    max: Optional[int] = Field(default=None, ge=0)


class FeatureToggles(CamelModel):
    categories: Optional[bool] = None
    severity: Optional[bool] = None
    attachments: Optional[bool] = None
    status_visibility: Optional[bool] = None


class GameSettings(CamelModel):
    rate_limit: Optional[RateLimitOverride] = None
    features: Optional[FeatureToggles] = None

    @classmethod
    def from_stored(cls, raw: dict | None) -> "GameSettings":
        return cls.model_validate(raw or {})

    def to_stored(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class GameStatsSummary(CamelModel):
    open_count: int
    bug_pct: int
    reports7d: int = Field(alias="reports7d")


class GameResponse(CamelModel):
    id: str
    name: str
    settings: GameSettings = Field(default_factory=GameSettings)
    stats: Optional[GameStatsSummary] = None


class GameListResponse(CamelModel):
    games: list[GameResponse]


class GameCreate(CamelModel):
    name: Optional[str] = None
    beta_access_key: Optional[str] = None


class GameCreateResponse(CamelModel):
    """Includes the raw API key, returned only once at creation time."""
    game: GameResponse
    api_key: str


class GameUpdate(CamelModel):
    name: Optional[str] = Field(default=None, max_length=255)
    settings: Optional[GameSettings] = None


class ApiKeyResponse(CamelModel):
    api_key: str
