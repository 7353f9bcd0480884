"""Pydantic schemas for feedback endpoints."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import Field, model_validator

from feedback_engine.common.schemas import CamelModel

FeedbackType = Literal["bug_report", "feature_request", "general"]
IdentityOption = Literal["anonymous", "userId", "usernameUserId"]
Severity = Literal["low", "medium", "high", "critical"]
FeedbackStatus = Literal["new", "triaged", "resolved", "ignored"]

FEEDBACK_STATUSES: tuple[str, ...] = ("new", "triaged", "resolved", "ignored")
OPEN_STATUSES: tuple[str, ...] = ("new", "triaged")


class FeedbackIdentity(CamelModel):
    user_id: Optional[str] = Field(default=None, min_length=1)
    username: Optional[str] = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _require_one(self):
        if not (self.user_id or self.username):
            raise ValueError("Identity must include userId and/or username.")
        return self


class FeedbackCreate(CamelModel):
    type: FeedbackType
    identity_option: IdentityOption
    body: str = Field(..., min_length=1, max_length=4000)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    tags: Optional[list[str]] = Field(default=None, max_length=10)
    severity: Optional[Severity] = None
    identity: Optional[FeedbackIdentity] = None
    metadata: Optional[dict[str, Any]] = None

    @model_validator(mode="after")
    def _check_identity(self):
        if self.identity_option == "anonymous" and self.identity is not None:
            raise ValueError("Identity must be omitted when identityOption is anonymous.")
        for tag in self.tags or []:
            if not 1 <= len(tag) <= 50:
                raise ValueError("Tags must be between 1 and 50 characters.")
        return self


class FeedbackCreateResponse(CamelModel):
    id: str


class FeedbackResponse(CamelModel):
    id: str
    game_id: str
    type: str
    identity_option: str
    status: str
    body: str
    category: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    severity: Optional[str] = None
    identity: Optional[dict[str, Any]] = None
    metadata: Optional[dict[str, Any]] = None
    developer_notes: Optional[str] = None
    created_at: datetime


class FeedbackListResponse(CamelModel):
    feedback: list[FeedbackResponse]


class FeedbackUpdate(CamelModel):
    status: Optional[str] = None
    developer_notes: Optional[str] = None


class BulkDeleteRequest(CamelModel):
    ids: list[Any] = Field(default_factory=list)


class BulkDeleteResponse(CamelModel):
    deleted: int


class DailyCount(CamelModel):
    date: str
    count: int


class FeedbackStats(CamelModel):
    total: int
    open_count: int
    resolved_count: int
    bug_pct: int
    by_status: dict[str, int]
    by_type: dict[str, int]
    last7_days: list[DailyCount]
