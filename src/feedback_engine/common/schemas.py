"""Shared Pydantic schemas for Feedback-Engine."""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire format is camelCase; Python attributes stay snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    service: str = "feedback-engine"


class ReadyResponse(BaseModel):
    status: str
    reason: Optional[str] = None


class ErrorResponse(CamelModel):
    error: str
    message: Optional[str] = None
    retry_after_seconds: Optional[int] = None
