"""Shared schema bases for API payloads."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    # Responses are built straight from ORM rows
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class TimestampSchema(BaseSchema):
    created_at: datetime
    updated_at: datetime


class ErrorResponse(BaseModel):
    """Body of every 4xx/5xx raised from an ``AgoraError``."""

    error: str
    message: str
    details: Optional[dict[str, Any]] = None
