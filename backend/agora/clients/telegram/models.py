"""Telegram delivery models."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class NotificationResult(BaseModel):
    """Outcome of delivering one announcement (possibly several messages)."""

    success: bool
    recipient: str
    message_ids: list[int] = Field(default_factory=list)
    error: str | None = None
    retry_count: int = 0
    sent_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
