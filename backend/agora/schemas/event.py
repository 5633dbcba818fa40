"""Event Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from agora.models.enums import EventKind, EventStatus, PrizeMode, SettlementTrigger
from agora.schemas.common import BaseSchema, TimestampSchema


class EventCreate(BaseSchema):
    """Event creation schema (always created as draft)."""

    kind: EventKind
    mode: PrizeMode = PrizeMode.HOUSE
    title: str = Field(min_length=1, max_length=200)
    description: str = ""

    prize_amount: Decimal = Field(default=Decimal("0"), ge=0)
    entry_fee: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = Field(default="SOL", min_length=2, max_length=10)

    min_participants: int = Field(default=1, ge=1)
    max_participants: Optional[int] = Field(default=None, ge=1)
    duration_minutes: Optional[int] = Field(default=None, ge=1)

    # Option labels; wagers fall back to default slots when empty
    options: list[str] = Field(default_factory=list)
    slot_count: Optional[int] = None

    # Vote only: position in ``options`` of the private favorite
    favorite_option_index: Optional[int] = Field(default=None, ge=0)

    announcement_channel: Optional[str] = None
    created_by: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.strip().upper()


class CancelRequest(BaseSchema):
    """Administrator cancellation."""

    reason: str = Field(default="cancelled_by_admin", max_length=200)


class EventOptionResponse(BaseSchema):
    """Option as shown to participants."""

    id: UUID
    display_order: int
    label: str


class EventResponse(TimestampSchema):
    """Event response schema; never carries the favorite or the raw seed."""

    id: UUID
    tenant_id: str
    kind: EventKind
    mode: PrizeMode
    title: str
    description: str
    prize_amount: Decimal
    entry_fee: Decimal
    currency: str
    min_participants: int
    max_participants: Optional[int]
    current_participant_count: int
    status: EventStatus
    duration_minutes: Optional[int]
    deadline: Optional[datetime]
    published_at: Optional[datetime]
    ended_at: Optional[datetime]
    completed_at: Optional[datetime]
    settlement_trigger: Optional[SettlementTrigger]
    cancel_reason: Optional[str]
    winning_option_id: Optional[UUID]
    server_seed_hash: Optional[str]
    options: list[EventOptionResponse] = Field(default_factory=list)
