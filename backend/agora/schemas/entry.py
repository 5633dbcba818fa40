"""Entry Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field

from agora.models.enums import FeeCommitmentState
from agora.schemas.common import BaseSchema


class JoinRequest(BaseSchema):
    user_id: str = Field(min_length=1, max_length=64)


class OptionChoiceRequest(BaseSchema):
    """Vote (vote events) or slot selection (wager events)."""

    user_id: str = Field(min_length=1, max_length=64)
    option_id: UUID


class CommitRequest(BaseSchema):
    user_id: str = Field(min_length=1, max_length=64)


class EntryResponse(BaseSchema):
    """Entry response schema."""

    id: UUID
    event_id: UUID
    user_id: str
    chosen_option_id: Optional[UUID]
    fee_commitment_state: FeeCommitmentState
    committed_amount: Decimal
    is_participant: bool
    is_winner: bool
    joined_at: Optional[datetime]
