"""Settlement result payload."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import Field

from agora.models.enums import EventStatus, PayoutKind, PayoutOutcome, SettlementTrigger
from agora.schemas.common import BaseSchema


class PayoutResult(BaseSchema):
    """One payout attempt as reported to callers."""

    recipient: str
    recipient_address: Optional[str] = None
    kind: PayoutKind = PayoutKind.PRIZE
    amount: Decimal
    currency: str
    exchange_rate: Optional[Decimal] = None
    outcome: PayoutOutcome
    transfer_id: Optional[str] = None
    failure_reason: Optional[str] = None


class OptionTally(BaseSchema):
    option_id: UUID
    label: str
    display_order: int
    count: int


class SettlementResult(BaseSchema):
    """Outcome of settling (or cancelling) an event."""

    event_id: UUID
    tenant_id: str
    title: str
    status: EventStatus
    trigger: Optional[SettlementTrigger] = None
    winning_option_id: Optional[UUID] = None
    winning_option_label: Optional[str] = None
    winner_user_ids: list[str] = Field(default_factory=list)
    payouts: list[PayoutResult] = Field(default_factory=list)
    option_tallies: list[OptionTally] = Field(default_factory=list)
    participant_count: int = 0
    min_participants: int = 1
    cancel_reason: Optional[str] = None
    draw_proof: Optional[dict[str, Any]] = None
    announcement_channel: Optional[str] = None
    completed_at: Optional[datetime] = None

    @property
    def confirmed_payouts(self) -> list[PayoutResult]:
        return [p for p in self.payouts if p.outcome == PayoutOutcome.CONFIRMED]

    @property
    def failed_payouts(self) -> list[PayoutResult]:
        return [p for p in self.payouts if p.outcome == PayoutOutcome.FAILED]
