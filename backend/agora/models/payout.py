"""Payout audit record model."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from agora.database.base import Base
from agora.models.base import UUIDMixin, utc_timestamp


class Payout(Base, UUIDMixin):
    """Append-only record of one transfer attempt from a treasury."""

    __tablename__ = "payouts"

    event_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tenant_id = Column(String(64), nullable=False)
    kind = Column(String(10), nullable=False, default="prize")

    recipient_user_id = Column(String(64), nullable=False)
    recipient_address = Column(String(128), nullable=True)

    amount = Column(Numeric(20, 9), nullable=False)
    currency_at_transfer = Column(String(10), nullable=False)
    exchange_rate = Column(Numeric(20, 9), nullable=True)

    transfer_id = Column(String(128), nullable=True)
    outcome = Column(String(10), nullable=False)
    failure_reason = Column(String(255), nullable=True)

    created_at = utc_timestamp()

    event = relationship("Event", back_populates="payouts")

    __table_args__ = (
        UniqueConstraint(
            "event_id", "recipient_user_id", "kind", name="uq_payout_event_recipient_kind"
        ),
        CheckConstraint("kind IN ('prize', 'refund')", name="valid_payout_kind"),
        CheckConstraint("outcome IN ('confirmed', 'failed')", name="valid_payout_outcome"),
        CheckConstraint("amount >= 0", name="non_negative_payout"),
        Index("idx_payouts_outcome", "outcome"),
    )

    def __repr__(self) -> str:
        return f"<Payout {self.kind} {self.amount} {self.currency_at_transfer} -> {self.recipient_user_id} ({self.outcome})>"
