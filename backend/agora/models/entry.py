"""Entry database model."""

from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
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


class Entry(Base, UUIDMixin):
    """One participant's commitment to an event."""

    __tablename__ = "entries"

    event_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String(64), nullable=False)

    chosen_option_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("event_options.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Fee commitment (pot-mode wagers)
    fee_commitment_state = Column(String(10), nullable=False, default="none")
    committed_amount = Column(Numeric(20, 9), nullable=False, default=Decimal("0"))

    # Counted towards current_participant_count
    is_participant = Column(Boolean, nullable=False, default=False)

    payout_address_snapshot = Column(String(128), nullable=True)

    # Set by settlement only
    is_winner = Column(Boolean, nullable=False, default=False)

    joined_at = Column(DateTime(timezone=True), nullable=True)
    created_at = utc_timestamp()

    event = relationship("Event", back_populates="entries")

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_entry_event_user"),
        CheckConstraint(
            "fee_commitment_state IN ('none', 'pending', 'committed')",
            name="valid_fee_commitment_state",
        ),
        CheckConstraint("committed_amount >= 0", name="non_negative_commitment"),
        Index("idx_entries_event_participant", "event_id", "is_participant"),
    )

    def __repr__(self) -> str:
        return f"<Entry {self.user_id} on {self.event_id} ({self.fee_commitment_state})>"
