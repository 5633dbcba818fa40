"""Event and option database models."""

from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from agora.database.base import Base
from agora.models.base import JSONVariant, TimestampMixin, UUIDMixin


class Event(Base, UUIDMixin, TimestampMixin):
    """Time-boxed community event run on behalf of a tenant."""

    __tablename__ = "events"

    tenant_id = Column(String(64), nullable=False, index=True)

    # Event details
    kind = Column(String(10), nullable=False)
    mode = Column(String(10), nullable=False, default="house")
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")

    # Prize configuration
    prize_amount = Column(Numeric(20, 9), nullable=False, default=Decimal("0"))
    entry_fee = Column(Numeric(20, 9), nullable=False, default=Decimal("0"))
    currency = Column(String(10), nullable=False, default="SOL")

    # Capacity
    min_participants = Column(Integer, nullable=False, default=1)
    max_participants = Column(Integer, nullable=True)
    current_participant_count = Column(Integer, nullable=False, default=0)

    # Lifecycle
    status = Column(String(20), nullable=False, default="draft")
    duration_minutes = Column(Integer, nullable=True)
    deadline = Column(DateTime(timezone=True), nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=True)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    settlement_trigger = Column(String(20), nullable=True)
    cancel_reason = Column(String(200), nullable=True)

    # Vote: private administrator favorite, never exposed before settlement
    admin_favorite_option_id = Column(Uuid(as_uuid=True), nullable=True)

    # Outcome
    winning_option_id = Column(Uuid(as_uuid=True), nullable=True)

    # Wager: provably-fair draw
    server_seed = Column(String(64), nullable=True)
    server_seed_hash = Column(String(64), nullable=True)
    draw_proof = Column(JSONVariant, nullable=True)

    # Presentation
    announcement_channel = Column(String(100), nullable=True)
    created_by = Column(String(64), nullable=True)

    # Relationships
    options = relationship(
        "EventOption",
        back_populates="event",
        order_by="EventOption.display_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    entries = relationship(
        "Entry",
        back_populates="event",
        lazy="raise",
        cascade="all, delete-orphan",
    )
    payouts = relationship(
        "Payout",
        back_populates="event",
        lazy="raise",
        cascade="all, delete-orphan",
    )

    # Constraints
    __table_args__ = (
        CheckConstraint(
            "kind IN ('vote', 'wager')",
            name="valid_event_kind",
        ),
        CheckConstraint(
            "mode IN ('house', 'pot')",
            name="valid_prize_mode",
        ),
        CheckConstraint(
            "status IN ('draft', 'active', 'ended', 'cancelled', 'completed')",
            name="valid_event_status",
        ),
        CheckConstraint(
            "max_participants IS NULL OR current_participant_count <= max_participants",
            name="participants_within_capacity",
        ),
        CheckConstraint("current_participant_count >= 0", name="non_negative_participants"),
        CheckConstraint("prize_amount >= 0", name="non_negative_prize"),
        CheckConstraint("entry_fee >= 0", name="non_negative_entry_fee"),
        Index("idx_events_status_deadline", "status", "deadline"),
    )

    def __repr__(self) -> str:
        return f"<Event {self.title[:50]} ({self.kind}/{self.status})>"


class EventOption(Base, UUIDMixin):
    """Choosable option: an image for vote events, a slot for wagers."""

    __tablename__ = "event_options"

    event_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    display_order = Column(Integer, nullable=False)
    label = Column(String(200), nullable=False)

    event = relationship("Event", back_populates="options")

    __table_args__ = (
        UniqueConstraint("event_id", "display_order", name="uq_option_order"),
    )

    def __repr__(self) -> str:
        return f"<EventOption {self.display_order}: {self.label}>"
