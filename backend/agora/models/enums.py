"""Enumerations shared by models, services and schemas."""

from enum import Enum


class EventKind(str, Enum):
    """Event kind; selects the winner policy."""

    VOTE = "vote"
    WAGER = "wager"


class PrizeMode(str, Enum):
    """How the prize is funded."""

    HOUSE = "house"
    POT = "pot"


class EventStatus(str, Enum):
    """Event lifecycle status."""

    DRAFT = "draft"
    ACTIVE = "active"
    ENDED = "ended"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class FeeCommitmentState(str, Enum):
    """Entry fee commitment state for pot-mode wagers."""

    NONE = "none"
    PENDING = "pending"
    COMMITTED = "committed"


class PayoutKind(str, Enum):
    """Why a payout was made."""

    PRIZE = "prize"
    REFUND = "refund"


class PayoutOutcome(str, Enum):
    """Observed outcome of a payout attempt."""

    CONFIRMED = "confirmed"
    FAILED = "failed"


class SettlementTrigger(str, Enum):
    """What invoked settlement."""

    DEADLINE = "deadline"
    CAPACITY = "capacity"
    MANUAL = "manual"
    ADMIN_CANCEL = "admin_cancel"
