"""Database models module."""

from agora.models.entry import Entry
from agora.models.enums import (
    EventKind,
    EventStatus,
    FeeCommitmentState,
    PayoutKind,
    PayoutOutcome,
    PrizeMode,
    SettlementTrigger,
)
from agora.models.event import Event, EventOption
from agora.models.payout import Payout
from agora.models.treasury import Treasury, UserWallet

__all__ = [
    "Entry",
    "Event",
    "EventOption",
    "Payout",
    "Treasury",
    "UserWallet",
    "EventKind",
    "EventStatus",
    "FeeCommitmentState",
    "PayoutKind",
    "PayoutOutcome",
    "PrizeMode",
    "SettlementTrigger",
]
