"""Pydantic schemas for API request/response models."""

from agora.schemas.common import BaseSchema, ErrorResponse, TimestampSchema
from agora.schemas.entry import (
    CommitRequest,
    EntryResponse,
    JoinRequest,
    OptionChoiceRequest,
)
from agora.schemas.event import (
    CancelRequest,
    EventCreate,
    EventOptionResponse,
    EventResponse,
)
from agora.schemas.settlement import OptionTally, PayoutResult, SettlementResult
from agora.schemas.treasury import (
    BudgetUpdate,
    TreasuryResponse,
    TreasuryUpsert,
    WalletResponse,
    WalletUpdate,
)

__all__ = [
    # Common
    "BaseSchema",
    "ErrorResponse",
    "TimestampSchema",
    # Event
    "CancelRequest",
    "EventCreate",
    "EventOptionResponse",
    "EventResponse",
    # Entry
    "CommitRequest",
    "EntryResponse",
    "JoinRequest",
    "OptionChoiceRequest",
    # Treasury
    "BudgetUpdate",
    "TreasuryResponse",
    "TreasuryUpsert",
    "WalletResponse",
    "WalletUpdate",
    # Settlement
    "OptionTally",
    "PayoutResult",
    "SettlementResult",
]
