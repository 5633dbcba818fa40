"""Services module."""

from agora.services.entry_service import entry_service
from agora.services.event_service import event_service
from agora.services.settlement_service import settlement_service
from agora.services.treasury_service import treasury_service
from agora.services.wallet_service import wallet_service

__all__ = [
    "entry_service",
    "event_service",
    "settlement_service",
    "treasury_service",
    "wallet_service",
]
