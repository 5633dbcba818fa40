"""Ledger transfer client."""

from .client import LedgerClient, create_ledger_client
from .exceptions import LedgerError, LedgerNetworkError, LedgerRPCError
from .models import TransferResult

__all__ = [
    "LedgerClient",
    "create_ledger_client",
    "TransferResult",
    "LedgerError",
    "LedgerNetworkError",
    "LedgerRPCError",
]
