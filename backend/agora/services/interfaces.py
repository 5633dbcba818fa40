"""
Collaborator interfaces consumed by the settlement engine.

The engine only relies on these shapes; the concrete HTTP clients in
``agora.clients`` satisfy them, and tests substitute in-memory fakes.
"""

from decimal import Decimal
from typing import Optional, Protocol, runtime_checkable

from agora.clients.ledger.models import TransferResult
from agora.clients.price_oracle.models import ExchangeRate
from agora.schemas.settlement import SettlementResult


@runtime_checkable
class PriceOracle(Protocol):
    """Fresh exchange rates; raises on any failure."""

    async def get_rate(self, currency_pair: str) -> ExchangeRate:
        ...


@runtime_checkable
class LedgerTransferClient(Protocol):
    """Submit-and-confirm transfers against the external network."""

    async def transfer(
        self,
        from_wallet_secret: str,
        to_address: str,
        amount: Decimal,
        network: Optional[str] = None,
    ) -> TransferResult:
        ...

    async def get_balance(self, address: str, network: Optional[str] = None) -> Decimal:
        ...


@runtime_checkable
class TreasurySecretResolver(Protocol):
    """Returns the plaintext secret, or None when it cannot be recovered."""

    def decrypt(self, encrypted_secret: str) -> Optional[str]:
        ...


@runtime_checkable
class AnnouncementSink(Protocol):
    """Best-effort delivery of a settlement summary to participants."""

    async def publish_result(self, event_id, summary: SettlementResult) -> None:
        ...
