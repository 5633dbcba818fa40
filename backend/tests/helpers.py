"""In-memory collaborators and setup helpers shared by the test suites."""

import asyncio
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update

from agora.clients.ledger.models import TransferResult
from agora.clients.price_oracle.models import ExchangeRate, parse_pair
from agora.models import Event, Payout, Treasury
from agora.schemas import EventCreate
from agora.services import event_service, treasury_service, wallet_service
from agora.utils.encryption import SecretResolver, generate_key
from agora.utils.time_utils import utcnow


class FakeOracle:
    def __init__(self, rate: Decimal = Decimal("100")):
        self.rate = rate
        self.error: Optional[Exception] = None
        self.calls: list[str] = []

    async def get_rate(self, currency_pair: str) -> ExchangeRate:
        self.calls.append(currency_pair)
        if self.error is not None:
            raise self.error
        base, quote = parse_pair(currency_pair)
        return ExchangeRate(base=base, quote=quote, rate=self.rate)


class FakeLedger:
    def __init__(self):
        self.balances: dict[str, Decimal] = {}
        self.default_balance = Decimal("1000")
        self.failing: set[str] = set()
        self.hanging: set[str] = set()
        self.transfers: list[tuple[str, Decimal]] = []
        self.secrets_seen: list[str] = []
        self.balance_error: Optional[Exception] = None

    async def transfer(self, from_wallet_secret, to_address, amount, network=None) -> TransferResult:
        self.secrets_seen.append(from_wallet_secret)
        if to_address in self.hanging:
            await asyncio.sleep(3600)
        if to_address in self.failing:
            return TransferResult(
                success=False, error="rpc_error", reason="rejected", amount=amount, to_address=to_address
            )
        self.transfers.append((to_address, amount))
        return TransferResult(
            success=True,
            transfer_id=f"tx{len(self.transfers)}",
            amount=amount,
            to_address=to_address,
        )

    async def get_balance(self, address, network=None) -> Decimal:
        if self.balance_error is not None:
            raise self.balance_error
        return self.balances.get(address, self.default_balance)


class RecordingSink:
    def __init__(self):
        self.results = []

    async def publish_result(self, event_id, summary) -> None:
        self.results.append(summary)


class Fakes:
    def __init__(self):
        self.oracle = FakeOracle()
        self.ledger = FakeLedger()
        self.sink = RecordingSink()
        self.secrets = SecretResolver(generate_key())


async def create_active_event(db, tenant_id: str = "tenant-1", **overrides):
    """Create and publish an event; returns it with options loaded."""
    data = {
        "kind": "vote",
        "title": "Best picture",
        "prize_amount": Decimal("30"),
        "min_participants": 1,
        "duration_minutes": 60,
        "options": ["A", "B"],
    }
    data.update(overrides)
    event = await event_service.create_event(db, tenant_id, EventCreate(**data))
    return await event_service.publish_event(db, event.id)


async def fund_tenant(db, tenant_id: str = "tenant-1", budget: Decimal = Decimal("500")):
    return await treasury_service.upsert_treasury(
        db,
        tenant_id,
        wallet_address="TreasuryWa11et",
        secret="treasury-secret",
        network="solana-devnet",
        budget_total=budget,
    )


async def register_wallets(db, *user_ids: str):
    for user_id in user_ids:
        await wallet_service.set_payout_address(db, user_id, f"addr-{user_id}")


async def expire(db, event_id):
    """Move an event's deadline into the past."""
    await db.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(deadline=utcnow() - timedelta(minutes=1))
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def event_status(db, event_id) -> str:
    return await db.scalar(select(Event.status).where(Event.id == event_id))


async def payouts_for(db, event_id) -> list[Payout]:
    result = await db.execute(
        select(Payout)
        .where(Payout.event_id == event_id)
        .order_by(Payout.recipient_user_id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def budget_spent(db, tenant_id: str = "tenant-1") -> Decimal:
    return await db.scalar(select(Treasury.budget_spent).where(Treasury.tenant_id == tenant_id))
