"""Integration tests for joins, votes and two-phase pot commitments."""

import asyncio
from decimal import Decimal

import httpx
import pytest
from sqlalchemy import func, select

from agora.clients.ledger import LedgerClient, LedgerNetworkError
from agora.clients.price_oracle import PriceOracleError
from agora.config import LedgerConfig
from agora.models import Entry, Event, SettlementTrigger
from agora.services import collaborators, entry_service, settlement_service
from agora.utils.errors import (
    CapacityExceededError,
    DuplicateEntryError,
    EntryNotFoundError,
    EventNotActiveError,
    EventValidationError,
    InsufficientFundsError,
    InvalidOptionError,
    NoPayoutAddressError,
)
from tests.helpers import create_active_event, event_status, expire, fund_tenant, register_wallets


async def _count(db, event_id) -> int:
    return await db.scalar(select(Event.current_participant_count).where(Event.id == event_id))


async def _state(db, event_id, user_id) -> str:
    return await db.scalar(
        select(Entry.fee_commitment_state).where(Entry.event_id == event_id, Entry.user_id == user_id)
    )


def test_join_counts_participant_once(session_factory, fakes) -> None:
    async def run() -> None:
        async with session_factory() as db:
            event = await create_active_event(db)

            entry = await entry_service.join_event(db, event.id, "alice")
            assert entry.is_participant
            assert entry.joined_at is not None

            with pytest.raises(DuplicateEntryError):
                await entry_service.join_event(db, event.id, "alice")

            assert await _count(db, event.id) == 1

    asyncio.run(run())


def test_full_event_rejects_further_entries(session_factory, fakes) -> None:
    fakes.oracle.error = PriceOracleError("oracle down")

    async def run() -> None:
        async with session_factory() as db:
            # Fiat prize so the capacity-triggered settlement defers on the oracle
            event = await create_active_event(db, currency="USD", max_participants=2)
            event_id, a = event.id, event.options[0]

            await entry_service.join_event(db, event_id, "alice")
            await entry_service.vote(db, event_id, "alice", a.id)
            await entry_service.join_event(db, event_id, "bob")

            assert await event_status(db, event_id) == "active"
            assert await _count(db, event_id) == 2

            with pytest.raises(CapacityExceededError):
                await entry_service.join_event(db, event_id, "carol")

            assert await _count(db, event_id) == 2
            assert await entry_service.get_entry(db, event_id, "carol") is None

    asyncio.run(run())


def test_join_after_deadline_rejected(session_factory, fakes) -> None:
    async def run() -> None:
        async with session_factory() as db:
            event = await create_active_event(db)
            await expire(db, event.id)

            with pytest.raises(EventNotActiveError):
                await entry_service.join_event(db, event.id, "alice")

    asyncio.run(run())


def test_join_requires_active_event(session_factory, fakes) -> None:
    async def run() -> None:
        from agora.schemas import EventCreate
        from agora.services import event_service

        async with session_factory() as db:
            draft = await event_service.create_event(
                db,
                "tenant-1",
                EventCreate(kind="vote", title="Draft", prize_amount=Decimal("1"),
                            duration_minutes=10, options=["A", "B"]),
            )
            with pytest.raises(EventNotActiveError):
                await entry_service.join_event(db, draft.id, "alice")

    asyncio.run(run())


def test_vote_rules(session_factory, fakes) -> None:
    async def run() -> None:
        async with session_factory() as db:
            event = await create_active_event(db)
            other = await create_active_event(db, title="Other")
            a, b = event.options

            with pytest.raises(EntryNotFoundError):
                await entry_service.vote(db, event.id, "alice", a.id)

            await entry_service.join_event(db, event.id, "alice")

            with pytest.raises(InvalidOptionError):
                await entry_service.vote(db, event.id, "alice", other.options[0].id)

            await entry_service.vote(db, event.id, "alice", a.id)
            entry = await entry_service.vote(db, event.id, "alice", b.id)
            assert entry.chosen_option_id == b.id

    asyncio.run(run())


def test_wager_entry_paths(session_factory, fakes) -> None:
    async def run() -> None:
        async with session_factory() as db:
            event = await create_active_event(
                db, kind="wager", prize_amount=Decimal("5"), options=[], slot_count=3
            )
            assert [o.label for o in event.options] == ["Red", "Black", "Green"]

            with pytest.raises(EventValidationError):
                await entry_service.join_event(db, event.id, "alice")

            entry = await entry_service.select_option(db, event.id, "alice", event.options[1].id)
            assert entry.is_participant
            assert await _count(db, event.id) == 1

            # House wagers may switch slots while active
            entry = await entry_service.select_option(db, event.id, "alice", event.options[2].id)
            assert entry.chosen_option_id == event.options[2].id
            assert await _count(db, event.id) == 1

    asyncio.run(run())


def _pot_event(db, **overrides):
    data = dict(
        kind="wager",
        mode="pot",
        prize_amount=Decimal("0"),
        entry_fee=Decimal("10"),
        options=["Red", "Black"],
    )
    data.update(overrides)
    return create_active_event(db, **data)


def test_pot_selection_does_not_count_until_committed(session_factory, fakes) -> None:
    async def run() -> None:
        async with session_factory() as db:
            event = await _pot_event(db)
            await register_wallets(db, "alice")

            entry = await entry_service.select_option(db, event.id, "alice", event.options[0].id)
            assert not entry.is_participant
            assert entry.fee_commitment_state == "none"
            assert await _count(db, event.id) == 0

            entry = await entry_service.commit_entry(db, event.id, "alice")
            assert entry.fee_commitment_state == "committed"
            assert entry.committed_amount == Decimal("10")
            assert entry.payout_address_snapshot == "addr-alice"
            assert entry.is_participant
            assert await _count(db, event.id) == 1

            # Confirming twice is harmless
            await entry_service.commit_entry(db, event.id, "alice")
            assert await _count(db, event.id) == 1

            with pytest.raises(DuplicateEntryError):
                await entry_service.select_option(db, event.id, "alice", event.options[1].id)

    asyncio.run(run())


def test_commit_requires_selection_and_wallet(session_factory, fakes) -> None:
    async def run() -> None:
        async with session_factory() as db:
            event = await _pot_event(db)
            event_id, red_id = event.id, event.options[0].id

            with pytest.raises(EntryNotFoundError):
                await entry_service.commit_entry(db, event_id, "alice")

            await entry_service.select_option(db, event_id, "alice", red_id)
            with pytest.raises(NoPayoutAddressError):
                await entry_service.commit_entry(db, event_id, "alice")

            assert await _state(db, event_id, "alice") == "none"
            assert await _count(db, event_id) == 0

            await register_wallets(db, "alice")
            entry = await entry_service.commit_entry(db, event_id, "alice")
            assert entry.fee_commitment_state == "committed"

    asyncio.run(run())


def test_insufficient_balance_rejects_commitment(session_factory, fakes) -> None:
    fakes.ledger.balances["addr-alice"] = Decimal("5")

    async def run() -> None:
        async with session_factory() as db:
            event = await _pot_event(db)
            event_id, red_id = event.id, event.options[0].id
            await register_wallets(db, "alice")
            await entry_service.select_option(db, event_id, "alice", red_id)

            with pytest.raises(InsufficientFundsError):
                await entry_service.commit_entry(db, event_id, "alice")

            assert await _state(db, event_id, "alice") == "none"
            assert await _count(db, event_id) == 0

    asyncio.run(run())


def test_balance_lookup_failure_does_not_block(session_factory, fakes) -> None:
    fakes.ledger.balance_error = LedgerNetworkError("rpc unreachable")

    async def run() -> None:
        async with session_factory() as db:
            event = await _pot_event(db)
            await register_wallets(db, "alice")
            await entry_service.select_option(db, event.id, "alice", event.options[0].id)

            entry = await entry_service.commit_entry(db, event.id, "alice")
            assert entry.fee_commitment_state == "committed"

    asyncio.run(run())


def test_commit_after_close_reverts_to_uncommitted(session_factory, fakes) -> None:
    async def run() -> None:
        async with session_factory() as db:
            event = await _pot_event(db, min_participants=1)
            event_id, red_id = event.id, event.options[0].id
            await register_wallets(db, "alice")
            await entry_service.select_option(db, event_id, "alice", red_id)
            await expire(db, event_id)

            with pytest.raises(EventNotActiveError):
                await entry_service.commit_entry(db, event_id, "alice")

            assert await _state(db, event_id, "alice") == "none"

    asyncio.run(run())


def test_unknown_event(session_factory, fakes) -> None:
    from uuid import uuid4

    from agora.utils.errors import EventNotFoundError

    async def run() -> None:
        async with session_factory() as db:
            with pytest.raises(EventNotFoundError):
                await entry_service.join_event(db, uuid4(), "alice")

    asyncio.run(run())


def test_garbled_balance_response_does_not_block_commitment(session_factory, fakes) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>bad gateway</html>")

    collaborators.configure(
        ledger=LedgerClient(LedgerConfig(paper_mode=False), transport=httpx.MockTransport(handler))
    )

    async def run() -> None:
        async with session_factory() as db:
            event = await _pot_event(db)
            await register_wallets(db, "alice")
            await entry_service.select_option(db, event.id, "alice", event.options[0].id)

            entry = await entry_service.commit_entry(db, event.id, "alice")
            assert entry.fee_commitment_state == "committed"
            assert await _count(db, event.id) == 1

    asyncio.run(run())


def test_unexpected_commit_failure_releases_pending_claim(session_factory, fakes) -> None:
    fakes.ledger.balance_error = RuntimeError("signer crashed")

    async def run() -> None:
        async with session_factory() as db:
            event = await _pot_event(db)
            event_id, red_id = event.id, event.options[0].id
            await register_wallets(db, "alice")
            await entry_service.select_option(db, event_id, "alice", red_id)

            with pytest.raises(RuntimeError):
                await entry_service.commit_entry(db, event_id, "alice")

            assert await _state(db, event_id, "alice") == "none"
            assert await _count(db, event_id) == 0

            fakes.ledger.balance_error = None
            entry = await entry_service.commit_entry(db, event_id, "alice")
            assert entry.fee_commitment_state == "committed"

    asyncio.run(run())


def test_vote_rejected_once_settlement_claims_the_event(session_factory, fakes, monkeypatch) -> None:
    read_entry = entry_service.get_entry

    async def run() -> None:
        async with session_factory() as db:
            event = await create_active_event(db)
            event_id, a_id, b_id = event.id, event.options[0].id, event.options[1].id
            await fund_tenant(db)
            await register_wallets(db, "alice", "bob")
            for user_id in ("alice", "bob"):
                await entry_service.join_event(db, event_id, user_id)
                await entry_service.vote(db, event_id, user_id, a_id)

            async def settle_after_read(session, ev_id, user_id):
                # The event closes between the open check and the vote write
                entry = await read_entry(session, ev_id, user_id)
                async with session_factory() as other:
                    await settlement_service.settle_event(other, ev_id, SettlementTrigger.DEADLINE)
                return entry

            monkeypatch.setattr(entry_service, "get_entry", settle_after_read)
            with pytest.raises(EventNotActiveError):
                await entry_service.vote(db, event_id, "bob", b_id)
            monkeypatch.undo()

            assert await event_status(db, event_id) == "completed"
            bob = await entry_service.get_entry(db, event_id, "bob")
            assert bob.chosen_option_id == a_id
            assert bob.is_winner

    asyncio.run(run())


def test_slot_change_rejected_once_settlement_claims_the_event(
    session_factory, fakes, monkeypatch
) -> None:
    read_entry = entry_service.get_entry

    async def run() -> None:
        async with session_factory() as db:
            event = await create_active_event(
                db, kind="wager", prize_amount=Decimal("5"), options=["Red", "Black"]
            )
            event_id, red_id, black_id = event.id, event.options[0].id, event.options[1].id
            await entry_service.select_option(db, event_id, "alice", red_id)

            async def settle_after_read(session, ev_id, user_id):
                entry = await read_entry(session, ev_id, user_id)
                async with session_factory() as other:
                    await settlement_service.settle_event(other, ev_id, SettlementTrigger.DEADLINE)
                return entry

            monkeypatch.setattr(entry_service, "get_entry", settle_after_read)
            with pytest.raises(EventNotActiveError):
                await entry_service.select_option(db, event_id, "alice", black_id)
            monkeypatch.undo()

            alice = await entry_service.get_entry(db, event_id, "alice")
            assert alice.chosen_option_id == red_id

    asyncio.run(run())


def test_concurrent_joins_never_overbook(session_factory, fakes) -> None:
    async def run() -> None:
        async with session_factory() as db:
            event = await create_active_event(db, max_participants=3)
            event_id = event.id

        async def join(user_id: str):
            async with session_factory() as db:
                return await entry_service.join_event(db, event_id, user_id)

        results = await asyncio.gather(
            *(join(f"user-{i}") for i in range(10)), return_exceptions=True
        )
        rejected = [r for r in results if isinstance(r, Exception)]

        assert len(results) - len(rejected) == 3
        assert all(isinstance(r, (CapacityExceededError, EventNotActiveError)) for r in rejected)

        async with session_factory() as db:
            assert await _count(db, event_id) == 3
            rows = await db.scalar(
                select(func.count()).select_from(Entry).where(Entry.event_id == event_id)
            )
            assert rows == 3

    asyncio.run(run())
