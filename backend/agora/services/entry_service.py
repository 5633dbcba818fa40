"""
Participant entries.

Every participant-count increment is a single conditional UPDATE that also
re-checks status, deadline and capacity, issued in the same transaction as
the entry write. If the UPDATE matches nothing the entry is rejected.
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from agora.clients.ledger import LedgerError
from agora.clients.price_oracle import PriceOracleError
from agora.config import get_settings
from agora.models import Entry, Event, EventKind, EventStatus, FeeCommitmentState, PrizeMode
from agora.services import collaborators
from agora.services.payout_calculator import to_native
from agora.services.wallet_service import wallet_service
from agora.utils.errors import (
    AgoraError,
    CapacityExceededError,
    DuplicateEntryError,
    EntryNotFoundError,
    EventNotActiveError,
    EventNotFoundError,
    EventValidationError,
    InsufficientFundsError,
    InvalidOptionError,
    NoPayoutAddressError,
)
from agora.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


class EntryService:
    """Join, vote, select and commit."""

    async def _load_event(self, db: AsyncSession, event_id: UUID) -> Event:
        result = await db.execute(
            select(Event)
            .where(Event.id == event_id)
            .execution_options(populate_existing=True)
        )
        event = result.scalar_one_or_none()
        if event is None:
            raise EventNotFoundError(f"Event {event_id} not found", {"event_id": str(event_id)})
        return event

    def _ensure_open(self, event: Event) -> None:
        if event.status != EventStatus.ACTIVE.value:
            raise EventNotActiveError(
                f"Event {event.id} is {event.status}", {"status": event.status}
            )
        if event.cancel_reason:
            raise EventNotActiveError(
                f"Event {event.id} is being cancelled", {"status": "cancelling"}
            )
        deadline = ensure_utc(event.deadline)
        if deadline is not None and deadline <= utcnow():
            raise EventNotActiveError(
                f"Event {event.id} closed at {deadline.isoformat()}", {"status": "closed"}
            )

    def _ensure_option(self, event: Event, option_id: UUID) -> None:
        if option_id not in {opt.id for opt in event.options}:
            raise InvalidOptionError(
                f"Option {option_id} does not belong to event {event.id}",
                {"option_id": str(option_id)},
            )

    async def get_entry(self, db: AsyncSession, event_id: UUID, user_id: str) -> Optional[Entry]:
        result = await db.execute(
            select(Entry)
            .where(Entry.event_id == event_id, Entry.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_entries(
        self, db: AsyncSession, event_id: UUID, participants_only: bool = False
    ) -> list[Entry]:
        query = select(Entry).where(Entry.event_id == event_id)
        if participants_only:
            query = query.where(Entry.is_participant.is_(True))
        result = await db.execute(
            query.order_by(Entry.created_at).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def _claim_participant_slot(self, db: AsyncSession, event_id: UUID) -> None:
        """Atomically count one more participant or raise. Caller owns the transaction."""
        now = utcnow()
        result = await db.execute(
            update(Event)
            .where(
                Event.id == event_id,
                Event.status == EventStatus.ACTIVE.value,
                Event.cancel_reason.is_(None),
                or_(Event.deadline.is_(None), Event.deadline > now),
                or_(
                    Event.max_participants.is_(None),
                    Event.current_participant_count < Event.max_participants,
                ),
            )
            .values(current_participant_count=Event.current_participant_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        # Find out why
        row = (
            await db.execute(
                select(Event.status, Event.deadline, Event.cancel_reason).where(Event.id == event_id)
            )
        ).one()
        deadline = ensure_utc(row.deadline)
        if (
            row.status != EventStatus.ACTIVE.value
            or row.cancel_reason
            or (deadline is not None and deadline <= now)
        ):
            raise EventNotActiveError(f"Event {event_id} is no longer accepting entries")
        raise CapacityExceededError(f"Event {event_id} is full")

    async def _change_option(
        self, db: AsyncSession, event_id: UUID, entry_id: UUID, option_id: UUID, *conditions
    ) -> bool:
        """
        Point an entry at ``option_id`` in one conditional UPDATE that only
        matches while the event is still open. Returns False (after rolling
        back) when nothing matched.

        The event row is share-locked so the write serializes with the
        settlement status gate: a change either lands before the event is
        claimed or is rejected.
        """
        event_open = (
            select(Event.id)
            .where(
                Event.id == event_id,
                Event.status == EventStatus.ACTIVE.value,
                Event.cancel_reason.is_(None),
                or_(Event.deadline.is_(None), Event.deadline > utcnow()),
            )
            .with_for_update(read=True)
            .exists()
        )
        result = await db.execute(
            update(Entry)
            .where(Entry.id == entry_id, event_open, *conditions)
            .values(chosen_option_id=option_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            return False
        await db.commit()
        return True

    async def _is_full(self, db: AsyncSession, event_id: UUID) -> bool:
        row = (
            await db.execute(
                select(Event.current_participant_count, Event.max_participants).where(
                    Event.id == event_id
                )
            )
        ).one()
        return row.max_participants is not None and row.current_participant_count >= row.max_participants

    async def _after_count_change(self, db: AsyncSession, event_id: UUID) -> None:
        if await self._is_full(db, event_id):
            from agora.services.trigger_service import on_capacity_reached

            await on_capacity_reached(db, event_id)

    async def _insert_participant(
        self,
        db: AsyncSession,
        event: Event,
        user_id: str,
        option_id: Optional[UUID] = None,
    ) -> Entry:
        """Count and insert in one transaction; duplicate rows roll the count back."""
        event_id = event.id
        try:
            await self._claim_participant_slot(db, event_id)
            entry = Entry(
                event_id=event_id,
                user_id=user_id,
                chosen_option_id=option_id,
                fee_commitment_state=FeeCommitmentState.NONE.value,
                committed_amount=Decimal("0"),
                is_participant=True,
                joined_at=utcnow(),
            )
            db.add(entry)
            await db.flush()
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise DuplicateEntryError(f"User {user_id} already entered event {event_id}")
        except AgoraError:
            await db.rollback()
            raise

        logger.info(f"User {user_id} joined event {event_id}")
        await self._after_count_change(db, event_id)
        return entry

    async def join_event(self, db: AsyncSession, event_id: UUID, user_id: str) -> Entry:
        """Join a vote event; the vote is cast separately."""
        event = await self._load_event(db, event_id)
        if event.kind != EventKind.VOTE.value:
            raise EventValidationError("Wager events are entered by selecting a slot")
        self._ensure_open(event)

        if await self.get_entry(db, event_id, user_id):
            raise DuplicateEntryError(f"User {user_id} already entered event {event_id}")

        return await self._insert_participant(db, event, user_id)

    async def vote(self, db: AsyncSession, event_id: UUID, user_id: str, option_id: UUID) -> Entry:
        """Cast or change a vote while the event is active."""
        event = await self._load_event(db, event_id)
        if event.kind != EventKind.VOTE.value:
            raise EventValidationError("Only vote events accept votes")
        self._ensure_open(event)
        self._ensure_option(event, option_id)

        entry = await self.get_entry(db, event_id, user_id)
        if entry is None:
            raise EntryNotFoundError(f"User {user_id} has not joined event {event_id}")

        entry_id = entry.id
        if not await self._change_option(db, event_id, entry_id, option_id):
            raise EventNotActiveError(f"Event {event_id} is no longer accepting votes")

        await db.refresh(entry)
        logger.info(f"User {user_id} voted {option_id} on event {event_id}")
        return entry

    async def select_option(
        self, db: AsyncSession, event_id: UUID, user_id: str, option_id: UUID
    ) -> Entry:
        """
        Pick a wager slot.

        House wagers enter the participant right away. Pot wagers only record
        the choice; the entry counts once ``commit_entry`` succeeds.
        """
        event = await self._load_event(db, event_id)
        if event.kind != EventKind.WAGER.value:
            raise EventValidationError("Only wager events have slots")
        self._ensure_open(event)
        self._ensure_option(event, option_id)

        entry = await self.get_entry(db, event_id, user_id)

        if entry is not None:
            if entry.fee_commitment_state != FeeCommitmentState.NONE.value:
                raise DuplicateEntryError(
                    f"User {user_id} already committed to event {event_id}"
                )
            entry_id = entry.id
            moved = await self._change_option(
                db,
                event_id,
                entry_id,
                option_id,
                Entry.fee_commitment_state == FeeCommitmentState.NONE.value,
            )
            if not moved:
                state = await db.scalar(
                    select(Entry.fee_commitment_state).where(Entry.id == entry_id)
                )
                if state != FeeCommitmentState.NONE.value:
                    raise DuplicateEntryError(
                        f"User {user_id} already committed to event {event_id}"
                    )
                raise EventNotActiveError(f"Event {event_id} is no longer accepting changes")

            await db.refresh(entry)
            logger.info(f"User {user_id} moved to slot {option_id} on event {event_id}")
            return entry

        if event.mode == PrizeMode.HOUSE.value:
            return await self._insert_participant(db, event, user_id, option_id)

        if (
            event.max_participants is not None
            and event.current_participant_count >= event.max_participants
        ):
            raise CapacityExceededError(f"Event {event_id} is full")

        entry = Entry(
            event_id=event_id,
            user_id=user_id,
            chosen_option_id=option_id,
            fee_commitment_state=FeeCommitmentState.NONE.value,
            committed_amount=Decimal("0"),
            is_participant=False,
        )
        db.add(entry)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise DuplicateEntryError(f"User {user_id} already entered event {event_id}")

        logger.info(f"User {user_id} selected slot {option_id} on event {event_id} (uncommitted)")
        return entry

    async def _check_balance(self, event: Event, address: str) -> None:
        """Best-effort balance pre-check; only a definite shortfall rejects."""
        settings = get_settings().settlement
        rate = None
        if event.currency != settings.native_currency:
            try:
                rate = (
                    await collaborators.get_oracle().get_rate(
                        f"{settings.native_currency}/{event.currency}"
                    )
                ).rate
            except PriceOracleError as e:
                logger.warning(f"Skipping balance pre-check for event {event.id}: {e}")
                return

        required = to_native(event.entry_fee, settings.native_decimals, rate)
        try:
            balance = await collaborators.get_ledger().get_balance(address)
        except LedgerError as e:
            logger.warning(f"Skipping balance pre-check for {address}: {e}")
            return

        if balance < required:
            raise InsufficientFundsError(
                f"Balance {balance} is below the entry fee {required}",
                {"balance": str(balance), "required": str(required)},
            )

    async def commit_entry(self, db: AsyncSession, event_id: UUID, user_id: str) -> Entry:
        """Confirm a pot-mode selection: pre-check funds and take a participant slot."""
        event = await self._load_event(db, event_id)
        entry = await self.get_entry(db, event_id, user_id)
        if entry is None or entry.chosen_option_id is None:
            raise EntryNotFoundError(f"User {user_id} has not selected a slot on event {event_id}")

        if event.mode != PrizeMode.POT.value:
            # House wagers and votes are already counted at selection
            return entry
        if entry.fee_commitment_state == FeeCommitmentState.COMMITTED.value:
            return entry

        self._ensure_open(event)
        entry_id = entry.id

        claimed = await db.execute(
            update(Entry)
            .where(
                Entry.id == entry_id,
                Entry.fee_commitment_state == FeeCommitmentState.NONE.value,
            )
            .values(fee_commitment_state=FeeCommitmentState.PENDING.value)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        if claimed.rowcount == 0:
            raise DuplicateEntryError(f"Commitment for {user_id} on event {event_id} already in progress")

        try:
            address = await wallet_service.get_payout_address(db, user_id)
            if not address:
                raise NoPayoutAddressError(f"User {user_id} has no registered payout address")

            await self._check_balance(event, address)
            await self._claim_participant_slot(db, event_id)

            await db.execute(
                update(Entry)
                .where(Entry.id == entry_id)
                .values(
                    fee_commitment_state=FeeCommitmentState.COMMITTED.value,
                    committed_amount=event.entry_fee,
                    is_participant=True,
                    payout_address_snapshot=address,
                    joined_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except Exception:
            # Any failure hands the slot back so the participant can retry
            await db.rollback()
            await db.execute(
                update(Entry)
                .where(
                    Entry.id == entry_id,
                    Entry.fee_commitment_state == FeeCommitmentState.PENDING.value,
                )
                .values(fee_commitment_state=FeeCommitmentState.NONE.value)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            raise

        await db.refresh(entry)
        logger.info(f"User {user_id} committed {event.entry_fee} {event.currency} to event {event_id}")
        await self._after_count_change(db, event_id)
        return entry


entry_service = EntryService()
