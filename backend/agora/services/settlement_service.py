"""Settlement engine: closes events, picks winners and pays them out."""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from agora.clients.price_oracle import PriceOracleError
from agora.config import get_settings
from agora.models import (
    Entry,
    Event,
    EventOption,
    EventStatus,
    FeeCommitmentState,
    Payout,
    PayoutKind,
    PayoutOutcome,
    PrizeMode,
    SettlementTrigger,
    Treasury,
)
from agora.schemas.settlement import OptionTally, PayoutResult, SettlementResult
from agora.services import collaborators
from agora.services.entry_service import entry_service
from agora.services.payout_calculator import committed_pot, compute_payout_plan, to_native
from agora.services.treasury_service import treasury_service
from agora.services.wallet_service import wallet_service
from agora.services.winner_policy import payout_order, policy_for, tally_choices
from agora.utils.errors import EventNotFoundError, OracleUnavailableError
from agora.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

ANNOUNCE_TIMEOUT_SECONDS = 15


@dataclass
class PlannedTransfer:
    recipient_user_id: str
    address: Optional[str]
    amount: Decimal
    kind: PayoutKind


class SettlementService:
    """
    Single entry point for every settlement trigger.

    The ``active -> ended`` conditional update is the only concurrency gate:
    exactly one caller wins it and every other caller returns ``None``
    without side effects. Per-recipient transfers are failure-isolated and
    each outcome is committed as its own Payout row.
    """

    async def settle_event(
        self,
        db: AsyncSession,
        event_id: UUID,
        trigger: SettlementTrigger = SettlementTrigger.MANUAL,
        cancel_reason: Optional[str] = None,
    ) -> Optional[SettlementResult]:
        """
        Settle an active event.

        Process:
        1. Claim the event (active -> ended) or return None
        2. Cancel and refund when under min_participants (or admin cancel)
        3. Otherwise determine winners, price-convert and pay each one
        4. Mark completed and announce
        """
        trigger = SettlementTrigger(trigger)

        if not await self._claim(db, event_id, trigger):
            return None

        event = await self._load_event(db, event_id)
        if trigger != SettlementTrigger.ADMIN_CANCEL and event.cancel_reason:
            # An earlier admin cancel was interrupted by an oracle outage
            trigger = SettlementTrigger.ADMIN_CANCEL
            cancel_reason = event.cancel_reason
            await db.execute(
                update(Event)
                .where(Event.id == event_id)
                .values(settlement_trigger=trigger.value)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        if trigger == SettlementTrigger.ADMIN_CANCEL:
            cancel_reason = cancel_reason or "cancelled_by_admin"

        entries = await entry_service.list_entries(db, event_id, participants_only=True)
        logger.info(
            f"Settling event {event_id} ({trigger.value}): "
            f"{len(entries)} participants, min {event.min_participants}"
        )

        try:
            if trigger == SettlementTrigger.ADMIN_CANCEL:
                await self._cancel(db, event, entries, cancel_reason)
            elif len(entries) < event.min_participants:
                await self._cancel(
                    db,
                    event,
                    entries,
                    f"min_participants_not_met: {len(entries)}/{event.min_participants}",
                )
            else:
                await self._complete(db, event, list(event.options), entries)
        except OracleUnavailableError:
            await self._release(
                db, event_id, cancel_reason if trigger == SettlementTrigger.ADMIN_CANCEL else None
            )
            raise

        summary = await self.get_settlement_result(db, event_id)
        await self._announce(summary)
        return summary

    async def _claim(self, db: AsyncSession, event_id: UUID, trigger: SettlementTrigger) -> bool:
        result = await db.execute(
            update(Event)
            .where(Event.id == event_id, Event.status == EventStatus.ACTIVE.value)
            .values(
                status=EventStatus.ENDED.value,
                ended_at=utcnow(),
                settlement_trigger=trigger.value,
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()

        if result.rowcount == 1:
            logger.info(f"Claimed event {event_id} for settlement ({trigger.value})")
            return True

        status = await db.scalar(select(Event.status).where(Event.id == event_id))
        if status is None:
            raise EventNotFoundError(f"Event {event_id} not found", {"event_id": str(event_id)})
        logger.info(f"stale_trigger: event {event_id} is {status}, {trigger.value} trigger ignored")
        return False

    async def _release(
        self, db: AsyncSession, event_id: UUID, cancel_reason: Optional[str] = None
    ) -> None:
        """
        Hand an event back to the scanner after an oracle failure (ended -> active).

        An interrupted admin cancel keeps its reason on the row: the event
        stops accepting entries and the next settlement attempt, whatever
        triggers it, cancels instead of completing.
        """
        await db.execute(
            update(Event)
            .where(Event.id == event_id, Event.status == EventStatus.ENDED.value)
            .values(
                status=EventStatus.ACTIVE.value,
                ended_at=None,
                settlement_trigger=(
                    SettlementTrigger.ADMIN_CANCEL.value if cancel_reason else None
                ),
                cancel_reason=cancel_reason,
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        if cancel_reason:
            logger.warning(f"Event {event_id} returned to active pending cancellation ({cancel_reason})")
        else:
            logger.warning(f"Event {event_id} returned to active; settlement will be retried")

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

    async def _fetch_rate(self, event: Event) -> Optional[Decimal]:
        """Fresh NATIVE/FIAT rate for fiat events, None for native ones."""
        settings = get_settings().settlement
        if event.currency == settings.native_currency:
            return None

        pair = f"{settings.native_currency}/{event.currency}"
        try:
            rate = await asyncio.wait_for(
                collaborators.get_oracle().get_rate(pair),
                timeout=settings.transfer_timeout_seconds,
            )
        except (PriceOracleError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"oracle_unavailable for event {event.id} ({pair}): {e}")
            raise OracleUnavailableError(
                f"Could not fetch {pair} rate", {"event_id": str(event.id), "pair": pair}
            ) from e

        return rate.rate

    async def _cancel(
        self,
        db: AsyncSession,
        event: Event,
        entries: Sequence[Entry],
        reason: str,
    ) -> None:
        """ended -> cancelled, refunding committed pot fees one by one."""
        refundable = [
            e
            for e in entries
            if event.mode == PrizeMode.POT.value
            and e.fee_commitment_state == FeeCommitmentState.COMMITTED.value
            and e.committed_amount
        ]

        if refundable:
            rate = await self._fetch_rate(event)
            decimals = get_settings().settlement.native_decimals
            await self._execute_transfers(
                db,
                event,
                [
                    PlannedTransfer(
                        recipient_user_id=e.user_id,
                        address=e.payout_address_snapshot,
                        amount=to_native(e.committed_amount, decimals, rate),
                        kind=PayoutKind.REFUND,
                    )
                    for e in payout_order(refundable)
                ],
                rate,
            )

        await self._finish(db, event.id, EventStatus.CANCELLED, cancel_reason=reason)
        logger.info(f"Cancelled event {event.id}: {reason} ({len(refundable)} refunds attempted)")

    async def _complete(
        self,
        db: AsyncSession,
        event: Event,
        options: Sequence[EventOption],
        entries: Sequence[Entry],
    ) -> None:
        """Determine winners, pay them, then ended -> completed."""
        selection = policy_for(event.kind).determine_winners(event, options, entries)

        rate = await self._fetch_rate(event) if selection.winner_count else None

        await db.execute(
            update(Event)
            .where(Event.id == event.id)
            .values(
                winning_option_id=selection.winning_option_id,
                draw_proof=selection.draw_proof,
                server_seed=event.server_seed,
                server_seed_hash=event.server_seed_hash,
            )
            .execution_options(synchronize_session=False)
        )
        if selection.winners:
            await db.execute(
                update(Entry)
                .where(Entry.id.in_([e.id for e in selection.winners]))
                .values(is_winner=True)
                .execution_options(synchronize_session=False)
            )
        await db.commit()
        logger.info(
            f"Event {event.id}: winning option {selection.winning_option_id}, "
            f"{selection.winner_count} winners"
        )

        if selection.winners:
            settings = get_settings().settlement
            plan = compute_payout_plan(
                mode=PrizeMode(event.mode),
                winner_count=selection.winner_count,
                prize_amount=event.prize_amount,
                pot=committed_pot(entries),
                house_cut_pct=settings.house_cut_pct,
                decimals=settings.native_decimals,
                exchange_rate=rate,
            )
            logger.info(
                f"Event {event.id}: distributing {plan.distributable} "
                f"(house cut {plan.house_cut}) across {selection.winner_count} winners"
            )

            planned = []
            for winner, share in zip(selection.winners, plan.shares):
                planned.append(
                    PlannedTransfer(
                        recipient_user_id=winner.user_id,
                        address=await wallet_service.get_payout_address(db, winner.user_id),
                        amount=share,
                        kind=PayoutKind.PRIZE,
                    )
                )
            await self._execute_transfers(db, event, planned, rate)

        await self._finish(db, event.id, EventStatus.COMPLETED)
        logger.info(f"Completed event {event.id}")

    async def _finish(
        self,
        db: AsyncSession,
        event_id: UUID,
        status: EventStatus,
        cancel_reason: Optional[str] = None,
    ) -> None:
        values = {"status": status.value, "completed_at": utcnow()}
        if cancel_reason:
            values["cancel_reason"] = cancel_reason

        result = await db.execute(
            update(Event)
            .where(Event.id == event_id, Event.status == EventStatus.ENDED.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        if result.rowcount == 0:
            logger.warning(f"Event {event_id} left ended state before it could be marked {status.value}")

    async def _execute_transfers(
        self,
        db: AsyncSession,
        event: Event,
        planned: Sequence[PlannedTransfer],
        rate: Optional[Decimal],
    ) -> None:
        """Pay each recipient independently; one failure never stops the batch."""
        treasury = await treasury_service.get_treasury(db, event.tenant_id)
        secret = None
        if treasury is not None:
            secret = collaborators.get_secret_resolver().decrypt(treasury.encrypted_secret)

        for item in planned:
            await self._pay_one(db, event, treasury, secret, item, rate)

    async def _pay_one(
        self,
        db: AsyncSession,
        event: Event,
        treasury: Optional[Treasury],
        secret: Optional[str],
        item: PlannedTransfer,
        rate: Optional[Decimal],
    ) -> Payout:
        existing = await db.scalar(
            select(Payout).where(
                Payout.event_id == event.id,
                Payout.recipient_user_id == item.recipient_user_id,
                Payout.kind == item.kind.value,
            )
        )
        if existing is not None:
            logger.warning(
                f"Payout for {item.recipient_user_id} on event {event.id} already recorded, skipping"
            )
            return existing

        settings = get_settings().settlement
        outcome = PayoutOutcome.FAILED
        transfer_id = None
        failure_reason = None

        if not item.address:
            failure_reason = "no_payout_address"
        elif treasury is None:
            failure_reason = "no_treasury"
        elif secret is None:
            failure_reason = "treasury_secret_unavailable"
        else:
            try:
                transfer = await asyncio.wait_for(
                    collaborators.get_ledger().transfer(
                        secret, item.address, item.amount, treasury.network
                    ),
                    timeout=settings.transfer_timeout_seconds,
                )
                if transfer.success:
                    outcome = PayoutOutcome.CONFIRMED
                    transfer_id = transfer.transfer_id
                else:
                    failure_reason = f"transfer_failed: {transfer.error}"
                    if transfer.reason:
                        failure_reason += f" ({transfer.reason})"
            except asyncio.TimeoutError:
                failure_reason = "transfer_failed: timeout"
            except Exception as e:
                logger.exception(f"Transfer to {item.recipient_user_id} raised")
                failure_reason = f"transfer_failed: {e}"

        payout = Payout(
            event_id=event.id,
            tenant_id=event.tenant_id,
            kind=item.kind.value,
            recipient_user_id=item.recipient_user_id,
            recipient_address=item.address,
            amount=item.amount,
            currency_at_transfer=settings.native_currency,
            exchange_rate=rate,
            transfer_id=transfer_id,
            outcome=outcome.value,
            failure_reason=failure_reason[:255] if failure_reason else None,
        )
        db.add(payout)
        if outcome == PayoutOutcome.CONFIRMED:
            await treasury_service.record_spend(db, event.tenant_id, item.amount)
        await db.commit()

        if outcome == PayoutOutcome.CONFIRMED:
            logger.info(
                f"Paid {item.amount} {settings.native_currency} to {item.recipient_user_id} "
                f"({item.kind.value}, tx {transfer_id})"
            )
        else:
            logger.warning(
                f"Payout to {item.recipient_user_id} on event {event.id} failed: {failure_reason}"
            )
        return payout

    async def _announce(self, summary: SettlementResult) -> None:
        try:
            await asyncio.wait_for(
                collaborators.get_announcer().publish_result(summary.event_id, summary),
                timeout=ANNOUNCE_TIMEOUT_SECONDS,
            )
        except Exception as e:
            logger.warning(f"Announcement for event {summary.event_id} failed: {e}")

    async def get_settlement_result(self, db: AsyncSession, event_id: UUID) -> SettlementResult:
        """Result payload rebuilt from the stored event, entries and payout rows."""
        event = await self._load_event(db, event_id)
        options = sorted(event.options, key=lambda o: o.display_order)
        entries = await entry_service.list_entries(db, event_id, participants_only=True)

        payouts = (
            await db.execute(
                select(Payout)
                .where(Payout.event_id == event_id)
                .order_by(Payout.created_at, Payout.recipient_user_id)
            )
        ).scalars().all()

        tallies = tally_choices(options, entries)
        labels = {opt.id: opt.label for opt in options}

        return SettlementResult(
            event_id=event.id,
            tenant_id=event.tenant_id,
            title=event.title,
            status=event.status,
            trigger=event.settlement_trigger,
            winning_option_id=event.winning_option_id,
            winning_option_label=labels.get(event.winning_option_id),
            winner_user_ids=[e.user_id for e in payout_order(entries) if e.is_winner],
            payouts=[
                PayoutResult(
                    recipient=p.recipient_user_id,
                    recipient_address=p.recipient_address,
                    kind=p.kind,
                    amount=p.amount,
                    currency=p.currency_at_transfer,
                    exchange_rate=p.exchange_rate,
                    outcome=p.outcome,
                    transfer_id=p.transfer_id,
                    failure_reason=p.failure_reason,
                )
                for p in payouts
            ],
            option_tallies=[
                OptionTally(
                    option_id=opt.id,
                    label=opt.label,
                    display_order=opt.display_order,
                    count=tallies[opt.id],
                )
                for opt in options
            ],
            participant_count=len(entries),
            min_participants=event.min_participants,
            cancel_reason=event.cancel_reason,
            draw_proof=event.draw_proof,
            announcement_channel=event.announcement_channel,
            completed_at=event.completed_at,
        )


settlement_service = SettlementService()
