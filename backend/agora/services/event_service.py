"""Event management service."""

import logging
from datetime import timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from agora.config import get_settings
from agora.models import Event, EventKind, EventOption, EventStatus, PrizeMode, SettlementTrigger
from agora.schemas.event import EventCreate
from agora.services.winner_policy import generate_server_seed, hash_seed
from agora.utils.errors import EventNotActiveError, EventNotFoundError, EventValidationError
from agora.utils.time_utils import deadline_from, utcnow

logger = logging.getLogger(__name__)

DEFAULT_SLOT_LABELS = ["Red", "Black", "Green", "Blue", "Gold", "Purple"]
MIN_WAGER_SLOTS = 2
MAX_WAGER_SLOTS = 6
MIN_VOTE_OPTIONS = 2


class EventService:
    """
    Manages the lifecycle of events up to settlement.
    Handles creation, publishing, lookup and administrator cancellation.
    """

    def _option_labels(self, data: EventCreate) -> list[str]:
        labels = [label.strip() for label in data.options if label.strip()]

        if data.kind == EventKind.WAGER:
            if not labels:
                count = data.slot_count or MIN_WAGER_SLOTS
                count = max(MIN_WAGER_SLOTS, min(MAX_WAGER_SLOTS, count))
                labels = DEFAULT_SLOT_LABELS[:count]
            if not MIN_WAGER_SLOTS <= len(labels) <= MAX_WAGER_SLOTS:
                raise EventValidationError(
                    f"Wager events need {MIN_WAGER_SLOTS}-{MAX_WAGER_SLOTS} slots, got {len(labels)}"
                )
        elif len(labels) < MIN_VOTE_OPTIONS:
            raise EventValidationError(
                f"Vote events need at least {MIN_VOTE_OPTIONS} options, got {len(labels)}"
            )

        return labels

    def _validate(self, data: EventCreate, labels: list[str]) -> None:
        if data.max_participants is not None and data.max_participants < data.min_participants:
            raise EventValidationError(
                "max_participants cannot be below min_participants",
                {"min_participants": data.min_participants, "max_participants": data.max_participants},
            )

        if data.duration_minutes is None and data.max_participants is None:
            raise EventValidationError("Event needs a duration, a capacity, or both")

        if data.mode == PrizeMode.POT:
            if data.kind != EventKind.WAGER:
                raise EventValidationError("Pot mode is only available for wager events")
            if data.entry_fee <= 0:
                raise EventValidationError("Pot mode requires a positive entry_fee")
        elif data.prize_amount <= 0:
            raise EventValidationError("House mode requires a positive prize_amount")

        if data.favorite_option_index is not None:
            if data.kind != EventKind.VOTE:
                raise EventValidationError("Only vote events can have a favorite option")
            if data.favorite_option_index >= len(labels):
                raise EventValidationError(
                    f"favorite_option_index {data.favorite_option_index} out of range"
                )

    async def create_event(self, db: AsyncSession, tenant_id: str, data: EventCreate) -> Event:
        """Create a draft event with its options."""
        labels = self._option_labels(data)
        self._validate(data, labels)

        event = Event(
            tenant_id=tenant_id,
            kind=data.kind.value,
            mode=data.mode.value,
            title=data.title,
            description=data.description,
            prize_amount=data.prize_amount,
            entry_fee=data.entry_fee,
            currency=data.currency,
            min_participants=data.min_participants,
            max_participants=data.max_participants,
            current_participant_count=0,
            status=EventStatus.DRAFT.value,
            duration_minutes=data.duration_minutes,
            announcement_channel=data.announcement_channel,
            created_by=data.created_by,
        )
        event.options = [
            EventOption(display_order=i, label=label) for i, label in enumerate(labels)
        ]
        db.add(event)
        await db.flush()

        if data.favorite_option_index is not None:
            event.admin_favorite_option_id = event.options[data.favorite_option_index].id

        await db.commit()
        await db.refresh(event)

        logger.info(f"Created {event.kind}/{event.mode} event {event.id} for tenant {tenant_id}")
        return event

    async def get_event(self, db: AsyncSession, event_id: UUID) -> Optional[Event]:
        result = await db.execute(
            select(Event)
            .where(Event.id == event_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def require_event(self, db: AsyncSession, event_id: UUID) -> Event:
        event = await self.get_event(db, event_id)
        if event is None:
            raise EventNotFoundError(f"Event {event_id} not found", {"event_id": str(event_id)})
        return event

    async def list_events(
        self,
        db: AsyncSession,
        tenant_id: str,
        status: Optional[EventStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Event]:
        query = select(Event).where(Event.tenant_id == tenant_id)
        if status:
            query = query.where(Event.status == status.value)
        query = query.order_by(Event.created_at.desc()).offset(offset).limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())

    async def publish_event(self, db: AsyncSession, event_id: UUID) -> Event:
        """draft -> active; the deadline is measured from now."""
        event = await self.require_event(db, event_id)
        status = event.status

        now = utcnow()
        values = {
            "status": EventStatus.ACTIVE.value,
            "published_at": now,
            "deadline": deadline_from(now, event.duration_minutes),
        }
        if event.kind == EventKind.WAGER.value:
            seed = generate_server_seed()
            values["server_seed"] = seed
            values["server_seed_hash"] = hash_seed(seed)

        result = await db.execute(
            update(Event)
            .where(Event.id == event_id, Event.status == EventStatus.DRAFT.value)
            .values(**values)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise EventNotActiveError(
                f"Event {event_id} is {status}; only drafts can be published",
                {"status": status},
            )

        await db.commit()
        await db.refresh(event)
        logger.info(f"Published event {event_id}, deadline {event.deadline}")
        return event

    async def cancel_event(self, db: AsyncSession, event_id: UUID, reason: str = "cancelled_by_admin"):
        """
        Soft-cancel an event.

        Drafts are cancelled in place. Active events go through the settlement
        engine so committed pot fees are refunded; returns its result.
        """
        event = await self.require_event(db, event_id)

        if event.status == EventStatus.DRAFT.value:
            result = await db.execute(
                update(Event)
                .where(Event.id == event_id, Event.status == EventStatus.DRAFT.value)
                .values(
                    status=EventStatus.CANCELLED.value,
                    cancel_reason=reason,
                    settlement_trigger=SettlementTrigger.ADMIN_CANCEL.value,
                    completed_at=utcnow(),
                )
            )
            await db.commit()
            if result.rowcount:
                logger.info(f"Cancelled draft event {event_id}: {reason}")
                await db.refresh(event)
                return None

        if event.status in (EventStatus.DRAFT.value, EventStatus.ACTIVE.value):
            from agora.services.settlement_service import settlement_service

            return await settlement_service.settle_event(
                db, event_id, SettlementTrigger.ADMIN_CANCEL, cancel_reason=reason
            )

        raise EventNotActiveError(
            f"Event {event_id} is already {event.status}", {"status": event.status}
        )

    async def find_due_events(self, db: AsyncSession) -> list[Event]:
        """
        Active events past their deadline, full ones whose capacity trigger was
        missed, and admin cancellations that were put back after an oracle outage.
        """
        result = await db.execute(
            select(Event)
            .where(
                Event.status == EventStatus.ACTIVE.value,
                or_(
                    and_(Event.deadline.isnot(None), Event.deadline <= utcnow()),
                    and_(
                        Event.max_participants.isnot(None),
                        Event.current_participant_count >= Event.max_participants,
                    ),
                    Event.cancel_reason.isnot(None),
                ),
            )
            .order_by(Event.created_at)
        )
        return list(result.scalars().all())

    async def find_stalled_events(self, db: AsyncSession) -> list[Event]:
        """Events stuck in ``ended`` longer than the configured threshold."""
        threshold = utcnow() - timedelta(minutes=get_settings().settlement.stalled_after_minutes)
        result = await db.execute(
            select(Event)
            .where(Event.status == EventStatus.ENDED.value, Event.ended_at <= threshold)
            .order_by(Event.ended_at)
        )
        return list(result.scalars().all())


event_service = EventService()
