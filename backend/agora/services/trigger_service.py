"""
Settlement triggers.

The deadline scanner, the capacity hook and the manual admin action all end
in ``settlement_service.settle_event``; whichever reaches the status gate
first settles the event and the others are no-ops.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from agora.models import SettlementTrigger
from agora.schemas.settlement import SettlementResult
from agora.services.event_service import event_service
from agora.services.settlement_service import settlement_service
from agora.utils.errors import AgoraError, OracleUnavailableError, format_log_error

logger = logging.getLogger(__name__)


async def run_expiry_scan(db: AsyncSession) -> dict[str, int]:
    """Settle every due active event; one failing event never stops the scan."""
    due = [event.id for event in await event_service.find_due_events(db)]
    stats = {"due": len(due), "settled": 0, "skipped": 0, "failed": 0}

    for event_id in due:
        try:
            result = await settlement_service.settle_event(
                db, event_id, SettlementTrigger.DEADLINE
            )
        except OracleUnavailableError as e:
            logger.warning(f"Event {event_id} deferred: {format_log_error(e)}")
            stats["failed"] += 1
            continue
        except Exception:
            logger.exception(f"Settlement of event {event_id} failed")
            await db.rollback()
            stats["failed"] += 1
            continue

        if result is None:
            stats["skipped"] += 1
        else:
            stats["settled"] += 1

    if due:
        logger.info(f"Expiry scan: {stats}")
    return stats


async def on_capacity_reached(db: AsyncSession, event_id: UUID) -> Optional[SettlementResult]:
    """
    Fired right after an entry fills the event.

    Settlement errors are logged, not raised: the entry that filled the event
    has already been accepted and the scanner picks up full events it missed.
    """
    logger.info(f"Event {event_id} reached capacity")
    try:
        return await settlement_service.settle_event(db, event_id, SettlementTrigger.CAPACITY)
    except AgoraError as e:
        logger.warning(f"Capacity settlement of event {event_id} deferred: {format_log_error(e)}")
        return None


async def manual_settle(db: AsyncSession, event_id: UUID) -> SettlementResult:
    """Admin trigger; returns the existing result when the event is already settled."""
    result = await settlement_service.settle_event(db, event_id, SettlementTrigger.MANUAL)
    if result is None:
        return await settlement_service.get_settlement_result(db, event_id)
    return result
