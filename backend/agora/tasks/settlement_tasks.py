"""Settlement-related Celery tasks."""

import logging
from uuid import UUID

from agora.celery_config import celery_app, settings
from agora.database.session import get_db_session
from agora.models import SettlementTrigger
from agora.tasks.runner import run_async
from agora.utils.errors import OracleUnavailableError

logger = logging.getLogger(__name__)


@celery_app.task(name="tasks.check_expired_events", queue="settlements")
def check_expired_events():
    """
    Scheduled: every ``settlement.scan_interval_seconds``

    Finds active events past their deadline (or already full) and spawns a
    settlement task for each.
    """
    from agora.services.event_service import event_service

    async def _check():
        async with get_db_session() as db:
            events = await event_service.find_due_events(db)

            for event in events:
                settle_event.delay(str(event.id), SettlementTrigger.DEADLINE.value)

            return {
                "events_to_settle": len(events),
                "event_ids": [str(e.id) for e in events],
            }

    return run_async(_check)


@celery_app.task(
    name="tasks.settle_event",
    queue="settlements",
    bind=True,
    max_retries=5,
    default_retry_delay=settings.settlement.oracle_retry_delay_seconds,
)
def settle_event(self, event_id: str, trigger: str = SettlementTrigger.DEADLINE.value):
    """
    Settles a single event.

    Only an unavailable price oracle is retried; the engine has already put
    the event back to active. Any other failure is logged and left to the
    stalled-settlement watchdog.
    """
    from agora.services.settlement_service import settlement_service

    async def _settle():
        async with get_db_session() as db:
            result = await settlement_service.settle_event(
                db, UUID(event_id), SettlementTrigger(trigger)
            )

            if result is None:
                return {"event_id": event_id, "skipped": True, "reason": "stale_trigger"}

            return {
                "event_id": event_id,
                "status": result.status.value,
                "winners": len(result.winner_user_ids),
                "payouts_confirmed": len(result.confirmed_payouts),
                "payouts_failed": len(result.failed_payouts),
            }

    try:
        return run_async(_settle)
    except OracleUnavailableError as e:
        logger.warning(f"Settlement deferred for {event_id}: {e}")
        raise self.retry(exc=e)
