"""Maintenance Celery tasks."""

import logging

from agora.celery_config import celery_app
from agora.database.session import get_db_session
from agora.tasks.runner import run_async

logger = logging.getLogger(__name__)


@celery_app.task(name="tasks.check_stalled_settlements", queue="maintenance")
def check_stalled_settlements():
    """
    Scheduled: every ``settlement.stalled_check_interval_seconds``

    Reports events stuck in ``ended``; these need manual remediation.
    """
    from agora.services.event_service import event_service

    async def _check():
        async with get_db_session() as db:
            events = await event_service.find_stalled_events(db)

            for event in events:
                logger.error(
                    f"Event {event.id} ({event.tenant_id}) stuck in ended since {event.ended_at}"
                )

            return {
                "stalled": len(events),
                "event_ids": [str(e.id) for e in events],
            }

    return run_async(_check)
