"""Celery tasks module."""

from agora.tasks.maintenance_tasks import check_stalled_settlements
from agora.tasks.settlement_tasks import check_expired_events, settle_event

__all__ = [
    "check_expired_events",
    "settle_event",
    "check_stalled_settlements",
]
