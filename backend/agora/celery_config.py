"""
Celery application for the settlement workers.

Two queues are consumed: ``settlements`` (deadline scanner and per-event
settlement) and ``maintenance`` (stalled-settlement watchdog). Beat drives
both periodic scans. Capacity triggers do not go through the queue: the
entry service settles a full event synchronously via
``trigger_service.on_capacity_reached``.
"""

from celery import Celery
from celery.signals import worker_process_init

from agora.config import get_settings

settings = get_settings()

celery_app = Celery(
    "agora",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "agora.tasks.settlement_tasks",
        "agora.tasks.maintenance_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    result_expires=3600,
    # One settlement at a time per worker process; a lost worker must
    # not drop a claimed settlement message.
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=100,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_send_task_events=True,
)

celery_app.conf.beat_schedule = {
    "scan-due-events": {
        "task": "tasks.check_expired_events",
        "schedule": settings.settlement.scan_interval_seconds,
    },
    "watch-stalled-settlements": {
        "task": "tasks.check_stalled_settlements",
        "schedule": settings.settlement.stalled_check_interval_seconds,
    },
}


@worker_process_init.connect
def init_worker_process(**kwargs) -> None:
    """Runs once per forked worker process."""
    from agora.observability import configure_logging, initialize_logfire

    configure_logging(settings)
    initialize_logfire(settings, service_name="agora-settlement-worker")
