"""
Celery application configuration.

This module creates and configures the Celery app instance used by the
editor worker, including the beat schedule that triggers periodic runs.

Usage:
    # Start worker:
    celery -A ledger.workers.celery_app worker -l info -P solo

    # Start scheduler:
    celery -A ledger.workers.celery_app beat -l info

    # -P solo is required because we use asyncio inside tasks
"""

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from ledger.core.config import settings
from ledger.core.logging import setup_logging

EDITOR_QUEUE = "editor"

celery_app = Celery(
    "ledger",
    broker=settings.celery_broker,
    backend=settings.celery_backend,
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Task settings
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,  # One run at a time (LLM calls are slow)

    # Eager mode: execute tasks synchronously in-process (for testing)
    task_always_eager=settings.celery_task_always_eager,

    result_expires=86400,

    task_routes={
        "ledger.workers.tasks.*": {"queue": EDITOR_QUEUE},
    },
    task_default_queue=EDITOR_QUEUE,

    # Periodic editor run
    beat_schedule={
        "editor-run": {
            "task": "ledger.workers.tasks.editor_run_task",
            "schedule": settings.editor_schedule_minutes * 60.0,
            "options": {"queue": EDITOR_QUEUE, "expires": settings.editor_schedule_minutes * 60},
        },
    },
)

celery_app.autodiscover_tasks(["ledger.workers"])


@celery_setup_logging.connect
def configure_worker_logging(**kwargs) -> None:
    """Replace Celery's log handlers with the structlog pipeline."""
    setup_logging()
