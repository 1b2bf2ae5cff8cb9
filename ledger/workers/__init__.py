"""
Workers module - Celery tasks for scheduled editor runs.

Architecture:
    Celery beat / FastAPI  --dispatch-->  Redis Queue  --consume-->  Celery Worker
                                                                        |
    Redis Run Store  <--run summaries-----------------------------------+

Start worker:
    celery -A ledger.workers.celery_app worker -l info -P solo -Q editor

The -P solo pool is required because tasks use asyncio.run() internally.
"""

from ledger.workers.celery_app import celery_app
from ledger.workers.run_store import RunStatus, create_run, get_run, list_runs, update_run

__all__ = [
    "celery_app",
    "RunStatus",
    "create_run",
    "get_run",
    "list_runs",
    "update_run",
]
