"""
Redis-backed store for editor run records.

Shared between the FastAPI process and Celery workers so the API can report
runs that a worker executed. Falls back to in-memory storage if Redis is
unavailable (for testing and local development).

A run record is the camelCase run summary plus a status:
    {"runId": ..., "status": "PENDING" | "RUNNING" | "COMPLETED" | "FAILED",
     "error": None, "startedAt": ..., "processed": ..., "results": [...]}
"""

import json
from datetime import datetime
from enum import Enum

from ledger.core.config import settings
from ledger.core.logging import get_logger
from ledger.db.base import utcnow

logger = get_logger(__name__)

# Redis key prefix
RUN_PREFIX = "ledger:editor-run:"
RUN_INDEX_KEY = "ledger:editor-runs"
RUN_TTL_SECONDS = 86400
RUN_INDEX_SIZE = 1000

# In-memory fallback
_memory_store: dict[str, dict] = {}
_memory_index: list[str] = []

# Redis client (lazy init)
_redis_client = None
_redis_available: bool | None = None


class RunStatus(str, Enum):
    """Lifecycle of a run record."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


def _get_redis():
    """Get or create Redis client. Returns None if unavailable."""
    global _redis_client, _redis_available

    if _redis_available is False:
        return None

    if _redis_client is not None:
        return _redis_client

    try:
        import redis

        client = redis.Redis.from_url(
            settings.redis_dsn,
            decode_responses=True,
            socket_connect_timeout=2,
        )
        client.ping()
        _redis_client = client
        _redis_available = True
        logger.info("Run store: using Redis", url=settings.redis_dsn)
        return _redis_client
    except Exception as e:
        _redis_available = False
        logger.warning("Run store: Redis unavailable, using in-memory fallback", error=str(e))
        return None


def use_memory_backend() -> None:
    """Force the in-memory backend and clear it."""
    global _redis_client, _redis_available
    _redis_client = None
    _redis_available = False
    _memory_store.clear()
    _memory_index.clear()


def _save(record: dict) -> None:
    run_id = record["runId"]
    r = _get_redis()
    if r:
        r.set(f"{RUN_PREFIX}{run_id}", json.dumps(record), ex=RUN_TTL_SECONDS)
    else:
        _memory_store[run_id] = record


def create_run(run_id: str, dry_run: bool = False) -> dict:
    """Create a PENDING run record and add it to the index."""
    record = {
        "runId": run_id,
        "status": RunStatus.PENDING.value,
        "error": None,
        "createdAt": utcnow().isoformat(),
        "startedAt": None,
        "completedAt": None,
        "processed": 0,
        "published": 0,
        "skipped": 0,
        "errors": 0,
        "dryRun": dry_run,
        "results": [],
    }

    r = _get_redis()
    if r:
        r.set(f"{RUN_PREFIX}{run_id}", json.dumps(record), ex=RUN_TTL_SECONDS)
        r.lpush(RUN_INDEX_KEY, run_id)
        r.ltrim(RUN_INDEX_KEY, 0, RUN_INDEX_SIZE - 1)
    else:
        _memory_store[run_id] = record
        _memory_index.insert(0, run_id)
        del _memory_index[RUN_INDEX_SIZE:]

    return record


def update_run(run_id: str, **updates) -> dict | None:
    """Merge updates into a run record."""
    record = get_run(run_id)
    if record is None:
        return None

    for key, value in updates.items():
        if isinstance(value, RunStatus):
            value = value.value
        elif isinstance(value, datetime):
            value = value.isoformat()
        record[key] = value

    _save(record)
    return record


def save_summary(summary: dict, status: RunStatus, error: str | None = None) -> dict:
    """Store a finished run summary, creating the record if needed."""
    run_id = summary["runId"]
    if get_run(run_id) is None:
        create_run(run_id, dry_run=summary.get("dryRun", False))
    return update_run(run_id, **summary, status=status, error=error)


def get_run(run_id: str) -> dict | None:
    """Get a run record by id."""
    r = _get_redis()
    if r:
        data = r.get(f"{RUN_PREFIX}{run_id}")
        return json.loads(data) if data else None
    record = _memory_store.get(run_id)
    return dict(record) if record else None


def list_runs(
    status_filter: RunStatus | None = None,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[dict], int]:
    """List runs, newest first. Returns (runs, total)."""
    r = _get_redis()

    if r:
        runs = []
        for run_id in r.lrange(RUN_INDEX_KEY, 0, -1):
            data = r.get(f"{RUN_PREFIX}{run_id}")
            if data:
                runs.append(json.loads(data))
    else:
        runs = [dict(_memory_store[rid]) for rid in _memory_index if rid in _memory_store]

    if status_filter:
        runs = [run for run in runs if run["status"] == status_filter.value]

    runs.sort(key=lambda run: run.get("createdAt") or "", reverse=True)

    total = len(runs)
    return runs[offset: offset + limit], total
