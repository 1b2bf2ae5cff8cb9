"""
Celery tasks for the editor pipeline.

The task bridges Celery's synchronous execution model with the async
pipeline using asyncio.run(). The same coroutine backs the API's in-process
fallback.

Usage:
    # From API (dispatch to queue):
    from ledger.workers.tasks import editor_run_task
    editor_run_task.delay(run_id=run_id, dry_run=True)

    # Scheduled by celery beat (see celery_app.beat_schedule)
"""

import asyncio

from uuid6 import uuid7

from ledger.core.config import settings
from ledger.core.logging import get_logger
from ledger.services.errors import EditorRunFailedError
from ledger.workers.celery_app import celery_app
from ledger.workers.run_store import RunStatus, create_run, get_run, save_summary, update_run

logger = get_logger(__name__)


async def run_editor_pass(
    run_id: str,
    db_url: str,
    dry_run: bool | None = None,
    limit: int | None = None,
    provider: str | None = None,
    enabled: bool | None = None,
) -> dict:
    """
    Execute one editor run against a fresh engine and record it in the run store.

    Returns:
        The run summary as a camelCase dict
    """
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from ledger.db.base import utcnow
    from ledger.services.editor import EditorRunner
    from ledger.services.llm_client import get_llm_client

    engine = create_async_engine(db_url, echo=False)
    async_session = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)

    if get_run(run_id) is None:
        create_run(run_id, dry_run=settings.editor_dry_run if dry_run is None else dry_run)

    try:
        update_run(run_id, status=RunStatus.RUNNING, startedAt=utcnow())

        async with get_llm_client(provider) as llm_client:
            async with async_session() as db:
                runner = EditorRunner(
                    db, llm_client, enabled=enabled, dry_run=dry_run, max_items=limit
                )
                summary = await runner.run(run_id=run_id)

        status = RunStatus.FAILED if summary.failed else RunStatus.COMPLETED
        error = f"All {summary.errors} processed items errored" if summary.failed else None
        return save_summary(summary.to_dict(), status=status, error=error)

    except Exception as e:
        logger.error("Editor run crashed", run_id=run_id, error=str(e))
        update_run(run_id, status=RunStatus.FAILED, completedAt=utcnow(), error=str(e))
        raise
    finally:
        await engine.dispose()


@celery_app.task(
    name="ledger.workers.tasks.editor_run_task",
    bind=True,
    max_retries=0,
    acks_late=True,
)
def editor_run_task(
    self,
    run_id: str | None = None,
    dry_run: bool | None = None,
    limit: int | None = None,
    provider: str | None = None,
) -> dict:
    """
    Celery task: one editor pass over eligible intake items.

    Args:
        run_id: Pre-created run id (beat-triggered runs get a fresh one)
        dry_run: Override settings.editor_dry_run
        limit: Override settings.editor_max_items
        provider: Override settings.llm_provider

    Raises:
        EditorRunFailedError: Every processed item errored
    """
    run_id = run_id or str(uuid7())

    logger.info("Celery worker: starting editor run", run_id=run_id, task_id=self.request.id)

    record = asyncio.run(
        run_editor_pass(
            run_id=run_id,
            db_url=settings.db_url,
            dry_run=dry_run,
            limit=limit,
            provider=provider,
        )
    )

    if record["status"] == RunStatus.FAILED.value:
        raise EditorRunFailedError(run_id, record["errors"])

    logger.info(
        "Celery worker: editor run complete",
        run_id=run_id,
        processed=record["processed"],
        published=record["published"],
    )
    return record
