"""
Editor run API endpoints.

Architecture:
    POST /editor/runs
        -> Creates run record in Redis-backed store
        -> Dispatches Celery task to Redis queue
        -> Returns 202 Accepted immediately

    Celery Worker (separate process)
        -> Runs the editor pass
        -> Stores the run summary

    GET /editor/runs/{run_id}
        -> Reads the run record from the store

Fallback:
    If Celery/Redis is unavailable (e.g., local dev without Docker),
    falls back to FastAPI BackgroundTasks (in-process).
"""

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, status
from uuid6 import uuid7

from ledger.core.config import settings
from ledger.core.logging import get_logger
from ledger.schemas import (
    EditorRunCreateResponse,
    EditorRunRequest,
    EditorRunResponse,
    EditorRunSummaryResponse,
    PaginatedResponse,
)
from ledger.workers.run_store import RunStatus, create_run, get_run, list_runs
from ledger.workers.tasks import run_editor_pass

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# Celery Dispatch Helpers
# =============================================================================


def _celery_available() -> bool:
    """Check if Celery broker (Redis) is reachable."""
    if settings.celery_task_always_eager:
        return False
    try:
        from ledger.workers.celery_app import celery_app

        conn = celery_app.connection()
        conn.ensure_connection(max_retries=1, timeout=2)
        conn.close()
        return True
    except Exception:
        return False


def _dispatch_to_celery(run_id: str, request: EditorRunRequest) -> str | None:
    """Dispatch an editor run to the Celery queue. Returns the task id, or None."""
    try:
        from ledger.workers.tasks import editor_run_task

        result = editor_run_task.delay(
            run_id=run_id,
            dry_run=request.dry_run,
            limit=request.limit,
            provider=request.provider,
        )
        return result.id
    except Exception as e:
        logger.warning("Failed to dispatch to Celery", error=str(e))
        return None


async def _fallback_editor_run(run_id: str, request: EditorRunRequest, db_url: str) -> None:
    """In-process editor run when Celery is unavailable."""
    try:
        await run_editor_pass(
            run_id=run_id,
            db_url=db_url,
            dry_run=request.dry_run,
            limit=request.limit,
            provider=request.provider,
        )
    except Exception as e:
        # Already recorded as FAILED in the run store
        logger.error("Fallback editor run failed", run_id=run_id, error=str(e))


# =============================================================================
# Endpoints
# =============================================================================


@router.post(
    "/runs",
    response_model=EditorRunCreateResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Trigger an editor run",
    description=(
        "Start an editor pass over eligible intake items. The run is dispatched "
        "to a Celery worker, or executed in-process if Celery is unavailable."
    ),
)
async def trigger_editor_run(
    request: EditorRunRequest,
    background_tasks: BackgroundTasks,
) -> EditorRunCreateResponse:
    """Trigger an editor run via the Celery queue."""
    run_id = str(uuid7())
    dry_run = settings.editor_dry_run if request.dry_run is None else request.dry_run
    create_run(run_id, dry_run=dry_run)

    if _celery_available():
        task_id = _dispatch_to_celery(run_id, request)
        if task_id:
            logger.info("Editor run dispatched to Celery queue", run_id=run_id, task_id=task_id)
            return EditorRunCreateResponse(
                run_id=run_id,
                status=RunStatus.PENDING,
                message="Editor run queued for Celery worker. Use GET /editor/runs/{id} to check status.",
            )

    logger.info("Celery unavailable, using BackgroundTasks fallback", run_id=run_id)
    background_tasks.add_task(_fallback_editor_run, run_id, request, settings.db_url)

    return EditorRunCreateResponse(
        run_id=run_id,
        status=RunStatus.PENDING,
        message="Editor run started (in-process fallback). Use GET /editor/runs/{id} to check status.",
    )


@router.get(
    "/runs",
    response_model=PaginatedResponse[EditorRunSummaryResponse],
    summary="List editor runs",
)
async def list_editor_runs(
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=20, ge=1, le=100, description="Items per page"),
    status_filter: RunStatus | None = Query(default=None, description="Filter by status"),
) -> PaginatedResponse[EditorRunSummaryResponse]:
    """List runs from the run store, newest first."""
    runs, total = list_runs(
        status_filter=status_filter,
        offset=(page - 1) * page_size,
        limit=page_size,
    )
    return PaginatedResponse.create(
        items=[EditorRunSummaryResponse.model_validate(run) for run in runs],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/runs/{run_id}",
    response_model=EditorRunResponse,
    summary="Get an editor run",
    responses={404: {"description": "Run not found"}},
)
async def get_editor_run(run_id: str) -> EditorRunResponse:
    """Get one run record including per-item results."""
    run = get_run(run_id)
    if run is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Editor run {run_id} not found",
        )
    return EditorRunResponse.model_validate(run)
