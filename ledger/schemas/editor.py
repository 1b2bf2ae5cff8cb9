"""Pydantic schemas for the editor run API."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ledger.workers.run_store import RunStatus


class CamelModel(BaseModel):
    """Serializes with the camelCase keys used in run records."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Request Schemas
# =============================================================================


class EditorRunRequest(CamelModel):
    """Request to trigger an editor run. Unset fields fall back to settings."""

    dry_run: bool | None = Field(default=None, description="Simulate without writing")
    limit: int | None = Field(
        default=None,
        ge=1,
        le=500,
        description="Maximum number of intake items to process",
    )
    provider: Literal["anthropic", "gemini", "mock"] | None = Field(
        default=None,
        description="LLM provider to use",
    )


# =============================================================================
# Response Schemas
# =============================================================================


class EditorItemResultResponse(CamelModel):
    """Outcome for one intake item."""

    intake_id: str = Field(description="Intake item id")
    decision: Literal["PUBLISH", "SKIP", "ERROR"] = Field(description="Item outcome")
    reason: str = Field(description="Why the item ended this way")
    card_id: str | None = Field(default=None, description="Created card, if any")
    entity_ids: list[str] | None = Field(default=None, description="Resolved entity ids")
    relationship_ids: list[str] | None = Field(default=None, description="Created relationships")


class EditorRunSummaryResponse(CamelModel):
    """Run record for list views."""

    run_id: str = Field(description="Run id")
    status: RunStatus = Field(description="Run status")
    dry_run: bool = Field(default=False, description="Whether the run was simulated")
    processed: int = Field(default=0, description="Items processed")
    published: int = Field(default=0, description="Items published")
    skipped: int = Field(default=0, description="Items skipped")
    errors: int = Field(default=0, description="Items that errored")
    created_at: datetime | None = Field(default=None, description="Run creation timestamp")
    started_at: datetime | None = Field(default=None, description="Run start timestamp")
    completed_at: datetime | None = Field(default=None, description="Run completion timestamp")


class EditorRunResponse(EditorRunSummaryResponse):
    """Full run record including per-item results."""

    error: str | None = Field(default=None, description="Failure description")
    results: list[EditorItemResultResponse] = Field(default_factory=list)


class EditorRunCreateResponse(CamelModel):
    """Response when triggering a run."""

    run_id: str = Field(description="Run id")
    status: RunStatus = Field(description="Initial run status")
    message: str = Field(description="Status message")
