"""
Editor run controller.

One run: select eligible intake items, then for each item (sequentially)
request a decision, validate it, gate it, resolve entities, check for
duplicates and publish. Every item ends as PUBLISH, SKIP or ERROR.

- SKIP is recorded on the intake item so it is never reconsidered
- ERROR leaves the intake item untouched so the next run retries it
- A run where every processed item errored is reported as failed

Usage:
    async with get_llm_client() as llm:
        async with AsyncSessionLocal() as db:
            summary = await EditorRunner(db, llm).run()
"""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from uuid6 import uuid7

from ledger.core.config import settings
from ledger.core.logging import get_logger, log_context
from ledger.db.base import utcnow
from ledger.db.enums import EditorVerdict
from ledger.services.editor.decisions import (
    EditorDecision,
    EditorResponse,
    apply_confidence_gate,
    build_editor_prompt,
    load_editor_prompt,
    parse_editor_response,
    request_decision,
)
from ledger.services.editor.duplicates import find_duplicate_card
from ledger.services.editor.eligibility import IntakeSnapshot, select_eligible_items
from ledger.services.editor.publisher import PublicationOrchestrator
from ledger.services.editor.resolver import EntityResolver, get_matched_entities
from ledger.services.entities import EntityService
from ledger.services.intake import IntakeService
from ledger.services.llm_client import BaseLLMClient
from ledger.services.sources import SourceService

logger = get_logger(__name__)

PARSE_FAILURE_REASON = "Failed to parse editor response"
NO_ENTITIES_REASON = "No entities could be resolved"
DUPLICATE_REASON = "Duplicate card detected"
DRY_RUN_PREFIX = "[DRY RUN]"


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class EditorItemResult:
    """Outcome for one intake item."""

    intake_id: str
    decision: EditorVerdict
    reason: str
    card_id: str | None = None
    entity_ids: list[str] | None = None
    relationship_ids: list[str] | None = None

    def to_dict(self) -> dict:
        data = {
            "intakeId": self.intake_id,
            "decision": self.decision.value,
            "reason": self.reason,
        }
        if self.card_id is not None:
            data["cardId"] = self.card_id
        if self.entity_ids is not None:
            data["entityIds"] = self.entity_ids
        if self.relationship_ids is not None:
            data["relationshipIds"] = self.relationship_ids
        return data


@dataclass
class EditorRunSummary:
    """Summary of one editor run."""

    run_id: str
    started_at: datetime
    completed_at: datetime | None = None
    processed: int = 0
    published: int = 0
    skipped: int = 0
    errors: int = 0
    dry_run: bool = False
    results: list[EditorItemResult] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        """True when at least one item was processed and every one errored."""
        return self.processed > 0 and self.errors == self.processed

    def record(self, result: EditorItemResult) -> None:
        self.results.append(result)
        self.processed += 1
        if result.decision == EditorVerdict.PUBLISH:
            self.published += 1
        elif result.decision == EditorVerdict.SKIP:
            self.skipped += 1
        else:
            self.errors += 1

    def to_dict(self) -> dict:
        return {
            "runId": self.run_id,
            "startedAt": self.started_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "processed": self.processed,
            "published": self.published,
            "skipped": self.skipped,
            "errors": self.errors,
            "dryRun": self.dry_run,
            "results": [r.to_dict() for r in self.results],
        }


# =============================================================================
# Runner
# =============================================================================


class EditorRunner:
    """
    Drive one editor run.

    All options default to settings; tests and the CLI override them.
    """

    def __init__(
        self,
        db: AsyncSession,
        llm_client: BaseLLMClient,
        enabled: bool | None = None,
        dry_run: bool | None = None,
        max_items: int | None = None,
        min_confidence: float | None = None,
        prompt_path: str | None = None,
        source_service: SourceService | None = None,
        actor: str | None = None,
    ):
        self.db = db
        self.llm_client = llm_client
        self.enabled = settings.editor_enabled if enabled is None else enabled
        self.dry_run = settings.editor_dry_run if dry_run is None else dry_run
        self.max_items = max_items or settings.editor_max_items
        self.min_confidence = (
            settings.editor_min_confidence if min_confidence is None else min_confidence
        )
        self.prompt_path = prompt_path or str(settings.editor_prompt_path)
        self.actor = actor or settings.editor_user_id

        self.entities = EntityService(db)
        self.intake = IntakeService(db)
        self.resolver = EntityResolver(self.entities, actor=self.actor, dry_run=self.dry_run)
        self.orchestrator = PublicationOrchestrator(db, actor=self.actor, source_service=source_service)

    async def run(self, run_id: str | None = None) -> EditorRunSummary:
        """
        Execute one run and return its summary.

        Args:
            run_id: Pre-assigned run id (generated when omitted)
        """
        summary = EditorRunSummary(
            run_id=run_id or str(uuid7()),
            started_at=utcnow(),
            dry_run=self.dry_run,
        )
        with log_context(run_id=summary.run_id):
            if not self.enabled:
                logger.info("Editor disabled, skipping run")
                summary.completed_at = utcnow()
                return summary

            template = load_editor_prompt(self.prompt_path)
            items = await select_eligible_items(self.db, limit=self.max_items)

            logger.info("Editor run started", items=len(items), dry_run=self.dry_run)

            for item in items:
                with log_context(intake_id=item.id):
                    result = await self._process_safely(item, template, summary.run_id)
                summary.record(result)

            summary.completed_at = utcnow()
            log = logger.error if summary.failed else logger.info
            log(
                "Editor run completed",
                processed=summary.processed,
                published=summary.published,
                skipped=summary.skipped,
                errors=summary.errors,
                failed=summary.failed,
            )
            return summary

    async def _process_safely(
        self,
        item: IntakeSnapshot,
        template: str,
        run_id: str,
    ) -> EditorItemResult:
        """Process one item; any exception becomes that item's ERROR."""
        try:
            return await self.process_item(item, template, run_id)
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "Editor item failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return EditorItemResult(intake_id=item.id, decision=EditorVerdict.ERROR, reason=str(e))

    async def process_item(
        self,
        item: IntakeSnapshot,
        template: str,
        run_id: str,
    ) -> EditorItemResult:
        """Decide and, when approved, publish one intake item."""
        matched = await get_matched_entities(self.entities, item.suggested_entities)
        prompt = build_editor_prompt(template, item, [m.to_prompt_dict() for m in matched])
        raw = await request_decision(self.llm_client, prompt)

        response = parse_editor_response(raw)
        if response is None:
            logger.warning("Unparseable editor response", content=raw[:200])
            return EditorItemResult(
                intake_id=item.id,
                decision=EditorVerdict.ERROR,
                reason=PARSE_FAILURE_REASON,
            )

        apply_confidence_gate(response, self.min_confidence)
        if response.decision == EditorVerdict.SKIP:
            return await self._skip(item, response, run_id)

        resolved = await self.resolver.resolve(response.entities, matched)
        if not resolved:
            response.skip(NO_ENTITIES_REASON)
            return await self._skip(item, response, run_id)

        known_ids = [r.entity_id for r in resolved if r.entity_id is not None]
        if await find_duplicate_card(self.db, item.title, known_ids):
            response.skip(DUPLICATE_REASON)
            return await self._skip(item, response, run_id)

        if self.dry_run:
            return EditorItemResult(
                intake_id=item.id,
                decision=EditorVerdict.PUBLISH,
                reason=f"{DRY_RUN_PREFIX} Would publish with {len(resolved)} entities",
                entity_ids=known_ids,
            )

        publication = await self.orchestrator.publish(item, response, known_ids, run_id)
        return EditorItemResult(
            intake_id=item.id,
            decision=EditorVerdict.PUBLISH,
            reason=response.reason,
            card_id=publication.card_id,
            entity_ids=publication.entity_ids,
            relationship_ids=publication.relationship_ids,
        )

    async def _skip(
        self,
        item: IntakeSnapshot,
        response: EditorResponse,
        run_id: str,
    ) -> EditorItemResult:
        if self.dry_run:
            logger.info("Dry run: would skip", reason=response.reason)
        else:
            decision = EditorDecision.from_response(response, run_id)
            await self.intake.mark_skipped(item.id, decision.to_dict(), reviewed_by=self.actor)

        return EditorItemResult(
            intake_id=item.id,
            decision=EditorVerdict.SKIP,
            reason=response.reason,
        )
