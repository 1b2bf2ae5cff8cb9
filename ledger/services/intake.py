"""
Intake item annotation.

The editor terminates each intake item exactly once: SKIPPED with its
decision recorded, or APPROVED and PROMOTED with the identifiers of what
was created. Items that errored are left untouched so the next run retries
them.
"""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ledger.core.logging import get_logger
from ledger.db.base import to_uuid, utcnow
from ledger.db.enums import EditorStatus, IntakeStatus
from ledger.db.models import AuditAction, IntakeItem
from ledger.services.audit import record_event
from ledger.services.errors import InvalidStateError, RecordNotFoundError

logger = get_logger(__name__)


class IntakeService:
    """Service for recording editor outcomes on intake items."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_intake_item(self, intake_id: uuid.UUID | str) -> IntakeItem | None:
        intake_uuid = to_uuid(intake_id)
        if intake_uuid is None:
            return None
        return await self.db.get(IntakeItem, intake_uuid)

    async def _require_unreviewed(self, intake_id: uuid.UUID | str) -> IntakeItem:
        item = await self.get_intake_item(intake_id)
        if item is None:
            raise RecordNotFoundError("IntakeItem", intake_id)
        if item.editor_status is not None:
            raise InvalidStateError(
                f"Intake item {intake_id} already reviewed ({item.editor_status.value})"
            )
        return item

    async def mark_skipped(
        self,
        intake_id: uuid.UUID | str,
        decision: dict,
        reviewed_by: str,
    ) -> IntakeItem:
        """Record a SKIP decision; the item is never reconsidered."""
        item = await self._require_unreviewed(intake_id)

        item.editor_status = EditorStatus.SKIPPED
        item.editor_decision = decision
        item.reviewed_at = utcnow()
        item.reviewed_by = reviewed_by
        await self.db.commit()

        logger.info("Intake item skipped", intake_id=str(intake_id), reason=decision.get("reason"))
        return item

    async def mark_promoted(
        self,
        intake_id: uuid.UUID | str,
        decision: dict,
        reviewed_by: str,
        card_id: str,
        source_id: str,
        entity_ids: list[str],
        relationship_ids: list[str],
    ) -> IntakeItem:
        """Record an approved decision and what it produced, with a PROMOTE_INTAKE audit event."""
        item = await self._require_unreviewed(intake_id)

        item.editor_status = EditorStatus.APPROVED
        item.editor_decision = decision
        item.status = IntakeStatus.PROMOTED
        item.promoted_card_id = to_uuid(card_id)
        item.promoted_source_id = to_uuid(source_id)
        item.promoted_entity_ids = list(entity_ids)
        item.promoted_relationship_ids = list(relationship_ids)
        item.reviewed_at = utcnow()
        item.reviewed_by = reviewed_by

        record_event(
            self.db,
            AuditAction.PROMOTE_INTAKE,
            table_name="intake_items",
            record_id=item.id,
            actor=reviewed_by,
            metadata={
                "cardId": card_id,
                "sourceId": source_id,
                "entityIds": list(entity_ids),
                "relationshipIds": list(relationship_ids),
                "confidence": decision.get("confidence"),
                "runId": decision.get("runId"),
                "automated": True,
            },
        )
        await self.db.commit()

        logger.info("Intake item promoted", intake_id=str(intake_id), card_id=card_id)
        return item
