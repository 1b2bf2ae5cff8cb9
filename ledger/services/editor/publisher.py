"""
Publication of approved editor decisions.

Steps, each committed on its own:
1. Create the Source and try to capture a snapshot (failure is logged)
2. Create the Card in DRAFT
3. Create Relationships in DRAFT (bad indices and failures are logged and skipped)
4. Publish the Card (failure leaves it DRAFT)
5. Publish each Relationship independently
6. Mark the intake item APPROVED + PROMOTED and emit the audit event

Partial completion is a valid end state. Nothing is rolled back across steps;
a failed step only rolls back its own uncommitted write.
"""

from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from ledger.core.logging import get_logger
from ledger.db.enums import CardCategory, DocType, EvidenceStrength, RelationshipType
from ledger.services.cards import CardService
from ledger.services.editor.decisions import EditorDecision, EditorResponse, RelationshipSpec
from ledger.services.editor.eligibility import IntakeSnapshot
from ledger.services.errors import SnapshotError
from ledger.services.intake import IntakeService
from ledger.services.relationships import RelationshipService
from ledger.services.sources import SourceService

logger = get_logger(__name__)

EXCERPT_LENGTH = 500


@dataclass
class PublicationResult:
    """Identifiers of everything a publication created."""

    card_id: str
    source_id: str
    entity_ids: list[str]
    relationship_ids: list[str] = field(default_factory=list)
    card_published: bool = False
    snapshot_captured: bool = False
    warnings: list[str] = field(default_factory=list)


class PublicationOrchestrator:
    """
    Turn an approved decision into source, card and relationship records.

    Usage:
        orchestrator = PublicationOrchestrator(db, actor="llm-editor")
        result = await orchestrator.publish(item, response, entity_ids, run_id)
    """

    def __init__(
        self,
        db: AsyncSession,
        actor: str,
        source_service: SourceService | None = None,
    ):
        self.db = db
        self.actor = actor
        self.sources = source_service or SourceService(db)
        self.cards = CardService(db)
        self.relationships = RelationshipService(db)
        self.intake = IntakeService(db)

    async def publish(
        self,
        item: IntakeSnapshot,
        response: EditorResponse,
        entity_ids: list[str],
        run_id: str,
    ) -> PublicationResult:
        """
        Run the publication sequence for one intake item.

        Source or card creation failures propagate (the item becomes an
        ERROR). Later failures are recorded in result.warnings.
        """
        # 1. Source
        source = await self.sources.create_source(
            title=item.title,
            url=item.canonical_url,
            publisher=item.publisher,
            doc_type=DocType.HTML,
            excerpt=item.summary[:EXCERPT_LENGTH] or None,
            created_by=self.actor,
        )
        source_id = str(source.id)
        result_warnings: list[str] = []

        snapshot_captured = False
        try:
            await self.sources.capture_html_snapshot(source_id, item.canonical_url)
            snapshot_captured = True
        except SnapshotError as e:
            result_warnings.append(f"Snapshot failed: {e}")
            logger.warning("Snapshot failed, continuing without it", source_id=source_id, error=str(e))

        # 2. Card
        card = await self.cards.create_card(
            title=item.title,
            claim=item.title,
            summary=response.card_summary or item.summary,
            category=CardCategory.from_llm(response.category),
            entity_ids=entity_ids,
            source_refs=[source_id],
            event_date=item.published_at.date(),
            tags=item.suggested_tags,
            evidence_strength=EvidenceStrength.HIGH,
            created_by=self.actor,
        )
        card_id = str(card.id)

        result = PublicationResult(
            card_id=card_id,
            source_id=source_id,
            entity_ids=list(entity_ids),
            snapshot_captured=snapshot_captured,
            warnings=result_warnings,
        )

        # 3. Relationships
        for rel in response.relationships:
            relationship_id = await self._create_relationship(rel, entity_ids, source_id, result)
            if relationship_id:
                result.relationship_ids.append(relationship_id)

        # 4. Publish card
        try:
            await self.cards.publish_card(card_id, published_by=self.actor)
            result.card_published = True
        except Exception as e:
            await self.db.rollback()
            result.warnings.append(f"Card publish failed: {e}")
            logger.warning("Card publish failed, left in DRAFT", card_id=card_id, error=str(e))

        # 5. Publish relationships
        for relationship_id in result.relationship_ids:
            try:
                await self.relationships.publish_relationship(relationship_id, published_by=self.actor)
            except Exception as e:
                await self.db.rollback()
                result.warnings.append(f"Relationship publish failed: {e}")
                logger.warning(
                    "Relationship publish failed",
                    relationship_id=relationship_id,
                    error=str(e),
                )

        # 6. Annotate intake item
        decision = EditorDecision.from_response(response, run_id)
        await self.intake.mark_promoted(
            item.id,
            decision=decision.to_dict(),
            reviewed_by=self.actor,
            card_id=card_id,
            source_id=source_id,
            entity_ids=result.entity_ids,
            relationship_ids=result.relationship_ids,
        )

        logger.info(
            "Published intake item",
            intake_id=item.id,
            card_id=card_id,
            card_published=result.card_published,
            relationships=len(result.relationship_ids),
            warnings=len(result.warnings),
        )
        return result

    async def _create_relationship(
        self,
        rel: RelationshipSpec,
        entity_ids: list[str],
        source_id: str,
        result: PublicationResult,
    ) -> str | None:
        if not (0 <= rel.from_index < len(entity_ids) and 0 <= rel.to_index < len(entity_ids)):
            result.warnings.append(
                f"Relationship indices out of range: {rel.from_index} -> {rel.to_index}"
            )
            logger.warning(
                "Relationship references out-of-range entity index",
                from_index=rel.from_index,
                to_index=rel.to_index,
                entities=len(entity_ids),
            )
            return None

        try:
            relationship = await self.relationships.create_relationship(
                from_entity_id=entity_ids[rel.from_index],
                to_entity_id=entity_ids[rel.to_index],
                relationship_type=RelationshipType.from_llm(rel.type),
                source_refs=[source_id],
                description=rel.description,
                created_by=self.actor,
            )
        except Exception as e:
            await self.db.rollback()
            result.warnings.append(f"Relationship create failed: {e}")
            logger.warning("Relationship create failed", type=rel.type, error=str(e))
            return None

        return str(relationship.id)
