"""Integration tests for the ledger services against an in-memory database."""

import httpx
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.db.enums import (
    CardStatus,
    EditorStatus,
    EntityType,
    ExtractionStatus,
    IntakeStatus,
    RelationshipStatus,
    RelationshipType,
    VerificationStatus,
)
from ledger.db.models import AuditAction, AuditLog
from ledger.services.audit import list_events
from ledger.services.cards import CardService
from ledger.services.editor.eligibility import select_eligible_items
from ledger.services.entities import EntityService, normalize_name
from ledger.services.errors import InvalidStateError, RecordNotFoundError, SnapshotError
from ledger.services.intake import IntakeService
from ledger.services.relationships import RelationshipService
from ledger.services.sources import SourceService

# =============================================================================
# Entities
# =============================================================================


class TestEntityService:
    def test_normalize_name(self) -> None:
        assert normalize_name("Acme Corp.") == "acmecorp"
        assert normalize_name(" ACME  corp") == "acmecorp"
        assert normalize_name("AT&T") == "att"
        assert normalize_name("...") == ""

    async def test_create_and_find(self, db_session: AsyncSession) -> None:
        service = EntityService(db_session)
        created = await service.create_entity("Acme Corp.", EntityType.CORPORATION, created_by="tester")

        found = await service.find_entity_by_name("acme corp")
        assert found is not None
        assert found.id == created.id
        assert found.normalized_name == "acmecorp"

        events = await list_events(db_session, table_name="entities", record_id=created.id)
        assert [e.action for e in events] == [AuditAction.CREATE.value]
        assert events[0].actor == "tester"

    async def test_find_returns_oldest_match(self, db_session: AsyncSession) -> None:
        service = EntityService(db_session)
        first = await service.create_entity("Acme Corp", EntityType.CORPORATION)
        await service.create_entity("ACME corp", EntityType.CORPORATION)

        found = await service.find_entity_by_name("Acme Corp")
        assert found.id == first.id

    async def test_get_entity_with_malformed_id(self, db_session: AsyncSession) -> None:
        assert await EntityService(db_session).get_entity("not-a-uuid") is None

    async def test_create_rejects_unmatchable_name(self, db_session: AsyncSession) -> None:
        with pytest.raises(ValueError):
            await EntityService(db_session).create_entity("!!!", EntityType.CORPORATION)


# =============================================================================
# Sources
# =============================================================================


class TestSourceService:
    async def test_create_source_is_pending(self, source_service: SourceService) -> None:
        source = await source_service.create_source("Title", "https://news.example.com/a")
        assert source.verification_status == VerificationStatus.PENDING
        assert source.sha256 is None

    async def test_capture_snapshot(self, source_service: SourceService) -> None:
        source = await source_service.create_source("Title", "https://news.example.com/a")

        captured = await source_service.capture_html_snapshot(source.id, source.url)

        assert captured.verification_status == VerificationStatus.VERIFIED
        assert len(captured.sha256) == 64
        assert captured.byte_length > 0
        assert captured.mime_type == "text/html"
        assert captured.captured_at is not None

    @pytest.mark.parametrize(
        "url",
        ["https://news.example.com/missing", "https://news.example.com:notaport/story"],
    )
    async def test_capture_failure_marks_source_failed(
        self,
        source_service: SourceService,
        url: str,
    ) -> None:
        source = await source_service.create_source("Title", url)

        with pytest.raises(SnapshotError):
            await source_service.capture_html_snapshot(source.id, url)

        reloaded = await source_service.get_source(source.id)
        assert reloaded.verification_status == VerificationStatus.FAILED

    async def test_capture_enforces_size_limit(
        self,
        db_session: AsyncSession,
        http_client: httpx.AsyncClient,
    ) -> None:
        service = SourceService(db_session, http_client=http_client, max_bytes=10)
        source = await service.create_source("Title", "https://news.example.com/big")

        with pytest.raises(SnapshotError, match="exceeds"):
            await service.capture_html_snapshot(source.id, source.url)

    async def test_capture_unknown_source(self, source_service: SourceService) -> None:
        with pytest.raises(RecordNotFoundError):
            await source_service.capture_html_snapshot(
                "0192f0c2-0000-7000-8000-000000000001", "https://news.example.com/a"
            )


# =============================================================================
# Cards
# =============================================================================


class TestCardService:
    async def _draft(self, db: AsyncSession, source_refs: list[str]):
        return await CardService(db).create_card(
            title="FTC Fines Acme Corp $5M",
            claim="FTC Fines Acme Corp $5M",
            summary="Summary",
            entity_ids=[],
            source_refs=source_refs,
        )

    async def test_publish_requires_verified_source(
        self,
        db_session: AsyncSession,
        source_service: SourceService,
    ) -> None:
        url = "https://news.example.com/a"
        source = await source_service.create_source("Title", url)
        source_id = str(source.id)
        card = await self._draft(db_session, [source_id])
        card_id = str(card.id)

        with pytest.raises(InvalidStateError, match="verified"):
            await CardService(db_session).publish_card(card_id)

        await source_service.capture_html_snapshot(source_id, url)
        published = await CardService(db_session).publish_card(card_id, published_by="editor")

        assert published.status == CardStatus.PUBLISHED
        assert published.published_at is not None
        assert published.published_by == "editor"

    async def test_publish_requires_source_refs(self, db_session: AsyncSession) -> None:
        card = await self._draft(db_session, [])
        with pytest.raises(InvalidStateError, match="no source"):
            await CardService(db_session).publish_card(card.id)

    async def test_publish_twice(self, db_session: AsyncSession, source_service: SourceService) -> None:
        source = await source_service.create_source("Title", "https://news.example.com/a")
        await source_service.capture_html_snapshot(source.id, source.url)
        card = await self._draft(db_session, [str(source.id)])
        service = CardService(db_session)

        await service.publish_card(card.id)
        with pytest.raises(InvalidStateError, match="expected DRAFT"):
            await service.publish_card(card.id)

    async def test_publish_unknown_card(self, db_session: AsyncSession) -> None:
        with pytest.raises(RecordNotFoundError):
            await CardService(db_session).publish_card("0192f0c2-0000-7000-8000-000000000001")


# =============================================================================
# Relationships
# =============================================================================


class TestRelationshipService:
    async def _entities(self, db: AsyncSession):
        service = EntityService(db)
        acme = await service.create_entity("Acme Corp", EntityType.CORPORATION)
        ftc = await service.create_entity("Federal Trade Commission", EntityType.AGENCY)
        return acme, ftc

    async def test_lifecycle(self, db_session: AsyncSession) -> None:
        acme, ftc = await self._entities(db_session)
        service = RelationshipService(db_session)

        relationship = await service.create_relationship(
            from_entity_id=str(acme.id),
            to_entity_id=str(ftc.id),
            relationship_type=RelationshipType.REGULATED_BY,
            source_refs=["src-1"],
        )
        assert relationship.status == RelationshipStatus.DRAFT

        published = await service.publish_relationship(relationship.id, published_by="editor")
        assert published.status == RelationshipStatus.PUBLISHED

        with pytest.raises(InvalidStateError):
            await service.update_relationship(relationship.id, description="edited")

        retracted = await service.retract_relationship(relationship.id, "Misattributed", retracted_by="ops")
        assert retracted.status == RelationshipStatus.RETRACTED
        assert retracted.retraction_reason == "Misattributed"

        actions = [e.action for e in await list_events(db_session, record_id=relationship.id)]
        assert sorted(actions) == ["CREATE", "PUBLISH", "RETRACT"]

    async def test_update_draft_records_old_and_new(self, db_session: AsyncSession) -> None:
        acme, ftc = await self._entities(db_session)
        service = RelationshipService(db_session)
        relationship = await service.create_relationship(
            str(acme.id), str(ftc.id), RelationshipType.OTHER, source_refs=["src-1"]
        )

        await service.update_relationship(relationship.id, relationship_type=RelationshipType.REGULATED_BY)

        events = await list_events(db_session, record_id=relationship.id, action=AuditAction.UPDATE)
        assert len(events) == 1
        assert events[0].old_data["type"] == "OTHER"
        assert events[0].new_data["type"] == "REGULATED_BY"

    async def test_publish_requires_source_refs(self, db_session: AsyncSession) -> None:
        acme, ftc = await self._entities(db_session)
        service = RelationshipService(db_session)
        relationship = await service.create_relationship(
            str(acme.id), str(ftc.id), RelationshipType.OTHER, source_refs=[]
        )

        with pytest.raises(InvalidStateError):
            await service.publish_relationship(relationship.id)

    async def test_retract_requires_reason(self, db_session: AsyncSession) -> None:
        with pytest.raises(ValueError):
            await RelationshipService(db_session).retract_relationship("anything", "  ")

    async def test_unknown_endpoint(self, db_session: AsyncSession) -> None:
        acme, _ = await self._entities(db_session)
        with pytest.raises(RecordNotFoundError):
            await RelationshipService(db_session).create_relationship(
                str(acme.id),
                "0192f0c2-0000-7000-8000-000000000001",
                RelationshipType.OTHER,
                source_refs=["src-1"],
            )

    async def test_lookup_by_either_endpoint(self, db_session: AsyncSession) -> None:
        acme, ftc = await self._entities(db_session)
        service = RelationshipService(db_session)
        relationship = await service.create_relationship(
            str(acme.id), str(ftc.id), RelationshipType.REGULATED_BY, source_refs=["src-1"]
        )

        from_side = await service.list_relationships_for_entity(acme.id)
        to_side = await service.list_relationships_for_entity(str(ftc.id))
        published_only = await service.list_relationships_for_entity(
            acme.id, status=RelationshipStatus.PUBLISHED
        )

        assert [r.id for r in from_side] == [relationship.id]
        assert [r.id for r in to_side] == [relationship.id]
        assert published_only == []


# =============================================================================
# Intake and eligibility
# =============================================================================


class TestIntake:
    async def test_mark_skipped_once(self, db_session: AsyncSession, make_intake_item) -> None:
        item = await make_intake_item()
        service = IntakeService(db_session)

        updated = await service.mark_skipped(item.id, {"decision": "SKIP", "reason": "r"}, reviewed_by="editor")
        assert updated.editor_status == EditorStatus.SKIPPED
        assert updated.status == IntakeStatus.NEW
        assert updated.reviewed_by == "editor"

        with pytest.raises(InvalidStateError):
            await service.mark_skipped(item.id, {"decision": "SKIP"}, reviewed_by="editor")

    async def test_mark_promoted_emits_audit_event(self, db_session: AsyncSession, make_intake_item) -> None:
        item = await make_intake_item()
        decision = {"decision": "PUBLISH", "reason": "ok", "confidence": 0.9, "runId": "run-1"}

        updated = await IntakeService(db_session).mark_promoted(
            item.id,
            decision=decision,
            reviewed_by="editor",
            card_id="0192f0c2-0000-7000-8000-00000000000c",
            source_id="0192f0c2-0000-7000-8000-000000000005",
            entity_ids=["e-1"],
            relationship_ids=[],
        )

        assert updated.status == IntakeStatus.PROMOTED
        assert updated.editor_status == EditorStatus.APPROVED
        assert str(updated.promoted_card_id) == "0192f0c2-0000-7000-8000-00000000000c"

        count = await db_session.scalar(
            select(func.count(AuditLog.id)).where(AuditLog.action == AuditAction.PROMOTE_INTAKE.value)
        )
        assert count == 1

        event = (await list_events(db_session, action=AuditAction.PROMOTE_INTAKE))[0]
        assert event.details["automated"] is True
        assert event.details["runId"] == "run-1"
        assert event.details["confidence"] == 0.9
        assert event.details["entityIds"] == ["e-1"]

    async def test_eligibility_filters(self, db_session: AsyncSession, make_intake_item) -> None:
        eligible = await make_intake_item(title="eligible")
        await make_intake_item(title="pending extraction", extraction_status=ExtractionStatus.PENDING)
        await make_intake_item(title="already reviewed", editor_status=EditorStatus.SKIPPED)
        await make_intake_item(title="no summary", summary="  ", extracted_summary=None)
        await make_intake_item(
            title="weak entities",
            suggested_entities=[{"extractedName": "X", "confidence": 0.2}],
        )
        await make_intake_item(
            title="string confidence",
            suggested_entities=[{"extractedName": "X", "confidence": "0.9"}],
        )
        await make_intake_item(title="promoted", status=IntakeStatus.PROMOTED)

        items = await select_eligible_items(db_session, limit=10, min_entity_confidence=0.5)

        assert [i.id for i in items] == [str(eligible.id)]

    async def test_eligibility_prefers_extracted_summary(
        self,
        db_session: AsyncSession,
        make_intake_item,
    ) -> None:
        await make_intake_item(summary=None, extracted_summary="Extracted text")

        items = await select_eligible_items(db_session, limit=10, min_entity_confidence=0.5)

        assert items[0].summary == "Extracted text"

    async def test_eligibility_newest_first_and_limited(
        self,
        db_session: AsyncSession,
        make_intake_item,
    ) -> None:
        for i in range(3):
            await make_intake_item(title=f"item {i}")

        items = await select_eligible_items(db_session, limit=2, min_entity_confidence=0.5)

        assert [i.title for i in items] == ["item 2", "item 1"]

    async def test_eligibility_sees_past_newer_reviewed_items(
        self,
        db_session: AsyncSession,
        make_intake_item,
    ) -> None:
        eligible = await make_intake_item(title="older eligible")
        for i in range(4):
            await make_intake_item(title=f"skipped {i}", editor_status=EditorStatus.SKIPPED)
        await make_intake_item(title="still extracting", extraction_status=ExtractionStatus.PENDING)

        items = await select_eligible_items(db_session, limit=2, min_entity_confidence=0.5)

        assert [i.id for i in items] == [str(eligible.id)]
