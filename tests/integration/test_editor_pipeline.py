"""
Integration tests for the editor run: eligibility through publication.

Every test drives EditorRunner end to end against in-memory SQLite, a
scripted MockLLMClient and a local snapshot transport.
"""

import uuid
from datetime import date

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.db.enums import (
    CardCategory,
    CardStatus,
    EditorStatus,
    EditorVerdict,
    EntityType,
    EvidenceStrength,
    IntakeStatus,
    RelationshipStatus,
    RelationshipType,
    VerificationStatus,
)
from ledger.db.models import AuditAction, Card, Entity, IntakeItem, Relationship, Source
from ledger.services.audit import list_events
from ledger.services.cards import CardService
from ledger.services.editor import EditorRunner
from ledger.services.editor.runner import (
    DRY_RUN_PREFIX,
    DUPLICATE_REASON,
    NO_ENTITIES_REASON,
    PARSE_FAILURE_REASON,
)
from ledger.services.entities import EntityService
from ledger.services.errors import InvalidStateError
from ledger.services.llm_client import LLMAPIError, MockLLMClient
from ledger.services.relationships import RelationshipService
from ledger.services.sources import SourceService

FTC_TITLE = "FTC Fines Acme Corp $5M"
TWO_ENTITIES = [
    {"create": {"name": "Acme Corp", "type": "CORPORATION"}},
    {"create": {"name": "Federal Trade Commission", "type": "AGENCY"}},
]
FINED_BY = {"fromEntityIndex": 0, "toEntityIndex": 1, "type": "FINED_BY"}


class RejectingCardService(CardService):
    async def publish_card(self, card_id, published_by=None):
        raise InvalidStateError(f"Card {card_id} is under legal hold")


class FirstPublishFailsRelationshipService(RelationshipService):
    rejected_id: str | None = None

    async def publish_relationship(self, relationship_id, published_by=None):
        if self.rejected_id is None:
            self.rejected_id = str(relationship_id)
            raise InvalidStateError(f"Relationship {relationship_id} rejected")
        return await super().publish_relationship(relationship_id, published_by=published_by)


async def count(db: AsyncSession, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


async def reload(db: AsyncSession, model, record_id: uuid.UUID):
    return await db.get(model, record_id, populate_existing=True)


@pytest.fixture
def runner_factory(db_session: AsyncSession, mock_llm: MockLLMClient, source_service: SourceService):
    def build(**overrides) -> EditorRunner:
        options = {
            "enabled": True,
            "dry_run": False,
            "max_items": 20,
            "min_confidence": 0.8,
            "source_service": source_service,
            "actor": "llm-editor",
        }
        options.update(overrides)
        return EditorRunner(db_session, mock_llm, **options)

    return build


# =============================================================================
# Publication
# =============================================================================


class TestPublish:
    async def test_end_to_end_publish(
        self,
        db_session: AsyncSession,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
    ) -> None:
        item = await make_intake_item(title=FTC_TITLE)
        item_id = item.id
        mock_llm.set_responses([editor_reply()])

        summary = await runner_factory().run()

        assert summary.processed == 1
        assert summary.published == 1
        assert summary.failed is False

        result = summary.results[0]
        assert result.decision == EditorVerdict.PUBLISH
        assert result.card_id is not None
        assert len(result.entity_ids) == 1

        assert await count(db_session, Entity) == 1
        assert await count(db_session, Source) == 1
        assert await count(db_session, Card) == 1

        entity = await reload(db_session, Entity, uuid.UUID(result.entity_ids[0]))
        assert entity.name == "Acme Corp"
        assert entity.type == EntityType.CORPORATION
        assert entity.created_by == "llm-editor"

        card = await reload(db_session, Card, uuid.UUID(result.card_id))
        assert card.status == CardStatus.PUBLISHED
        assert card.title == FTC_TITLE
        assert card.claim == FTC_TITLE
        assert card.summary == "The FTC fined Acme Corp $5 million."
        assert card.category == CardCategory.CONSUMER
        assert card.entity_ids == result.entity_ids
        assert card.event_date == date(2026, 3, 1)
        assert card.tags == ["enforcement"]
        assert card.evidence_strength == EvidenceStrength.HIGH
        assert card.published_by == "llm-editor"

        source = await reload(db_session, Source, uuid.UUID(card.source_refs[0]))
        assert source.verification_status == VerificationStatus.VERIFIED
        assert source.excerpt == "A regulator acted against a company."

        promoted = await reload(db_session, IntakeItem, item_id)
        assert promoted.status == IntakeStatus.PROMOTED
        assert promoted.editor_status == EditorStatus.APPROVED
        assert str(promoted.promoted_card_id) == result.card_id
        assert promoted.promoted_source_id == source.id
        assert promoted.promoted_entity_ids == result.entity_ids
        assert promoted.editor_decision["decision"] == "PUBLISH"
        assert promoted.editor_decision["runId"] == summary.run_id

        events = await list_events(db_session, action=AuditAction.PROMOTE_INTAKE)
        assert len(events) == 1
        assert events[0].record_id == item_id
        assert events[0].details == {
            "cardId": result.card_id,
            "sourceId": str(source.id),
            "entityIds": result.entity_ids,
            "relationshipIds": [],
            "confidence": 0.95,
            "runId": summary.run_id,
            "automated": True,
        }

    async def test_replay_is_skipped_as_duplicate(
        self,
        db_session: AsyncSession,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
    ) -> None:
        mock_llm.set_responses([editor_reply()])
        await make_intake_item(title=FTC_TITLE)
        first = await runner_factory().run()
        assert first.published == 1

        replay = await make_intake_item(
            title="  ftc fines ACME corp  $5m ",
            canonical_url="https://other.example.com/x",
        )
        replay_id = replay.id
        second = await runner_factory().run()

        assert second.processed == 1
        assert second.skipped == 1
        assert second.results[0].decision == EditorVerdict.SKIP
        assert second.results[0].reason == DUPLICATE_REASON
        assert await count(db_session, Card) == 1
        assert await count(db_session, Entity) == 1

        skipped = await reload(db_session, IntakeItem, replay_id)
        assert skipped.editor_status == EditorStatus.SKIPPED
        assert skipped.status == IntakeStatus.NEW
        assert skipped.editor_decision["reason"] == DUPLICATE_REASON

    async def test_matched_entity_is_reused_and_listed_in_prompt(
        self,
        db_session: AsyncSession,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
    ) -> None:
        acme = await EntityService(db_session).create_entity("Acme Corp.", EntityType.CORPORATION)
        acme_id = str(acme.id)
        await make_intake_item(suggested_entities=[{"extractedName": "ACME corp", "confidence": 0.9}])
        mock_llm.set_responses([editor_reply(entities=[{"matchedIndex": 0}])])

        summary = await runner_factory().run()

        assert summary.results[0].entity_ids == [acme_id]
        assert await count(db_session, Entity) == 1
        assert acme_id in mock_llm.prompts[0]

    async def test_duplicate_entity_references_are_kept(
        self,
        db_session: AsyncSession,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
    ) -> None:
        acme = await EntityService(db_session).create_entity("Acme Corp", EntityType.CORPORATION)
        acme_id = str(acme.id)
        await make_intake_item()
        mock_llm.set_responses([
            editor_reply(
                entities=[
                    {"matchedIndex": 0},
                    {"entityId": acme_id},
                    {"create": {"name": "Acme Corp", "type": "CORPORATION"}},
                ]
            )
        ])

        summary = await runner_factory().run()

        assert summary.results[0].entity_ids == [acme_id, acme_id, acme_id]
        assert await count(db_session, Entity) == 1

    async def test_relationships_are_created_and_published(
        self,
        db_session: AsyncSession,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
    ) -> None:
        await make_intake_item(title=FTC_TITLE)
        mock_llm.set_responses([
            editor_reply(
                entities=[
                    {"create": {"name": "Acme Corp", "type": "CORPORATION"}},
                    {"create": {"name": "Federal Trade Commission", "type": "government agency"}},
                ],
                relationships=[
                    {"fromEntityIndex": 0, "toEntityIndex": 1, "type": "FINED_BY", "description": "$5M fine"},
                    {"fromEntityIndex": 0, "toEntityIndex": 7, "type": "OWNS"},
                ],
            )
        ])

        summary = await runner_factory().run()
        result = summary.results[0]

        assert result.decision == EditorVerdict.PUBLISH
        assert len(result.relationship_ids) == 1

        relationship = await reload(db_session, Relationship, uuid.UUID(result.relationship_ids[0]))
        assert relationship.type == RelationshipType.REGULATED_BY
        assert relationship.status == RelationshipStatus.PUBLISHED
        assert relationship.description == "$5M fine"
        assert str(relationship.from_entity_id) == result.entity_ids[0]
        assert str(relationship.to_entity_id) == result.entity_ids[1]

        ftc = await reload(db_session, Entity, uuid.UUID(result.entity_ids[1]))
        assert ftc.type == EntityType.AGENCY

    async def test_snapshot_failure_leaves_card_draft(
        self,
        db_session: AsyncSession,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
    ) -> None:
        item = await make_intake_item(canonical_url="https://news.example.com/missing")
        item_id = item.id
        mock_llm.set_responses([editor_reply()])

        summary = await runner_factory().run()
        result = summary.results[0]

        assert result.decision == EditorVerdict.PUBLISH
        card = await reload(db_session, Card, uuid.UUID(result.card_id))
        assert card.status == CardStatus.DRAFT

        source = await reload(db_session, Source, uuid.UUID(card.source_refs[0]))
        assert source.verification_status == VerificationStatus.FAILED

        promoted = await reload(db_session, IntakeItem, item_id)
        assert promoted.status == IntakeStatus.PROMOTED

    async def test_malformed_url_leaves_card_draft(
        self,
        db_session: AsyncSession,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
    ) -> None:
        item = await make_intake_item(canonical_url="https://news.example.com:notaport/story")
        item_id = item.id
        mock_llm.set_responses([editor_reply()])

        summary = await runner_factory().run()
        result = summary.results[0]

        assert result.decision == EditorVerdict.PUBLISH
        assert summary.errors == 0
        assert await count(db_session, Source) == 1

        card = await reload(db_session, Card, uuid.UUID(result.card_id))
        assert card.status == CardStatus.DRAFT
        source = await reload(db_session, Source, uuid.UUID(card.source_refs[0]))
        assert source.verification_status == VerificationStatus.FAILED

        promoted = await reload(db_session, IntakeItem, item_id)
        assert promoted.status == IntakeStatus.PROMOTED

    async def test_card_publish_failure_keeps_relationships(
        self,
        db_session: AsyncSession,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
    ) -> None:
        item = await make_intake_item(title=FTC_TITLE)
        item_id = item.id
        mock_llm.set_responses([editor_reply(entities=TWO_ENTITIES, relationships=[FINED_BY])])

        runner = runner_factory()
        runner.orchestrator.cards = RejectingCardService(db_session)
        summary = await runner.run()
        result = summary.results[0]

        assert result.decision == EditorVerdict.PUBLISH
        assert len(result.relationship_ids) == 1

        card = await reload(db_session, Card, uuid.UUID(result.card_id))
        assert card.status == CardStatus.DRAFT
        assert card.published_at is None

        relationship = await reload(db_session, Relationship, uuid.UUID(result.relationship_ids[0]))
        assert relationship.status == RelationshipStatus.PUBLISHED

        promoted = await reload(db_session, IntakeItem, item_id)
        assert promoted.status == IntakeStatus.PROMOTED

    async def test_one_relationship_publish_failure_is_isolated(
        self,
        db_session: AsyncSession,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
    ) -> None:
        item = await make_intake_item(title=FTC_TITLE)
        item_id = item.id
        mock_llm.set_responses([
            editor_reply(
                entities=TWO_ENTITIES,
                relationships=[FINED_BY, {"fromEntityIndex": 1, "toEntityIndex": 0, "type": "REGULATES"}],
            )
        ])

        runner = runner_factory()
        failing = FirstPublishFailsRelationshipService(db_session)
        runner.orchestrator.relationships = failing
        summary = await runner.run()
        result = summary.results[0]

        assert result.decision == EditorVerdict.PUBLISH
        assert summary.errors == 0
        assert len(result.relationship_ids) == 2

        rejected, accepted = [
            await reload(db_session, Relationship, uuid.UUID(rid)) for rid in result.relationship_ids
        ]
        assert str(rejected.id) == failing.rejected_id
        assert rejected.status == RelationshipStatus.DRAFT
        assert accepted.status == RelationshipStatus.PUBLISHED

        card = await reload(db_session, Card, uuid.UUID(result.card_id))
        assert card.status == CardStatus.PUBLISHED

        promoted = await reload(db_session, IntakeItem, item_id)
        assert promoted.status == IntakeStatus.PROMOTED
        assert promoted.promoted_relationship_ids == result.relationship_ids


# =============================================================================
# Skips
# =============================================================================


class TestSkip:
    async def test_llm_skip_is_recorded(
        self,
        db_session: AsyncSession,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
    ) -> None:
        item = await make_intake_item()
        item_id = item.id
        mock_llm.set_responses([editor_reply(decision="SKIP", reason="Opinion piece", confidence=0.9)])

        summary = await runner_factory().run()

        assert summary.skipped == 1
        assert summary.results[0].reason == "Opinion piece"
        skipped = await reload(db_session, IntakeItem, item_id)
        assert skipped.editor_status == EditorStatus.SKIPPED
        assert skipped.reviewed_by == "llm-editor"
        assert skipped.editor_decision["confidence"] == 0.9
        assert await count(db_session, Card) == 0

    async def test_skipped_item_is_not_reconsidered(
        self,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
    ) -> None:
        await make_intake_item()
        mock_llm.set_responses([editor_reply(decision="SKIP")])

        await runner_factory().run()
        second = await runner_factory().run()

        assert second.processed == 0
        assert mock_llm.call_count == 1

    @pytest.mark.parametrize(
        ("confidence", "expected"),
        [(0.79, EditorVerdict.SKIP), (0.8, EditorVerdict.PUBLISH)],
    )
    async def test_confidence_threshold(
        self,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
        confidence: float,
        expected: EditorVerdict,
    ) -> None:
        await make_intake_item()
        mock_llm.set_responses([editor_reply(confidence=confidence)])

        summary = await runner_factory(min_confidence=0.8).run()
        result = summary.results[0]

        assert result.decision == expected
        if expected == EditorVerdict.SKIP:
            assert "0.79" in result.reason
            assert "0.8" in result.reason

    async def test_no_resolvable_entities(
        self,
        db_session: AsyncSession,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
    ) -> None:
        await make_intake_item()
        mock_llm.set_responses([
            editor_reply(
                entities=[
                    {"matchedIndex": 5},
                    {"entityId": "0192f0c2-0000-7000-8000-000000000001"},
                    {"entityId": "not-a-uuid"},
                ]
            )
        ])

        summary = await runner_factory().run()

        assert summary.results[0].decision == EditorVerdict.SKIP
        assert summary.results[0].reason == NO_ENTITIES_REASON
        assert await count(db_session, Card) == 0
        assert await count(db_session, Source) == 0


# =============================================================================
# Errors
# =============================================================================


class TestErrors:
    async def test_unparseable_response_leaves_item_untouched(
        self,
        db_session: AsyncSession,
        make_intake_item,
        mock_llm: MockLLMClient,
        runner_factory,
    ) -> None:
        item = await make_intake_item()
        item_id = item.id
        mock_llm.set_responses(['{"decision": "MAYBE", "confidence": 0.99}'])

        summary = await runner_factory().run()

        assert summary.errors == 1
        assert summary.results[0].decision == EditorVerdict.ERROR
        assert summary.results[0].reason == PARSE_FAILURE_REASON

        untouched = await reload(db_session, IntakeItem, item_id)
        assert untouched.editor_status is None
        assert untouched.status == IntakeStatus.NEW

    async def test_every_item_erroring_fails_the_run(
        self,
        db_session: AsyncSession,
        make_intake_item,
        mock_llm: MockLLMClient,
        runner_factory,
    ) -> None:
        await make_intake_item()
        await make_intake_item()
        mock_llm.set_responses([LLMAPIError("Anthropic API error 500")])

        summary = await runner_factory().run()

        assert summary.processed == 2
        assert summary.errors == 2
        assert summary.failed is True
        assert all(r.reason == "Anthropic API error 500" for r in summary.results)
        assert summary.to_dict()["errors"] == 2

    async def test_one_error_does_not_stop_the_run(
        self,
        db_session: AsyncSession,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
    ) -> None:
        await make_intake_item(title="older")
        await make_intake_item(title="newer")
        mock_llm.set_responses([RuntimeError("timeout"), editor_reply()])

        summary = await runner_factory().run()

        assert [r.decision for r in summary.results] == [EditorVerdict.ERROR, EditorVerdict.PUBLISH]
        assert summary.failed is False
        assert await count(db_session, Card) == 1


# =============================================================================
# Run controls
# =============================================================================


class TestRunControls:
    async def test_kill_switch(
        self,
        make_intake_item,
        mock_llm: MockLLMClient,
        runner_factory,
    ) -> None:
        await make_intake_item()

        summary = await runner_factory(enabled=False).run(run_id="run-off")

        assert summary.run_id == "run-off"
        assert summary.processed == 0
        assert summary.results == []
        assert summary.completed_at is not None
        assert summary.failed is False
        assert mock_llm.call_count == 0

    async def test_dry_run_writes_nothing(
        self,
        db_session: AsyncSession,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
    ) -> None:
        publish_item = await make_intake_item(title="publishable")
        skip_item = await make_intake_item(title="skippable")
        ids = [publish_item.id, skip_item.id]
        # Newest first: the skippable item is processed first
        mock_llm.set_responses([editor_reply(decision="SKIP"), editor_reply()])

        summary = await runner_factory(dry_run=True).run()

        assert summary.dry_run is True
        skip_result, publish_result = summary.results
        assert skip_result.decision == EditorVerdict.SKIP
        assert publish_result.decision == EditorVerdict.PUBLISH
        assert publish_result.reason.startswith(DRY_RUN_PREFIX)
        assert publish_result.card_id is None
        assert publish_result.relationship_ids is None
        assert "cardId" not in publish_result.to_dict()

        assert await count(db_session, Entity) == 0
        assert await count(db_session, Source) == 0
        assert await count(db_session, Card) == 0
        for item_id in ids:
            item = await reload(db_session, IntakeItem, item_id)
            assert item.editor_status is None

    async def test_max_items(
        self,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
    ) -> None:
        for _ in range(3):
            await make_intake_item()
        mock_llm.set_responses([editor_reply(decision="SKIP")])

        summary = await runner_factory(max_items=2).run()

        assert summary.processed == 2

    async def test_summary_dict_shape(
        self,
        make_intake_item,
        mock_llm: MockLLMClient,
        editor_reply,
        runner_factory,
    ) -> None:
        await make_intake_item()
        mock_llm.set_responses([editor_reply(decision="SKIP", reason="Not newsworthy")])

        data = (await runner_factory().run(run_id="run-1")).to_dict()

        assert set(data) == {
            "runId",
            "startedAt",
            "completedAt",
            "processed",
            "published",
            "skipped",
            "errors",
            "dryRun",
            "results",
        }
        assert data["runId"] == "run-1"
        assert data["results"] == [
            {"intakeId": data["results"][0]["intakeId"], "decision": "SKIP", "reason": "Not newsworthy"}
        ]
