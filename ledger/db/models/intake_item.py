"""
IntakeItem model for candidate claims produced by feed ingestion.

An intake item is created once by ingestion, annotated once by extraction
(suggested entities and relationships, extracted summary), and terminated
exactly once by the editor: either APPROVED (status PROMOTED, card created)
or SKIPPED. Items are never deleted.

Suggested entity shape (JSON):
    {
        "extractedName": "Acme Corp",
        "suggestedType": "CORPORATION",
        "confidence": 0.92,
        "matchedEntityId": "0192f0c2-...",      # optional
        "matchedEntityName": "Acme Corp",       # optional
        "evidenceSnippet": "..."                # optional
    }
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ledger.db.base import Base, JSONType, UUIDMixin, utcnow
from ledger.db.enums import EditorStatus, ExtractionStatus, IntakeStatus


def _enum_column(enum_cls: type, name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        create_constraint=False,
        native_enum=True,
        values_callable=lambda e: [member.value for member in e],
    )


class IntakeItem(UUIDMixin, Base):
    """
    A raw candidate claim, pre-editorial-review.

    Attributes:
        id: UUID7 primary key
        feed_id: Feed the item came from (e.g. "ftc_press_releases")
        canonical_url: Canonicalized article URL
        title / publisher / published_at: Feed metadata
        summary: Feed-provided summary
        extracted_summary: LLM-generated summary from extraction
        suggested_entities / suggested_relationships: Extraction suggestions
        suggested_tags: Default tags from the feed
        dedupe_key: sha256 of canonical URL + publish time
        status: Processing status (NEW -> PROMOTED / REJECTED)
        extraction_status: Upstream extraction status
        editor_status: Editor outcome (unset -> APPROVED / SKIPPED)
        editor_decision: Immutable EditorDecision record
        promoted_*: Identifiers of records created from this item
        ingested_at / reviewed_at / reviewed_by: Audit stamps
    """

    feed_id: Mapped[str] = mapped_column(String(100), nullable=False)
    canonical_url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    publisher: Mapped[str] = mapped_column(String(200), nullable=False)
    published_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    dedupe_key: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)

    # === Extraction ===
    extracted_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    suggested_entities: Mapped[list | None] = mapped_column(JSONType, nullable=True, default=list)
    suggested_relationships: Mapped[list | None] = mapped_column(
        JSONType, nullable=True, default=list
    )
    suggested_tags: Mapped[list | None] = mapped_column(JSONType, nullable=True, default=list)
    extraction_status: Mapped[ExtractionStatus] = mapped_column(
        _enum_column(ExtractionStatus, "extractionstatus"),
        nullable=False,
        default=ExtractionStatus.PENDING,
    )

    # === Processing ===
    status: Mapped[IntakeStatus] = mapped_column(
        _enum_column(IntakeStatus, "intakestatus"),
        nullable=False,
        default=IntakeStatus.NEW,
        index=True,
    )
    editor_status: Mapped[EditorStatus | None] = mapped_column(
        _enum_column(EditorStatus, "editorstatus"),
        nullable=True,
    )
    editor_decision: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    # === Promotion ===
    promoted_card_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    promoted_source_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), nullable=True
    )
    promoted_entity_ids: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    promoted_relationship_ids: Mapped[list | None] = mapped_column(JSONType, nullable=True)

    # === Timestamps ===
    ingested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<IntakeItem(title={self.title[:40]!r}, status={self.status.value})>"

    @property
    def best_summary(self) -> str:
        """Extracted summary when present, otherwise the feed summary."""
        return self.extracted_summary or self.summary or ""


# Status index drives eligibility; recency ordering within a status
Index("ix_intake_items_status_ingested_at", IntakeItem.status, IntakeItem.ingested_at.desc())
