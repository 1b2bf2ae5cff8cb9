"""Initial schema - create all ledger tables.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-09-28

This migration creates the complete ledger schema:
- intake_items: Ingested news items awaiting editorial review
- entities: Organizations and people referenced by cards
- sources: Cited documents with content snapshots
- cards: Sourced claims about entities
- relationships: Typed edges between entities
- audit_logs: Every write made by the editor or a human operator

It also creates:
- ENUM types for every controlled vocabulary and lifecycle state
- All indexes for query performance
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


ENUM_TYPES: dict[str, tuple[str, ...]] = {
    "entitytype": (
        "CORPORATION",
        "AGENCY",
        "PERSON",
        "INDIVIDUAL_PUBLIC_OFFICIAL",
        "NONPROFIT",
        "VENDOR",
    ),
    "relationshiptype": (
        "OWNS",
        "CONTROLS",
        "SUBSIDIARY_OF",
        "PARENT_OF",
        "AFFILIATED",
        "CONTRACTOR_TO",
        "REGULATED_BY",
        "LOBBIED_BY",
        "ACQUIRED",
        "DIVESTED",
        "JV_PARTNER",
        "BOARD_INTERLOCK",
        "OTHER",
    ),
    "cardcategory": (
        "consumer",
        "labor",
        "environment",
        "privacy",
        "antitrust",
        "fraud",
        "safety",
        "governance",
        "other",
    ),
    "intakestatus": ("NEW", "REVIEWED", "PROMOTED", "REJECTED"),
    "extractionstatus": ("PENDING", "COMPLETED", "FAILED", "SKIPPED"),
    "editorstatus": ("APPROVED", "SKIPPED"),
    "doctype": ("HTML", "PDF", "OTHER"),
    "verificationstatus": ("PENDING", "VERIFIED", "FAILED"),
    "cardstatus": ("DRAFT", "PUBLISHED"),
    "relationshipstatus": ("DRAFT", "PUBLISHED", "RETRACTED"),
    "evidencestrength": ("LOW", "MEDIUM", "HIGH"),
}


def _enum(name: str) -> postgresql.ENUM:
    # Types are created explicitly in upgrade()
    return postgresql.ENUM(*ENUM_TYPES[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create all tables, enums and indexes."""

    # ==========================================================================
    # Create ENUM types
    # ==========================================================================

    bind = op.get_bind()
    for name in ENUM_TYPES:
        _enum(name).create(bind, checkfirst=True)

    # ==========================================================================
    # Create tables
    # ==========================================================================

    # --------------------------------------------------------------------------
    # intake_items table
    # --------------------------------------------------------------------------
    op.create_table(
        "intake_items",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID7 primary key"),
        sa.Column("feed_id", sa.String(length=100), nullable=False),
        sa.Column("canonical_url", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("publisher", sa.String(length=200), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("dedupe_key", sa.String(length=64), nullable=True),
        sa.Column("extracted_summary", sa.Text(), nullable=True),
        sa.Column(
            "suggested_entities",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Extractor suggestions [{extractedName, confidence, matchedEntityId}]",
        ),
        sa.Column(
            "suggested_relationships",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
        ),
        sa.Column("suggested_tags", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("extraction_status", _enum("extractionstatus"), nullable=False),
        sa.Column("status", _enum("intakestatus"), nullable=False),
        sa.Column("editor_status", _enum("editorstatus"), nullable=True),
        sa.Column(
            "editor_decision",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Recorded editor decision {decision, reason, confidence, decidedAt, runId}",
        ),
        sa.Column("promoted_card_id", sa.UUID(), nullable=True),
        sa.Column("promoted_source_id", sa.UUID(), nullable=True),
        sa.Column("promoted_entity_ids", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            "promoted_relationship_ids",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
        ),
        sa.Column("ingested_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.String(length=100), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_intake_items"),
        sa.UniqueConstraint("dedupe_key", name="uq_intake_items_dedupe_key"),
    )
    op.create_index("ix_intake_items_status", "intake_items", ["status"], unique=False)
    op.create_index("ix_intake_items_ingested_at", "intake_items", ["ingested_at"], unique=False)
    op.create_index(
        "ix_intake_items_status_ingested_at",
        "intake_items",
        ["status", sa.text("ingested_at DESC")],
        unique=False,
    )

    # --------------------------------------------------------------------------
    # entities table
    # --------------------------------------------------------------------------
    op.create_table(
        "entities",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID7 primary key"),
        sa.Column("name", sa.String(length=500), nullable=False, comment="Display name"),
        sa.Column(
            "normalized_name",
            sa.String(length=500),
            nullable=False,
            comment="Canonical form for matching",
        ),
        sa.Column("type", _enum("entitytype"), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("aliases", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_by", sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_entities"),
    )
    op.create_index("ix_entities_name", "entities", ["name"], unique=False)
    op.create_index(
        "ix_entities_normalized_name", "entities", ["normalized_name"], unique=False
    )
    op.create_index("ix_entities_type", "entities", ["type"], unique=False)

    # --------------------------------------------------------------------------
    # sources table
    # --------------------------------------------------------------------------
    op.create_table(
        "sources",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID7 primary key"),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("publisher", sa.String(length=200), nullable=True),
        sa.Column("doc_type", _enum("doctype"), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("verification_status", _enum("verificationstatus"), nullable=False),
        sa.Column("sha256", sa.String(length=64), nullable=True, comment="Snapshot digest"),
        sa.Column("byte_length", sa.BigInteger(), nullable=True),
        sa.Column("mime_type", sa.String(length=100), nullable=True),
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_sources"),
    )
    op.create_index(
        "ix_sources_verification_status", "sources", ["verification_status"], unique=False
    )

    # --------------------------------------------------------------------------
    # cards table
    # --------------------------------------------------------------------------
    op.create_table(
        "cards",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID7 primary key"),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("claim", sa.Text(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("category", _enum("cardcategory"), nullable=False),
        sa.Column("entity_ids", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column(
            "source_refs",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Ids of sources backing the claim",
        ),
        sa.Column("event_date", sa.Date(), nullable=True),
        sa.Column("tags", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("evidence_strength", _enum("evidencestrength"), nullable=False),
        sa.Column("status", _enum("cardstatus"), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("published_by", sa.String(length=100), nullable=True),
        sa.Column("created_by", sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_cards"),
    )
    op.create_index("ix_cards_status", "cards", ["status"], unique=False)
    op.create_index(
        "ix_cards_status_published_at",
        "cards",
        ["status", sa.text("published_at DESC")],
        unique=False,
    )

    # --------------------------------------------------------------------------
    # relationships table
    # --------------------------------------------------------------------------
    op.create_table(
        "relationships",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID7 primary key"),
        sa.Column("from_entity_id", sa.UUID(), nullable=False),
        sa.Column("to_entity_id", sa.UUID(), nullable=False),
        sa.Column("type", _enum("relationshiptype"), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("source_refs", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", _enum("relationshipstatus"), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("published_by", sa.String(length=100), nullable=True),
        sa.Column("retraction_reason", sa.Text(), nullable=True),
        sa.Column("retracted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("retracted_by", sa.String(length=100), nullable=True),
        sa.Column("created_by", sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["from_entity_id"],
            ["entities.id"],
            name="fk_relationships_from_entity_id_entities",
        ),
        sa.ForeignKeyConstraint(
            ["to_entity_id"],
            ["entities.id"],
            name="fk_relationships_to_entity_id_entities",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_relationships"),
    )
    op.create_index(
        "ix_relationships_from_entity_id", "relationships", ["from_entity_id"], unique=False
    )
    op.create_index(
        "ix_relationships_to_entity_id", "relationships", ["to_entity_id"], unique=False
    )
    op.create_index("ix_relationships_type", "relationships", ["type"], unique=False)
    op.create_index("ix_relationships_status", "relationships", ["status"], unique=False)

    # --------------------------------------------------------------------------
    # audit_logs table
    # --------------------------------------------------------------------------
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID7 primary key"),
        sa.Column(
            "table_name",
            sa.String(length=100),
            nullable=False,
            comment="Name of the affected table",
        ),
        sa.Column(
            "record_id",
            sa.UUID(),
            nullable=False,
            comment="UUID of the affected record",
        ),
        sa.Column(
            "action",
            sa.String(length=30),
            nullable=False,
            comment="Type of action (CREATE, UPDATE, PUBLISH, RETRACT, PROMOTE_INTAKE)",
        ),
        sa.Column("actor", sa.String(length=100), nullable=True, comment="Who acted"),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Structured event details",
        ),
        sa.Column("old_data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("new_data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
            comment="When the action was logged",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_audit_logs"),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"], unique=False)
    op.create_index(
        "ix_audit_logs_created_at",
        "audit_logs",
        [sa.text("created_at DESC")],
        unique=False,
    )
    op.create_index(
        "ix_audit_logs_table_record",
        "audit_logs",
        ["table_name", "record_id"],
        unique=False,
    )


def downgrade() -> None:
    """Drop all tables and enums in reverse order."""

    # Drop tables in reverse dependency order
    op.drop_table("audit_logs")
    op.drop_table("relationships")
    op.drop_table("cards")
    op.drop_table("sources")
    op.drop_table("entities")
    op.drop_table("intake_items")

    for name in reversed(list(ENUM_TYPES)):
        op.execute(f"DROP TYPE IF EXISTS {name}")
