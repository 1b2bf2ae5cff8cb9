"""
Relationship model for typed edges between entities.

Relationships are directed ("Acme Corp REGULATED_BY FTC") and follow the
lifecycle DRAFT -> PUBLISHED -> RETRACTED.

Bidirectional lookup uses two independent secondary indexes, one per
endpoint, on a single row. Because there is only one row per relationship,
status changes can never leave the two lookup paths inconsistent.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ledger.db.base import Base, JSONType, TimestampMixin, UUIDMixin
from ledger.db.enums import RelationshipStatus, RelationshipType


class Relationship(UUIDMixin, TimestampMixin, Base):
    """
    A directed, sourced edge between two entities.

    Attributes:
        id: UUID7 primary key
        from_entity_id / to_entity_id: Endpoints
        type: RelationshipType
        description: Optional free-text context
        source_refs: Source ids supporting the relationship
        status: DRAFT -> PUBLISHED -> RETRACTED
        published_at / published_by: Publication stamps
        retraction_reason / retracted_at / retracted_by: Retraction stamps
        created_by: User or automation that created it

    Constraints:
        - Publishing requires at least one source ref
    """

    from_entity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("entities.id"),
        nullable=False,
        comment="Source entity (subject)",
    )

    to_entity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("entities.id"),
        nullable=False,
        comment="Target entity (object)",
    )

    type: Mapped[RelationshipType] = mapped_column(
        Enum(
            RelationshipType,
            name="relationshiptype",
            create_constraint=False,
            native_enum=True,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        index=True,
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_refs: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    status: Mapped[RelationshipStatus] = mapped_column(
        Enum(
            RelationshipStatus,
            name="relationshipstatus",
            create_constraint=False,
            native_enum=True,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=RelationshipStatus.DRAFT,
        index=True,
    )

    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    published_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    retraction_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    retracted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    retracted_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<Relationship({self.from_entity_id} {self.type.value} {self.to_entity_id})>"

    @property
    def triple(self) -> tuple[uuid.UUID, str, uuid.UUID]:
        """Return the relationship as a (from_id, type, to_id) triple."""
        return (self.from_entity_id, self.type.value, self.to_entity_id)


# One index per endpoint for bidirectional lookup
Index("ix_relationships_from_entity_id", Relationship.from_entity_id)
Index("ix_relationships_to_entity_id", Relationship.to_entity_id)
