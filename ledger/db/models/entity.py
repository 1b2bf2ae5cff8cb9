"""
Entity model for organizations and people referenced by cards.

Key features:
- Normalized names for deduplication and matching
- ENUM type for controlled vocabulary
- JSON aliases for name variations

Uniqueness is NOT a database constraint: two entities whose names normalize
differently ("Acme Corp" vs "Acme Corporation") can coexist. The directory
service reuses an existing entity whenever normalized names match.
"""

from sqlalchemy import Enum, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger.db.base import Base, JSONType, TimestampMixin, UUIDMixin
from ledger.db.enums import EntityType


class Entity(UUIDMixin, TimestampMixin, Base):
    """
    A named organization or individual.

    Attributes:
        id: UUID7 primary key
        name: Display name (original form)
        normalized_name: Canonical form for matching (see normalize_name)
        type: Entity type from controlled vocabulary
        description: Optional description
        aliases: Alternative names
        created_by: User or automation that created the entity
        created_at / updated_at: Timestamps

    Example:
        entity = Entity(
            name="Acme Corp.",
            normalized_name="acmecorp",
            type=EntityType.CORPORATION,
            aliases=["Acme"],
        )
    """

    name: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        comment="Display name (original form)",
    )

    normalized_name: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        index=True,
        comment="Canonical form for matching (casefolded, punctuation and spaces stripped)",
    )

    type: Mapped[EntityType] = mapped_column(
        Enum(
            EntityType,
            name="entitytype",
            create_constraint=False,
            native_enum=True,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        index=True,
        comment="Entity type from controlled vocabulary",
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Description of the entity",
    )

    aliases: Mapped[list | None] = mapped_column(
        JSONType,
        nullable=True,
        default=list,
        comment="Alternative names",
    )

    created_by: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        comment="User or automation that created the entity",
    )

    def __repr__(self) -> str:
        return f"<Entity(name={self.name!r}, type={self.type.value})>"

    @property
    def all_names(self) -> list[str]:
        """Get all names including primary name and aliases."""
        names = [self.name]
        if self.aliases:
            names.extend(self.aliases)
        return names


Index("ix_entities_name", Entity.name)
