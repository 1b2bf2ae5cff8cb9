"""
Card model for sourced claim records.

Cards are created in DRAFT and published once at least one of their cited
sources is verified. Entity and source references are stored as JSON arrays
of id strings, mirroring the document-store shape the public site reads.
"""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger.db.base import Base, JSONType, TimestampMixin, UUIDMixin
from ledger.db.enums import CardCategory, CardStatus, EvidenceStrength


class Card(UUIDMixin, TimestampMixin, Base):
    """
    A published, sourced claim.

    Attributes:
        id: UUID7 primary key
        title: Headline
        claim: The claim statement
        summary: Short summary shown on the card
        category: CardCategory
        entity_ids: Entities the claim is about
        source_refs: Source ids cited by the claim
        event_date: Date the underlying event happened
        tags: Free-form tags
        evidence_strength: LOW / MEDIUM / HIGH
        status: DRAFT -> PUBLISHED
        published_at / published_by: Publication stamps
        created_by: User or automation that created the card
    """

    title: Mapped[str] = mapped_column(Text, nullable=False)
    claim: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[CardCategory] = mapped_column(
        Enum(
            CardCategory,
            name="cardcategory",
            create_constraint=False,
            native_enum=True,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=CardCategory.OTHER,
    )
    entity_ids: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    source_refs: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    event_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    tags: Mapped[list | None] = mapped_column(JSONType, nullable=True, default=list)
    evidence_strength: Mapped[EvidenceStrength] = mapped_column(
        Enum(
            EvidenceStrength,
            name="evidencestrength",
            create_constraint=False,
            native_enum=True,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=EvidenceStrength.MEDIUM,
    )

    status: Mapped[CardStatus] = mapped_column(
        Enum(
            CardStatus,
            name="cardstatus",
            create_constraint=False,
            native_enum=True,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=CardStatus.DRAFT,
        index=True,
    )
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    published_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<Card(title={self.title[:40]!r}, status={self.status.value})>"

    @property
    def is_published(self) -> bool:
        return self.status == CardStatus.PUBLISHED


# Recent-published window for the duplicate detector
Index("ix_cards_status_published_at", Card.status, Card.published_at.desc())
