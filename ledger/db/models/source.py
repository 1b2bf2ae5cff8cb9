"""
Source model for citable documents.

A source points at a retrieved document (press release, filing, article).
It starts PENDING and becomes VERIFIED once a snapshot of the document has
been captured and hashed; cards may only be published against verified
sources.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger.db.base import Base, TimestampMixin, UUIDMixin
from ledger.db.enums import DocType, VerificationStatus


class Source(UUIDMixin, TimestampMixin, Base):
    """
    A citable source record.

    Attributes:
        id: UUID7 primary key
        title / url / publisher: Document metadata
        doc_type: HTML, PDF or OTHER
        excerpt: Short excerpt shown next to citations
        verification_status: PENDING -> VERIFIED / FAILED
        sha256 / byte_length / mime_type / captured_at: Snapshot details
        created_by: User or automation that created the source
    """

    title: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    publisher: Mapped[str | None] = mapped_column(String(200), nullable=True)
    doc_type: Mapped[DocType] = mapped_column(
        Enum(
            DocType,
            name="doctype",
            create_constraint=False,
            native_enum=True,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=DocType.HTML,
    )
    excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)

    verification_status: Mapped[VerificationStatus] = mapped_column(
        Enum(
            VerificationStatus,
            name="verificationstatus",
            create_constraint=False,
            native_enum=True,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=VerificationStatus.PENDING,
        index=True,
    )

    # === Snapshot ===
    sha256: Mapped[str | None] = mapped_column(String(64), nullable=True)
    byte_length: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    mime_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    captured_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<Source(url={self.url!r}, status={self.verification_status.value})>"

    @property
    def is_verified(self) -> bool:
        return self.verification_status == VerificationStatus.VERIFIED
