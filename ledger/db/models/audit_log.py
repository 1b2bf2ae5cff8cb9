"""
AuditLog model for tracking creation, publication and promotion of records.

Every write the editor performs on behalf of the newsroom is recorded here so
that automated decisions can be traced back to a run and an intake item.

Key features:
- Tracks which table and record was affected, and by whom
- Free-form metadata (card ids, confidence, run id, ...)
- Optional before/after snapshots for updates
- Append-only (immutable records)

Usage:
    audit = AuditLog.create_event(
        action=AuditAction.PROMOTE_INTAKE,
        table_name="intake_items",
        record_id=item.id,
        actor="llm-editor",
        metadata={"cardId": str(card.id), "automated": True},
    )
    session.add(audit)
"""

import uuid
from enum import Enum

from sqlalchemy import Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ledger.db.base import Base, CreatedAtMixin, JSONType, UUIDMixin


class AuditAction(str, Enum):
    """Types of auditable actions."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    PUBLISH = "PUBLISH"
    RETRACT = "RETRACT"
    PROMOTE_INTAKE = "PROMOTE_INTAKE"


class AuditLog(UUIDMixin, CreatedAtMixin, Base):
    """
    Audit log entry.

    Attributes:
        id: UUID7 primary key
        table_name: Name of the affected table (e.g., "cards")
        record_id: UUID of the affected record
        action: Type of action (see AuditAction)
        actor: User or automation that performed the action
        details: Free-form metadata about the action
        old_data / new_data: Optional record snapshots
        reason: Optional context
        created_at: When the action was logged

    This table is append-only - records should never be updated or deleted.
    """

    table_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Name of the affected table",
    )

    record_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        comment="UUID of the affected record",
    )

    action: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        comment="Type of action",
    )

    actor: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        comment="User or automation that performed the action",
    )

    # "metadata" is reserved on declarative classes
    details: Mapped[dict | None] = mapped_column(
        "metadata",
        JSONType,
        nullable=True,
        comment="Free-form metadata about the action",
    )

    old_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    new_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditLog(table={self.table_name}, record={self.record_id}, action={self.action})>"

    # === Factory Methods ===
    @classmethod
    def create_event(
        cls,
        action: AuditAction,
        table_name: str,
        record_id: uuid.UUID,
        actor: str | None = None,
        metadata: dict | None = None,
        reason: str | None = None,
    ) -> "AuditLog":
        """
        Create an audit log entry for a create/publish/promote event.

        Args:
            action: What happened
            table_name: Name of the table (e.g., "intake_items")
            record_id: UUID of the affected record
            actor: Who did it
            metadata: Free-form details stored alongside the event
            reason: Optional context

        Returns:
            New AuditLog instance
        """
        return cls(
            table_name=table_name,
            record_id=record_id,
            action=action.value,
            actor=actor,
            details=metadata or {},
            reason=reason,
        )

    @classmethod
    def create_update(
        cls,
        table_name: str,
        record_id: uuid.UUID,
        old_data: dict,
        new_data: dict,
        actor: str | None = None,
        reason: str | None = None,
    ) -> "AuditLog":
        """Create an audit log entry for an update with before/after snapshots."""
        return cls(
            table_name=table_name,
            record_id=record_id,
            action=AuditAction.UPDATE.value,
            actor=actor,
            old_data=old_data,
            new_data=new_data,
            reason=reason,
        )


# === Indexes ===
Index("ix_audit_logs_table_record", AuditLog.table_name, AuditLog.record_id)
Index("ix_audit_logs_action", AuditLog.action)
Index("ix_audit_logs_created_at", AuditLog.created_at.desc())
