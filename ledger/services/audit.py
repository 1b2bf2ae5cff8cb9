"""
Audit trail helpers.

Events are added to the caller's session and committed together with the
write they describe, so an audit row never exists without its record.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.db.models import AuditAction, AuditLog


def record_event(
    db: AsyncSession,
    action: AuditAction,
    table_name: str,
    record_id: uuid.UUID,
    actor: str | None = None,
    metadata: dict | None = None,
    reason: str | None = None,
) -> AuditLog:
    """Stage an audit event on the session. The caller commits."""
    event = AuditLog.create_event(
        action=action,
        table_name=table_name,
        record_id=record_id,
        actor=actor,
        metadata=metadata,
        reason=reason,
    )
    db.add(event)
    return event


async def list_events(
    db: AsyncSession,
    table_name: str | None = None,
    record_id: uuid.UUID | None = None,
    action: AuditAction | None = None,
    limit: int = 100,
) -> list[AuditLog]:
    """List audit events, newest first."""
    query = select(AuditLog)
    if table_name:
        query = query.where(AuditLog.table_name == table_name)
    if record_id:
        query = query.where(AuditLog.record_id == record_id)
    if action:
        query = query.where(AuditLog.action == action.value)
    query = query.order_by(AuditLog.created_at.desc()).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
