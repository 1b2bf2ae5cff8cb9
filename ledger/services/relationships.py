"""
Claim store: relationships between entities.

Lifecycle: DRAFT -> PUBLISHED -> RETRACTED.
- Only DRAFT relationships can be edited
- Publishing requires at least one source reference
- Retracting requires a PUBLISHED relationship and a reason

Relationships can be looked up from either endpoint; each endpoint column
carries its own index (see ledger.db.models.relationship).
"""

import uuid

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.core.logging import get_logger
from ledger.db.base import to_uuid, utcnow
from ledger.db.enums import RelationshipStatus, RelationshipType
from ledger.db.models import AuditAction, AuditLog, Entity, Relationship
from ledger.services.audit import record_event
from ledger.services.errors import InvalidStateError, RecordNotFoundError

logger = get_logger(__name__)


class RelationshipService:
    """Service for the relationship lifecycle."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_relationship(self, relationship_id: uuid.UUID | str) -> Relationship | None:
        rel_uuid = to_uuid(relationship_id)
        if rel_uuid is None:
            return None
        return await self.db.get(Relationship, rel_uuid)

    async def _require(self, relationship_id: uuid.UUID | str) -> Relationship:
        relationship = await self.get_relationship(relationship_id)
        if relationship is None:
            raise RecordNotFoundError("Relationship", relationship_id)
        return relationship

    async def create_relationship(
        self,
        from_entity_id: uuid.UUID | str,
        to_entity_id: uuid.UUID | str,
        relationship_type: RelationshipType,
        source_refs: list[str] | None = None,
        description: str | None = None,
        created_by: str | None = None,
    ) -> Relationship:
        """
        Create and commit a DRAFT relationship.

        Raises:
            RecordNotFoundError: Either endpoint entity does not exist
        """
        source_uuid = to_uuid(from_entity_id)
        target_uuid = to_uuid(to_entity_id)
        endpoints = (("from", source_uuid, from_entity_id), ("to", target_uuid, to_entity_id))
        for label, entity_uuid, raw in endpoints:
            if entity_uuid is None or await self.db.get(Entity, entity_uuid) is None:
                raise RecordNotFoundError(f"Entity ({label})", raw)

        relationship = Relationship(
            from_entity_id=source_uuid,
            to_entity_id=target_uuid,
            type=relationship_type,
            description=description,
            source_refs=[str(ref) for ref in source_refs or []],
            status=RelationshipStatus.DRAFT,
            created_by=created_by,
        )
        self.db.add(relationship)
        await self.db.flush()

        record_event(
            self.db,
            AuditAction.CREATE,
            table_name="relationships",
            record_id=relationship.id,
            actor=created_by,
            metadata={
                "fromEntityId": str(source_uuid),
                "toEntityId": str(target_uuid),
                "type": relationship_type.value,
            },
        )
        await self.db.commit()

        logger.info(
            "Created relationship",
            relationship_id=str(relationship.id),
            type=relationship_type.value,
        )
        return relationship

    async def update_relationship(
        self,
        relationship_id: uuid.UUID | str,
        relationship_type: RelationshipType | None = None,
        description: str | None = None,
        source_refs: list[str] | None = None,
        updated_by: str | None = None,
    ) -> Relationship:
        """Edit a DRAFT relationship. Published or retracted ones are immutable."""
        relationship = await self._require(relationship_id)
        if relationship.status != RelationshipStatus.DRAFT:
            raise InvalidStateError(
                f"Relationship {relationship_id} is {relationship.status.value}; only DRAFT can be edited"
            )

        old_data = relationship.to_dict()
        if relationship_type is not None:
            relationship.type = relationship_type
        if description is not None:
            relationship.description = description
        if source_refs is not None:
            relationship.source_refs = [str(ref) for ref in source_refs]

        self.db.add(
            AuditLog.create_update(
                table_name="relationships",
                record_id=relationship.id,
                old_data=old_data,
                new_data=relationship.to_dict(),
                actor=updated_by,
            )
        )
        await self.db.commit()
        return relationship

    async def publish_relationship(
        self,
        relationship_id: uuid.UUID | str,
        published_by: str | None = None,
    ) -> Relationship:
        """
        Publish a DRAFT relationship.

        Raises:
            RecordNotFoundError: Unknown relationship
            InvalidStateError: Not DRAFT, or no source references
        """
        relationship = await self._require(relationship_id)
        if relationship.status != RelationshipStatus.DRAFT:
            raise InvalidStateError(
                f"Relationship {relationship_id} is {relationship.status.value}, expected DRAFT"
            )
        if not relationship.source_refs:
            raise InvalidStateError(f"Relationship {relationship_id} has no source references")

        relationship.status = RelationshipStatus.PUBLISHED
        relationship.published_at = utcnow()
        relationship.published_by = published_by

        record_event(
            self.db,
            AuditAction.PUBLISH,
            table_name="relationships",
            record_id=relationship.id,
            actor=published_by,
        )
        await self.db.commit()

        logger.info("Published relationship", relationship_id=str(relationship.id))
        return relationship

    async def retract_relationship(
        self,
        relationship_id: uuid.UUID | str,
        reason: str,
        retracted_by: str | None = None,
    ) -> Relationship:
        """
        Retract a PUBLISHED relationship.

        Raises:
            ValueError: Empty reason
            InvalidStateError: Not PUBLISHED
        """
        if not reason or not reason.strip():
            raise ValueError("A retraction reason is required")

        relationship = await self._require(relationship_id)
        if relationship.status != RelationshipStatus.PUBLISHED:
            raise InvalidStateError(
                f"Relationship {relationship_id} is {relationship.status.value}, expected PUBLISHED"
            )

        relationship.status = RelationshipStatus.RETRACTED
        relationship.retraction_reason = reason.strip()
        relationship.retracted_at = utcnow()
        relationship.retracted_by = retracted_by

        record_event(
            self.db,
            AuditAction.RETRACT,
            table_name="relationships",
            record_id=relationship.id,
            actor=retracted_by,
            reason=relationship.retraction_reason,
        )
        await self.db.commit()

        logger.info("Retracted relationship", relationship_id=str(relationship.id))
        return relationship

    async def list_relationships_for_entity(
        self,
        entity_id: uuid.UUID | str,
        status: RelationshipStatus | None = None,
    ) -> list[Relationship]:
        """All relationships where the entity is either endpoint, newest first."""
        entity_uuid = to_uuid(entity_id)
        if entity_uuid is None:
            return []

        query = select(Relationship).where(
            or_(
                Relationship.from_entity_id == entity_uuid,
                Relationship.to_entity_id == entity_uuid,
            )
        )
        if status:
            query = query.where(Relationship.status == status)
        query = query.order_by(Relationship.created_at.desc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

