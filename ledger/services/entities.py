"""
Entity directory: lookup and creation of organizations and people.

Entities are matched by normalized name ("Acme Corp." and "ACME corp" are
the same entity). There is no unique constraint behind this, so names that
normalize differently ("Acme Corp" vs "Acme Corporation") still coexist.
"""

import re
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.core.logging import get_logger
from ledger.db.base import to_uuid
from ledger.db.enums import EntityType
from ledger.db.models import AuditAction, Entity
from ledger.services.audit import record_event

logger = get_logger(__name__)

_NON_WORD = re.compile(r"[\W_]+")


def normalize_name(name: str) -> str:
    """
    Canonical form of an entity name for matching.

    Examples:
        normalize_name("Acme Corp.")  -> "acmecorp"
        normalize_name(" ACME  corp") -> "acmecorp"
    """
    return _NON_WORD.sub("", (name or "").casefold())


class EntityService:
    """
    Service for entity lookup and creation.

    Usage:
        service = EntityService(db)
        entity = await service.find_entity_by_name("Acme Corp")
        if entity is None:
            entity = await service.create_entity("Acme Corp", EntityType.CORPORATION)
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_entity(self, entity_id: uuid.UUID | str) -> Entity | None:
        """Get an entity by id. Malformed ids are treated as missing."""
        entity_uuid = to_uuid(entity_id)
        if entity_uuid is None:
            return None
        return await self.db.get(Entity, entity_uuid)

    async def find_entity_by_name(self, name: str) -> Entity | None:
        """Find the oldest entity whose normalized name matches."""
        normalized = normalize_name(name)
        if not normalized:
            return None

        result = await self.db.execute(
            select(Entity)
            .where(Entity.normalized_name == normalized)
            .order_by(Entity.created_at.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_entity(
        self,
        name: str,
        entity_type: EntityType,
        created_by: str | None = None,
        aliases: list[str] | None = None,
        description: str | None = None,
    ) -> Entity:
        """Create and commit a new entity."""
        name = name.strip()
        if not normalize_name(name):
            raise ValueError(f"Entity name has no matchable characters: {name!r}")

        entity = Entity(
            name=name,
            normalized_name=normalize_name(name),
            type=entity_type,
            aliases=list(aliases or []),
            description=description,
            created_by=created_by,
        )
        self.db.add(entity)
        await self.db.flush()

        record_event(
            self.db,
            AuditAction.CREATE,
            table_name="entities",
            record_id=entity.id,
            actor=created_by,
            metadata={"name": name, "type": entity_type.value},
        )
        await self.db.commit()

        logger.info("Created entity", entity_id=str(entity.id), name=name, type=entity_type.value)
        return entity

    async def list_entities(
        self,
        entity_type: EntityType | None = None,
        limit: int = 100,
    ) -> list[Entity]:
        """List entities alphabetically, optionally filtered by type."""
        query = select(Entity)
        if entity_type:
            query = query.where(Entity.type == entity_type)
        query = query.order_by(Entity.name).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())
