"""
Entity resolution for editor decisions.

Turns the decision's entity references into concrete entity ids. New
entities are created only as a last resort, after a name lookup found
nothing. The output is NOT de-duplicated: the same entity referenced twice
(say by index and by name) appears twice.
"""

from dataclasses import dataclass

from ledger.core.logging import get_logger
from ledger.db.enums import EntityType
from ledger.services.editor.decisions import (
    EntityRef,
    ExistingEntityRef,
    MatchedEntityRef,
    NewEntityRef,
)
from ledger.services.entities import EntityService

logger = get_logger(__name__)


@dataclass(frozen=True)
class MatchedEntity:
    """An existing entity matched to one of the item's suggestions."""

    entity_id: str
    name: str
    type: str

    def to_prompt_dict(self) -> dict:
        return {"entityId": self.entity_id, "name": self.name, "type": self.type}


@dataclass(frozen=True)
class ResolvedEntity:
    """
    Outcome of resolving one reference.

    entity_id is None only in dry-run mode, for an entity that would have
    been created.
    """

    entity_id: str | None
    name: str
    created: bool = False


async def get_matched_entities(
    entity_service: EntityService,
    suggestions: list[dict],
) -> list[MatchedEntity]:
    """
    Match suggested entities to the directory.

    A suggestion's pre-matched id is tried first, then its extracted name.
    The result keeps suggestion order and lists each entity once.
    """
    matched: list[MatchedEntity] = []
    seen: set[str] = set()

    for suggestion in suggestions:
        if not isinstance(suggestion, dict):
            continue

        entity = None
        matched_id = suggestion.get("matchedEntityId")
        if matched_id:
            entity = await entity_service.get_entity(matched_id)
        if entity is None and suggestion.get("extractedName"):
            entity = await entity_service.find_entity_by_name(suggestion["extractedName"])

        if entity is None:
            continue

        entity_id = str(entity.id)
        if entity_id in seen:
            continue
        seen.add(entity_id)
        matched.append(MatchedEntity(entity_id=entity_id, name=entity.name, type=entity.type.value))

    logger.debug(
        "Matched suggested entities",
        suggestions=len(suggestions),
        matched=len(matched),
    )
    return matched


class EntityResolver:
    """
    Resolve entity references against the directory.

    Usage:
        resolver = EntityResolver(EntityService(db), actor="llm-editor")
        resolved = await resolver.resolve(response.entities, matched)
    """

    def __init__(
        self,
        entity_service: EntityService,
        actor: str,
        dry_run: bool = False,
    ):
        self.entity_service = entity_service
        self.actor = actor
        self.dry_run = dry_run

    async def resolve(
        self,
        refs: list[EntityRef],
        matched: list[MatchedEntity],
    ) -> list[ResolvedEntity]:
        """Resolve refs in order; unresolvable ones are dropped with a warning."""
        resolved: list[ResolvedEntity] = []
        for ref in refs:
            entity = await self._resolve_one(ref, matched)
            if entity is not None:
                resolved.append(entity)
        return resolved

    async def _resolve_one(
        self,
        ref: EntityRef,
        matched: list[MatchedEntity],
    ) -> ResolvedEntity | None:
        match ref:
            case MatchedEntityRef(index=index):
                if not 0 <= index < len(matched):
                    logger.warning("Matched entity index out of range", index=index, matched=len(matched))
                    return None
                hit = matched[index]
                return ResolvedEntity(entity_id=hit.entity_id, name=hit.name)

            case ExistingEntityRef(entity_id=entity_id):
                entity = await self.entity_service.get_entity(entity_id)
                if entity is None:
                    logger.warning("Referenced entity does not exist", entity_id=entity_id)
                    return None
                return ResolvedEntity(entity_id=str(entity.id), name=entity.name)

            case NewEntityRef(name=name, type=type_hint):
                return await self._find_or_create(name, type_hint)

            case _:
                raise TypeError(f"Unhandled entity reference: {ref!r}")

    async def _find_or_create(self, name: str, type_hint: str) -> ResolvedEntity:
        existing = await self.entity_service.find_entity_by_name(name)
        if existing is not None:
            logger.debug("Reusing existing entity", name=name, entity_id=str(existing.id))
            return ResolvedEntity(entity_id=str(existing.id), name=existing.name)

        entity_type = EntityType.from_llm(type_hint)
        if self.dry_run:
            logger.info("Dry run: would create entity", name=name, type=entity_type.value)
            return ResolvedEntity(entity_id=None, name=name, created=True)

        entity = await self.entity_service.create_entity(name, entity_type, created_by=self.actor)
        return ResolvedEntity(entity_id=str(entity.id), name=entity.name, created=True)
