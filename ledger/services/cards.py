"""
Claim store: cards.

Cards are created in DRAFT and move to PUBLISHED once. Publishing requires
at least one cited source that has been verified.
"""

import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.core.logging import get_logger
from ledger.db.base import to_uuid, utcnow
from ledger.db.enums import CardCategory, CardStatus, EvidenceStrength, VerificationStatus
from ledger.db.models import AuditAction, Card, Source
from ledger.services.audit import record_event
from ledger.services.errors import InvalidStateError, RecordNotFoundError

logger = get_logger(__name__)


class CardService:
    """Service for the card DRAFT -> PUBLISHED lifecycle."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_card(self, card_id: uuid.UUID | str) -> Card | None:
        card_uuid = to_uuid(card_id)
        if card_uuid is None:
            return None
        return await self.db.get(Card, card_uuid)

    async def create_card(
        self,
        title: str,
        claim: str,
        summary: str,
        entity_ids: list[str],
        source_refs: list[str],
        category: CardCategory = CardCategory.OTHER,
        event_date: date | None = None,
        tags: list[str] | None = None,
        evidence_strength: EvidenceStrength = EvidenceStrength.MEDIUM,
        created_by: str | None = None,
    ) -> Card:
        """Create and commit a DRAFT card."""
        card = Card(
            title=title,
            claim=claim,
            summary=summary,
            category=category,
            entity_ids=[str(eid) for eid in entity_ids],
            source_refs=[str(sid) for sid in source_refs],
            event_date=event_date,
            tags=list(tags or []),
            evidence_strength=evidence_strength,
            status=CardStatus.DRAFT,
            created_by=created_by,
        )
        self.db.add(card)
        await self.db.flush()

        record_event(
            self.db,
            AuditAction.CREATE,
            table_name="cards",
            record_id=card.id,
            actor=created_by,
            metadata={"title": title, "category": category.value},
        )
        await self.db.commit()

        logger.info("Created card", card_id=str(card.id), category=category.value)
        return card

    async def publish_card(self, card_id: uuid.UUID | str, published_by: str | None = None) -> Card:
        """
        Publish a DRAFT card.

        Raises:
            RecordNotFoundError: Unknown card
            InvalidStateError: Card is not DRAFT, or none of its sources is verified
        """
        card = await self.get_card(card_id)
        if card is None:
            raise RecordNotFoundError("Card", card_id)
        if card.status != CardStatus.DRAFT:
            raise InvalidStateError(f"Card {card_id} is {card.status.value}, expected DRAFT")

        source_ids = [sid for sid in (to_uuid(ref) for ref in card.source_refs or []) if sid]
        if not source_ids:
            raise InvalidStateError(f"Card {card_id} has no source references")

        result = await self.db.execute(
            select(Source.id).where(
                Source.id.in_(source_ids),
                Source.verification_status == VerificationStatus.VERIFIED,
            )
        )
        if not result.first():
            raise InvalidStateError(f"Card {card_id} has no verified source")

        card.status = CardStatus.PUBLISHED
        card.published_at = utcnow()
        card.published_by = published_by

        record_event(
            self.db,
            AuditAction.PUBLISH,
            table_name="cards",
            record_id=card.id,
            actor=published_by,
        )
        await self.db.commit()

        logger.info("Published card", card_id=str(card.id))
        return card

    async def list_published_cards(self, limit: int = 100) -> list[Card]:
        """Most recently published cards first."""
        result = await self.db.execute(
            select(Card)
            .where(Card.status == CardStatus.PUBLISHED)
            .order_by(Card.published_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
