"""
Duplicate card detection.

A candidate is a duplicate of a published card when:
- the normalized titles are equal, or
- they share an entity AND the first 50 characters of the normalized titles match.

Only the most recent `window` published cards are checked. Older duplicates
are missed on purpose: the window bounds the scan, and a missed duplicate is
caught by manual review later. Generic titles can produce false positives.
"""

import re

from sqlalchemy.ext.asyncio import AsyncSession

from ledger.core.config import settings
from ledger.core.logging import get_logger
from ledger.db.models import Card
from ledger.services.cards import CardService

logger = get_logger(__name__)

TITLE_PREFIX_LENGTH = 50

_WHITESPACE = re.compile(r"\s+")


def normalize_title(title: str) -> str:
    """Lowercase, trim and collapse internal whitespace."""
    return _WHITESPACE.sub(" ", (title or "").strip().lower())


def is_duplicate_title(
    candidate_title: str,
    candidate_entity_ids: list[str],
    existing_title: str,
    existing_entity_ids: list[str],
) -> bool:
    candidate = normalize_title(candidate_title)
    existing = normalize_title(existing_title)

    if candidate == existing:
        return True

    shares_entity = bool(set(candidate_entity_ids) & {str(eid) for eid in existing_entity_ids})
    return (
        shares_entity
        and candidate[:TITLE_PREFIX_LENGTH] == existing[:TITLE_PREFIX_LENGTH]
    )


async def find_duplicate_card(
    db: AsyncSession,
    title: str,
    entity_ids: list[str],
    window: int | None = None,
) -> Card | None:
    """Return the first recently published card the candidate duplicates, if any."""
    window = window or settings.editor_duplicate_window
    recent_cards = await CardService(db).list_published_cards(limit=window)

    for card in recent_cards:
        if is_duplicate_title(title, entity_ids, card.title, card.entity_ids or []):
            logger.info("Duplicate card detected", title=title, existing_card_id=str(card.id))
            return card
    return None
