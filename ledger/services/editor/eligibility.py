"""
Eligibility selection for editorial review.

The query narrows candidates to unreviewed NEW items whose extraction
completed. Summary and entity-confidence checks live in JSON and text
columns, so candidates are over-fetched and every predicate is applied again
here in Python. Nothing downstream may assume the query alone enforced
eligibility.
"""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.core.config import settings
from ledger.core.logging import get_logger
from ledger.db.enums import ExtractionStatus, IntakeStatus
from ledger.db.models import IntakeItem

logger = get_logger(__name__)

OVERFETCH_FACTOR = 2


@dataclass(frozen=True)
class IntakeSnapshot:
    """
    Plain copy of the intake fields the editor needs.

    Items are snapshotted before processing so that a rollback in the middle
    of a run never forces a lazy reload of an expired ORM instance.
    """

    id: str
    title: str
    publisher: str
    published_at: datetime
    canonical_url: str
    summary: str
    suggested_entities: list[dict] = field(default_factory=list)
    suggested_relationships: list[dict] = field(default_factory=list)
    suggested_tags: list[str] = field(default_factory=list)

    @classmethod
    def from_model(cls, item: IntakeItem) -> "IntakeSnapshot":
        return cls(
            id=str(item.id),
            title=item.title,
            publisher=item.publisher,
            published_at=item.published_at,
            canonical_url=item.canonical_url,
            summary=item.best_summary,
            suggested_entities=list(item.suggested_entities or []),
            suggested_relationships=list(item.suggested_relationships or []),
            suggested_tags=list(item.suggested_tags or []),
        )


def suggestion_confidence(suggestion: dict) -> float:
    """Confidence of a suggested entity; anything non-numeric counts as 0."""
    value = suggestion.get("confidence") if isinstance(suggestion, dict) else None
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0.0
    return float(value)


def is_eligible(item: IntakeItem, min_entity_confidence: float) -> bool:
    """Every eligibility predicate, evaluated client-side."""
    if item.status != IntakeStatus.NEW:
        return False
    if item.extraction_status != ExtractionStatus.COMPLETED:
        return False
    if item.editor_status is not None:
        return False
    if not item.best_summary.strip():
        return False
    return any(
        suggestion_confidence(s) >= min_entity_confidence
        for s in item.suggested_entities or []
    )


async def select_eligible_items(
    db: AsyncSession,
    limit: int,
    min_entity_confidence: float | None = None,
) -> list[IntakeSnapshot]:
    """
    Find up to `limit` intake items ready for review, most recent first.

    Args:
        db: Database session
        limit: Maximum items to return
        min_entity_confidence: Threshold for at least one suggested entity

    Returns:
        Snapshots of eligible items
    """
    if min_entity_confidence is None:
        min_entity_confidence = settings.editor_min_entity_confidence

    result = await db.execute(
        select(IntakeItem)
        .where(
            IntakeItem.status == IntakeStatus.NEW,
            IntakeItem.extraction_status == ExtractionStatus.COMPLETED,
            IntakeItem.editor_status.is_(None),
        )
        .order_by(IntakeItem.ingested_at.desc())
        .limit(limit * OVERFETCH_FACTOR)
    )
    candidates = result.scalars().all()

    eligible = [
        IntakeSnapshot.from_model(item)
        for item in candidates
        if is_eligible(item, min_entity_confidence)
    ][:limit]

    logger.info(
        "Selected eligible intake items",
        candidates=len(candidates),
        eligible=len(eligible),
        limit=limit,
    )
    return eligible
