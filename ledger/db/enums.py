"""
Controlled vocabulary enums for the Ledger.

This module defines the allowed values for:
- Entity types (organizations and people referenced by cards)
- Relationship types (typed edges between entities)
- Card categories
- Lifecycle states for intake items, sources, cards and relationships

LLM output is free text. Every vocabulary that receives LLM output exposes a
``from_llm`` classmethod backed by an explicit lookup table with a default
arm, so unknown input is never propagated unmapped.
"""

from enum import Enum


def _normalize_key(value: str | None) -> str:
    """Uppercase, trim and join words with underscores."""
    if not value:
        return ""
    return value.strip().upper().replace("-", "_").replace(" ", "_")


class EntityType(str, Enum):
    """
    Controlled vocabulary for entity types.

    Usage:
        entity = Entity(name="Acme Corp", type=EntityType.CORPORATION)
    """

    CORPORATION = "CORPORATION"
    AGENCY = "AGENCY"
    PERSON = "PERSON"
    INDIVIDUAL_PUBLIC_OFFICIAL = "INDIVIDUAL_PUBLIC_OFFICIAL"
    NONPROFIT = "NONPROFIT"
    VENDOR = "VENDOR"

    @classmethod
    def from_llm(cls, value: str | None) -> "EntityType":
        """
        Map a free-text entity type onto the vocabulary.

        Unrecognized types fall back to CORPORATION, the most general
        category for the organizations this ledger tracks.

        Examples:
            EntityType.from_llm("government agency")  -> EntityType.AGENCY
            EntityType.from_llm("individual")         -> EntityType.PERSON
            EntityType.from_llm("spaceship")          -> EntityType.CORPORATION
        """
        return ENTITY_TYPE_MAP.get(_normalize_key(value), cls.CORPORATION)

    @classmethod
    def values(cls) -> list[str]:
        """Return list of all valid entity type values."""
        return [member.value for member in cls]


ENTITY_TYPE_MAP: dict[str, EntityType] = {
    "CORPORATION": EntityType.CORPORATION,
    "COMPANY": EntityType.CORPORATION,
    "GOVERNMENT_AGENCY": EntityType.AGENCY,
    "AGENCY": EntityType.AGENCY,
    "REGULATOR": EntityType.AGENCY,
    "POLITICAL_ENTITY": EntityType.AGENCY,
    "INDIVIDUAL": EntityType.PERSON,
    "PERSON": EntityType.PERSON,
    "INDIVIDUAL_PUBLIC_OFFICIAL": EntityType.INDIVIDUAL_PUBLIC_OFFICIAL,
    "PUBLIC_OFFICIAL": EntityType.INDIVIDUAL_PUBLIC_OFFICIAL,
    "NON_PROFIT": EntityType.NONPROFIT,
    "NONPROFIT": EntityType.NONPROFIT,
    "VENDOR": EntityType.VENDOR,
    "OTHER": EntityType.CORPORATION,
}


class RelationshipType(str, Enum):
    """
    Controlled vocabulary for relationship types.

    Relationships are directed and read as "FROM [TYPE] TO":
        "Acme Corp REGULATED_BY Federal Trade Commission"
    """

    OWNS = "OWNS"
    CONTROLS = "CONTROLS"
    SUBSIDIARY_OF = "SUBSIDIARY_OF"
    PARENT_OF = "PARENT_OF"
    AFFILIATED = "AFFILIATED"
    CONTRACTOR_TO = "CONTRACTOR_TO"
    REGULATED_BY = "REGULATED_BY"
    LOBBIED_BY = "LOBBIED_BY"
    ACQUIRED = "ACQUIRED"
    DIVESTED = "DIVESTED"
    JV_PARTNER = "JV_PARTNER"
    BOARD_INTERLOCK = "BOARD_INTERLOCK"
    OTHER = "OTHER"

    @classmethod
    def from_llm(cls, value: str | None) -> "RelationshipType":
        """
        Map a free-text relationship type onto the vocabulary.

        Enforcement verbs collapse onto REGULATED_BY, litigation verbs onto
        OTHER; anything unknown becomes OTHER.

        Examples:
            RelationshipType.from_llm("FINED_BY")      -> RelationshipType.REGULATED_BY
            RelationshipType.from_llm("affiliated with") -> RelationshipType.AFFILIATED
            RelationshipType.from_llm("befriends")     -> RelationshipType.OTHER
        """
        return RELATIONSHIP_TYPE_MAP.get(_normalize_key(value), cls.OTHER)

    @classmethod
    def values(cls) -> list[str]:
        """Return list of all valid relationship type values."""
        return [member.value for member in cls]


RELATIONSHIP_TYPE_MAP: dict[str, RelationshipType] = {
    "OWNS": RelationshipType.OWNS,
    "CONTROLS": RelationshipType.CONTROLS,
    "SUBSIDIARY_OF": RelationshipType.SUBSIDIARY_OF,
    "PARENT_OF": RelationshipType.PARENT_OF,
    "AFFILIATED": RelationshipType.AFFILIATED,
    "AFFILIATED_WITH": RelationshipType.AFFILIATED,
    "CONTRACTOR_TO": RelationshipType.CONTRACTOR_TO,
    "CONTRACTS_WITH": RelationshipType.CONTRACTOR_TO,
    "REGULATED_BY": RelationshipType.REGULATED_BY,
    "REGULATES": RelationshipType.REGULATED_BY,
    "LOBBIED_BY": RelationshipType.LOBBIED_BY,
    "LOBBIES": RelationshipType.LOBBIED_BY,
    "ACQUIRED": RelationshipType.ACQUIRED,
    "DIVESTED": RelationshipType.DIVESTED,
    "JV_PARTNER": RelationshipType.JV_PARTNER,
    "BOARD_INTERLOCK": RelationshipType.BOARD_INTERLOCK,
    "FINED_BY": RelationshipType.REGULATED_BY,
    "INVESTIGATED_BY": RelationshipType.REGULATED_BY,
    "SUED_BY": RelationshipType.OTHER,
    "SUED": RelationshipType.OTHER,
    "SETTLED_WITH": RelationshipType.OTHER,
    "OTHER": RelationshipType.OTHER,
}


class CardCategory(str, Enum):
    """Card categories. Values are lowercase to match the public site."""

    CONSUMER = "consumer"
    LABOR = "labor"
    ENVIRONMENT = "environment"
    PRIVACY = "privacy"
    ANTITRUST = "antitrust"
    FRAUD = "fraud"
    SAFETY = "safety"
    GOVERNANCE = "governance"
    OTHER = "other"

    @classmethod
    def from_llm(cls, value: str | None) -> "CardCategory":
        """
        Map an LLM-supplied category, case-insensitively; default OTHER.

        Examples:
            CardCategory.from_llm("FRAUD")    -> CardCategory.FRAUD
            CardCategory.from_llm(None)       -> CardCategory.OTHER
            CardCategory.from_llm("crypto")   -> CardCategory.OTHER
        """
        if not value:
            return cls.OTHER
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return cls.OTHER

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class IntakeStatus(str, Enum):
    """
    Processing status of an intake item.

    Lifecycle::

        NEW -> PROMOTED   (editor published a card)
            -> REVIEWED / REJECTED   (manual editorial action)
    """

    NEW = "NEW"
    REVIEWED = "REVIEWED"
    PROMOTED = "PROMOTED"
    REJECTED = "REJECTED"


class ExtractionStatus(str, Enum):
    """Status of the upstream LLM extraction for an intake item."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class EditorStatus(str, Enum):
    """Outcome recorded by the editor on an intake item. Unset means unreviewed."""

    APPROVED = "APPROVED"
    SKIPPED = "SKIPPED"


class EditorVerdict(str, Enum):
    """
    Per-item outcome of an editor run.

    PUBLISH and SKIP are decisions; ERROR means no valid decision was
    reached and the item stays eligible for the next run.
    """

    PUBLISH = "PUBLISH"
    SKIP = "SKIP"
    ERROR = "ERROR"


class DocType(str, Enum):
    """Kind of document a source points at."""

    HTML = "HTML"
    PDF = "PDF"
    OTHER = "OTHER"


class VerificationStatus(str, Enum):
    """
    Source verification state.

    A source becomes VERIFIED once a content snapshot has been captured and
    hashed. Cards can only be published against verified sources.
    """

    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    FAILED = "FAILED"


class CardStatus(str, Enum):
    """Card lifecycle: DRAFT -> PUBLISHED."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class RelationshipStatus(str, Enum):
    """
    Relationship lifecycle::

        DRAFT -> PUBLISHED -> RETRACTED
    """

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    RETRACTED = "RETRACTED"

    @property
    def is_terminal(self) -> bool:
        """Retracted relationships never change state again."""
        return self == RelationshipStatus.RETRACTED


class EvidenceStrength(str, Enum):
    """Editorial strength of the evidence behind a card."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
