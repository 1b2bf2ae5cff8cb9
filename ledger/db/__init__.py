"""
Database package - SQLAlchemy models, engine, and utilities.

Exports:
- Base classes and mixins for model definition
- Engine and session factory
- Database lifecycle utilities
- Controlled vocabulary enums
- All database models

Usage:
    from ledger.db import AsyncSessionLocal, Base
    from ledger.db import Card, Entity, IntakeItem
    from ledger.db import EntityType, RelationshipType, CardCategory
"""

from ledger.db.base import (
    # Engine and session factory
    AsyncSessionLocal,
    # Base classes
    Base,
    # Mixins
    CreatedAtMixin,
    JSONType,
    TimestampMixin,
    UUIDMixin,
    # Lifecycle utilities
    dispose_engine,
    drop_db,
    engine,
    init_db,
    metadata,
    to_uuid,
    utcnow,
)
from ledger.db.enums import (
    CardCategory,
    CardStatus,
    DocType,
    EditorStatus,
    EditorVerdict,
    EntityType,
    EvidenceStrength,
    ExtractionStatus,
    IntakeStatus,
    RelationshipStatus,
    RelationshipType,
    VerificationStatus,
)
from ledger.db.models import (
    AuditAction,
    AuditLog,
    Card,
    Entity,
    IntakeItem,
    Relationship,
    Source,
)

__all__ = [
    # Base classes
    "Base",
    "JSONType",
    # Mixins
    "UUIDMixin",
    "TimestampMixin",
    "CreatedAtMixin",
    # Enums
    "EntityType",
    "RelationshipType",
    "RelationshipStatus",
    "CardCategory",
    "CardStatus",
    "EvidenceStrength",
    "DocType",
    "VerificationStatus",
    "IntakeStatus",
    "ExtractionStatus",
    "EditorStatus",
    "EditorVerdict",
    # Models
    "IntakeItem",
    "Entity",
    "Source",
    "Card",
    "Relationship",
    "AuditLog",
    "AuditAction",
    # Engine and factory
    "engine",
    "AsyncSessionLocal",
    "metadata",
    "utcnow",
    "to_uuid",
    # Lifecycle
    "init_db",
    "drop_db",
    "dispose_engine",
]
