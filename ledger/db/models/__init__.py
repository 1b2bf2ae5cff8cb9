"""
Database models for the editorial ledger.

This package contains SQLAlchemy models for:
- IntakeItem: Candidate claims from feed ingestion
- Entity: Organizations and people
- Source: Citable documents with snapshot verification
- Card: Published, sourced claims
- Relationship: Typed edges between entities
- AuditLog: Create/publish/promote tracking

Usage:
    from ledger.db.models import Card, Entity, IntakeItem

All models inherit from the base classes in ledger.db.base and use:
- UUID7 primary keys (time-sortable, globally unique)
- Timestamp mixins (created_at, updated_at)
- JSON columns (JSONB on PostgreSQL) for lists and metadata
"""

from ledger.db.models.audit_log import AuditAction, AuditLog
from ledger.db.models.card import Card
from ledger.db.models.entity import Entity
from ledger.db.models.intake_item import IntakeItem
from ledger.db.models.relationship import Relationship
from ledger.db.models.source import Source

__all__ = [
    # Editorial models
    "IntakeItem",
    "Entity",
    "Source",
    "Card",
    "Relationship",
    # Audit models
    "AuditLog",
    "AuditAction",
]
