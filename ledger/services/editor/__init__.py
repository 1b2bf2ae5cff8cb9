"""
Editorial decision-and-publication pipeline.

Order of operations per intake item:
    eligibility -> decisions (prompt, LLM, parse, confidence gate)
    -> resolver -> duplicates -> publisher

The runner ties them together and aggregates a run summary.
"""

from ledger.services.editor.decisions import (
    EditorDecision,
    EditorResponse,
    ExistingEntityRef,
    MatchedEntityRef,
    NewEntityRef,
    RelationshipSpec,
    apply_confidence_gate,
    build_editor_prompt,
    load_editor_prompt,
    parse_editor_response,
)
from ledger.services.editor.duplicates import find_duplicate_card, normalize_title
from ledger.services.editor.eligibility import IntakeSnapshot, select_eligible_items
from ledger.services.editor.publisher import PublicationOrchestrator, PublicationResult
from ledger.services.editor.resolver import (
    EntityResolver,
    MatchedEntity,
    ResolvedEntity,
    get_matched_entities,
)
from ledger.services.editor.runner import EditorItemResult, EditorRunner, EditorRunSummary

__all__ = [
    "EditorRunner",
    "EditorRunSummary",
    "EditorItemResult",
    "EditorResponse",
    "EditorDecision",
    "MatchedEntityRef",
    "ExistingEntityRef",
    "NewEntityRef",
    "RelationshipSpec",
    "parse_editor_response",
    "apply_confidence_gate",
    "build_editor_prompt",
    "load_editor_prompt",
    "IntakeSnapshot",
    "select_eligible_items",
    "EntityResolver",
    "MatchedEntity",
    "ResolvedEntity",
    "get_matched_entities",
    "find_duplicate_card",
    "normalize_title",
    "PublicationOrchestrator",
    "PublicationResult",
]
