"""
Editorial decision requests and the LLM response boundary.

The LLM returns free text. parse_editor_response is the only way that text
enters the pipeline, and it produces either a fully typed EditorResponse or
None. Nothing partially validated gets through.

Decision payload:
    {
        "decision": "PUBLISH" | "SKIP",
        "reason": "...",
        "confidence": 0.93,
        "category": "consumer",
        "entities": [
            {"matchedIndex": 0},
            {"entityId": "0192f0c2-..."},
            {"create": {"name": "Acme Corp", "type": "CORPORATION"}}
        ],
        "relationships": [
            {"fromEntityIndex": 0, "toEntityIndex": 1, "type": "REGULATED_BY", "description": "..."}
        ],
        "cardSummary": "..."
    }
"""

import json
import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from pathlib import Path

from ledger.core.config import settings
from ledger.core.logging import get_logger
from ledger.db.base import utcnow
from ledger.db.enums import EditorVerdict
from ledger.services.editor.eligibility import IntakeSnapshot
from ledger.services.errors import PromptTemplateError
from ledger.services.llm_client import BaseLLMClient, LLMMessage

logger = get_logger(__name__)

DEFAULT_REASON = "No reason provided"

_CODE_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*\s*\n?")
_CODE_FENCE_CLOSE = re.compile(r"\n?\s*```\s*$")


# =============================================================================
# Entity References
# =============================================================================


@dataclass(frozen=True)
class MatchedEntityRef:
    """Position in the list of entities already matched to the item."""

    index: int


@dataclass(frozen=True)
class ExistingEntityRef:
    """Explicit id of an entity in the directory."""

    entity_id: str


@dataclass(frozen=True)
class NewEntityRef:
    """An entity to look up by name, created only if no match exists."""

    name: str
    type: str


EntityRef = MatchedEntityRef | ExistingEntityRef | NewEntityRef


@dataclass(frozen=True)
class RelationshipSpec:
    """Relationship between two positions of the decision's entity list."""

    from_index: int
    to_index: int
    type: str
    description: str | None = None


# =============================================================================
# Responses and Decisions
# =============================================================================


@dataclass
class EditorResponse:
    """A validated editor response."""

    decision: EditorVerdict
    reason: str = DEFAULT_REASON
    confidence: float = 0.0
    category: str | None = None
    entities: list[EntityRef] = field(default_factory=list)
    relationships: list[RelationshipSpec] = field(default_factory=list)
    card_summary: str = ""

    def skip(self, reason: str) -> None:
        """Downgrade to SKIP in place."""
        self.decision = EditorVerdict.SKIP
        self.reason = reason


@dataclass(frozen=True)
class EditorDecision:
    """The decision record stored on an intake item."""

    decision: EditorVerdict
    reason: str
    confidence: float
    decided_at: datetime
    run_id: str

    @classmethod
    def from_response(cls, response: EditorResponse, run_id: str) -> "EditorDecision":
        return cls(
            decision=response.decision,
            reason=response.reason,
            confidence=response.confidence,
            decided_at=utcnow(),
            run_id=run_id,
        )

    def to_dict(self) -> dict:
        return {
            "decision": self.decision.value,
            "reason": self.reason,
            "confidence": self.confidence,
            "decidedAt": self.decided_at.isoformat(),
            "runId": self.run_id,
        }


# =============================================================================
# Prompt
# =============================================================================


@lru_cache(maxsize=8)
def load_editor_prompt(path: str | None = None) -> str:
    """
    Load the editor prompt template, once per process and path.

    Raises:
        PromptTemplateError: Missing, unreadable or empty template
    """
    template_path = Path(path) if path else settings.editor_prompt_path
    try:
        template = template_path.read_text(encoding="utf-8")
    except OSError as e:
        raise PromptTemplateError(f"Failed to load editor prompt from {template_path}: {e}") from e

    if not template.strip():
        raise PromptTemplateError(f"Editor prompt template is empty: {template_path}")

    logger.info("Loaded editor prompt template", path=str(template_path))
    return template


def build_editor_prompt(
    template: str,
    item: IntakeSnapshot,
    matched_entities: list[dict],
) -> str:
    """Render the template for one intake item."""
    replacements = {
        "{{TITLE}}": item.title,
        "{{PUBLISHER}}": item.publisher,
        "{{PUBLISHED_AT}}": item.published_at.isoformat(),
        "{{URL}}": item.canonical_url,
        "{{EXTRACTED_SUMMARY}}": item.summary,
        "{{ENTITIES_JSON}}": json.dumps(item.suggested_entities, indent=2),
        "{{RELATIONSHIPS_JSON}}": json.dumps(item.suggested_relationships, indent=2),
        "{{MATCHED_ENTITIES_JSON}}": json.dumps(matched_entities, indent=2),
    }

    prompt = template
    for placeholder, value in replacements.items():
        prompt = prompt.replace(placeholder, value)
    return prompt


async def request_decision(
    llm_client: BaseLLMClient,
    prompt: str,
    max_tokens: int | None = None,
) -> str:
    """Ask the LLM for a decision. Transport errors propagate to the caller."""
    response = await llm_client.complete(
        [LLMMessage(role="user", content=prompt)],
        temperature=0.0,
        max_tokens=max_tokens or settings.editor_max_tokens,
    )
    logger.debug(
        "Editor decision received",
        model=response.model,
        input_tokens=response.input_tokens,
        output_tokens=response.output_tokens,
    )
    return response.content


# =============================================================================
# Parsing
# =============================================================================


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence, if any."""
    text = text.strip()
    if text.startswith("```"):
        text = _CODE_FENCE_OPEN.sub("", text, count=1)
        text = _CODE_FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


def find_json_object(text: str) -> str | None:
    """
    Return the first top-level {...} in text.

    Braces inside JSON strings (including escaped quotes) do not count
    towards nesting.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for pos in range(start, len(text)):
            char = text[pos]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:pos + 1]
        # Unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def clamp_confidence(value: object) -> float:
    """Clamp to [0, 1]. Non-numeric and NaN count as 0."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0.0
    if math.isnan(value):
        return 0.0
    return min(1.0, max(0.0, float(value)))


def _is_index(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_entity_ref(raw: object) -> EntityRef | None:
    """Turn one element of "entities" into a typed reference, or None."""
    if not isinstance(raw, dict):
        return None

    if "matchedIndex" in raw:
        index = raw["matchedIndex"]
        return MatchedEntityRef(index=index) if _is_index(index) else None

    if "entityId" in raw:
        entity_id = raw["entityId"]
        if isinstance(entity_id, str) and entity_id.strip():
            return ExistingEntityRef(entity_id=entity_id.strip())
        return None

    create = raw.get("create")
    if isinstance(create, dict):
        name = create.get("name")
        entity_type = create.get("type")
        if isinstance(name, str) and name.strip():
            return NewEntityRef(
                name=name.strip(),
                type=entity_type if isinstance(entity_type, str) else "",
            )
    return None


def parse_relationship_spec(raw: object) -> RelationshipSpec | None:
    """Turn one element of "relationships" into a RelationshipSpec, or None."""
    if not isinstance(raw, dict):
        return None

    from_index = raw.get("fromEntityIndex")
    to_index = raw.get("toEntityIndex")
    if not (_is_index(from_index) and _is_index(to_index)):
        return None

    rel_type = raw.get("type")
    description = raw.get("description")
    return RelationshipSpec(
        from_index=from_index,
        to_index=to_index,
        type=rel_type if isinstance(rel_type, str) else "",
        description=description if isinstance(description, str) and description else None,
    )


def _parse_list(raw: object, parser, label: str) -> list:
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning("Editor response field is not a list", field=label)
        return []

    parsed = []
    for element in raw:
        value = parser(element)
        if value is None:
            logger.warning("Dropping malformed editor response element", field=label, element=element)
            continue
        parsed.append(value)
    return parsed


def parse_editor_response(text: str) -> EditorResponse | None:
    """
    Validate a raw LLM response.

    Returns None unless the text contains a JSON object whose "decision" is
    exactly PUBLISH or SKIP.
    """
    if not isinstance(text, str):
        return None

    json_str = find_json_object(strip_code_fences(text))
    if json_str is None:
        logger.warning("No JSON object found in editor response", content=text[:200])
        return None

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse editor response", error=str(e), content=json_str[:200])
        return None

    decision = data.get("decision")
    if decision not in (EditorVerdict.PUBLISH.value, EditorVerdict.SKIP.value):
        logger.warning("Invalid decision in editor response", decision=decision)
        return None

    reason = data.get("reason")
    category = data.get("category")
    card_summary = data.get("cardSummary")

    return EditorResponse(
        decision=EditorVerdict(decision),
        reason=reason if isinstance(reason, str) and reason.strip() else DEFAULT_REASON,
        confidence=clamp_confidence(data.get("confidence")),
        category=category if isinstance(category, str) and category else None,
        entities=_parse_list(data.get("entities"), parse_entity_ref, "entities"),
        relationships=_parse_list(
            data.get("relationships"), parse_relationship_spec, "relationships"
        ),
        card_summary=card_summary if isinstance(card_summary, str) else "",
    )


# =============================================================================
# Confidence Gate
# =============================================================================


def apply_confidence_gate(response: EditorResponse, min_confidence: float) -> EditorResponse:
    """Downgrade a PUBLISH below the threshold to SKIP, in place."""
    if response.decision == EditorVerdict.PUBLISH and response.confidence < min_confidence:
        response.skip(f"Confidence {response.confidence:.2f} below threshold {min_confidence}")
    return response
