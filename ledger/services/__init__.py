"""
Services package - Business logic and external API clients.

This package contains:
- Entity directory, claim store (cards, relationships) and source registry
- Intake annotation and audit trail helpers
- LLM client abstraction for multiple providers
- The editor pipeline (ledger.services.editor)
"""

from ledger.services.cards import CardService
from ledger.services.entities import EntityService, normalize_name
from ledger.services.errors import (
    EditorRunFailedError,
    InvalidStateError,
    LedgerError,
    PromptTemplateError,
    RecordNotFoundError,
    SnapshotError,
)
from ledger.services.intake import IntakeService
from ledger.services.llm_client import (
    AnthropicClient,
    BaseLLMClient,
    GeminiClient,
    LLMError,
    LLMMessage,
    LLMProvider,
    LLMResponse,
    MockLLMClient,
    get_llm_client,
)
from ledger.services.relationships import RelationshipService
from ledger.services.sources import SourceService

__all__ = [
    # Leaf services
    "EntityService",
    "normalize_name",
    "CardService",
    "RelationshipService",
    "SourceService",
    "IntakeService",
    # Errors
    "LedgerError",
    "RecordNotFoundError",
    "InvalidStateError",
    "SnapshotError",
    "PromptTemplateError",
    "EditorRunFailedError",
    # LLM Client
    "BaseLLMClient",
    "AnthropicClient",
    "GeminiClient",
    "MockLLMClient",
    "LLMProvider",
    "LLMMessage",
    "LLMResponse",
    "LLMError",
    "get_llm_client",
]
