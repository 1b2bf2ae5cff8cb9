"""Pydantic schemas for API request/response models."""

from ledger.schemas.common import PaginatedResponse
from ledger.schemas.editor import (
    EditorItemResultResponse,
    EditorRunCreateResponse,
    EditorRunRequest,
    EditorRunResponse,
    EditorRunSummaryResponse,
)

__all__ = [
    # Common
    "PaginatedResponse",
    # Editor
    "EditorRunRequest",
    "EditorRunResponse",
    "EditorRunSummaryResponse",
    "EditorRunCreateResponse",
    "EditorItemResultResponse",
]
