"""API routers for the Ledger editor service."""

from ledger.api.editor import router as editor_router

__all__ = [
    "editor_router",
]
