"""Pytest configuration and shared fixtures."""

import json
from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ledger.db import Base
from ledger.db.base import utcnow
from ledger.db.enums import ExtractionStatus, IntakeStatus
from ledger.db.models import IntakeItem
from ledger.main import app
from ledger.services.llm_client import MockLLMClient
from ledger.services.sources import SourceService
from ledger.workers import run_store

SNAPSHOT_BODY = b"<html><head><title>FTC</title></head><body>Acme Corp was fined.</body></html>"


# Run store: never reach for Redis in tests
@pytest.fixture(autouse=True)
def memory_run_store() -> Generator[None, None, None]:
    run_store.use_memory_backend()
    yield
    run_store.use_memory_backend()


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """In-memory SQLite session with the full schema created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def make_intake_item(db_session: AsyncSession) -> Callable[..., Awaitable[IntakeItem]]:
    """Factory for eligible-by-default intake items."""
    counter = {"n": 0}

    async def factory(**overrides: Any) -> IntakeItem:
        counter["n"] += 1
        n = counter["n"]
        fields: dict[str, Any] = {
            "feed_id": "ftc-press",
            "canonical_url": f"https://news.example.com/story-{n}",
            "title": f"Story {n}",
            "publisher": "Example News",
            "published_at": datetime(2026, 3, 1, 12, 0, tzinfo=UTC),
            "summary": "A regulator acted against a company.",
            "extracted_summary": None,
            "suggested_entities": [{"extractedName": "Acme Corp", "confidence": 0.9}],
            "suggested_relationships": [],
            "suggested_tags": ["enforcement"],
            "extraction_status": ExtractionStatus.COMPLETED,
            "status": IntakeStatus.NEW,
            # Later items sort first
            "ingested_at": utcnow() + timedelta(seconds=n),
        }
        fields.update(overrides)
        item = IntakeItem(**fields)
        db_session.add(item)
        await db_session.commit()
        return item

    return factory


# =============================================================================
# LLM and HTTP fakes
# =============================================================================


@pytest.fixture
def mock_llm() -> MockLLMClient:
    return MockLLMClient()


@pytest.fixture
def editor_reply() -> Callable[..., str]:
    """Build a JSON editor response; keyword arguments override the defaults."""

    def build(**overrides: Any) -> str:
        payload: dict[str, Any] = {
            "decision": "PUBLISH",
            "reason": "Regulator action with named company",
            "confidence": 0.95,
            "category": "consumer",
            "entities": [{"create": {"name": "Acme Corp", "type": "CORPORATION"}}],
            "relationships": [],
            "cardSummary": "The FTC fined Acme Corp $5 million.",
        }
        payload.update(overrides)
        return json.dumps(payload)

    return build


def _snapshot_handler(request: httpx.Request) -> httpx.Response:
    if "missing" in request.url.path:
        return httpx.Response(404, text="not found")
    return httpx.Response(
        200,
        content=SNAPSHOT_BODY,
        headers={"content-type": "text/html; charset=utf-8"},
    )


@pytest_asyncio.fixture
async def http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client that serves snapshots locally; paths containing "missing" 404."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(_snapshot_handler)) as client:
        yield client


@pytest.fixture
def source_service(db_session: AsyncSession, http_client: httpx.AsyncClient) -> SourceService:
    return SourceService(db_session, http_client=http_client)


# =============================================================================
# API
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Asynchronous test client for the FastAPI app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create a synchronous test client for FastAPI."""
    with TestClient(app) as test_client:
        yield test_client
