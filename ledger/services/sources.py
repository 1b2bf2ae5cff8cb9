"""
Source registry: citable source records and document snapshots.

A source is created PENDING. Capturing a snapshot fetches the document,
hashes it and marks the source VERIFIED; cards can only be published
against verified sources.

Usage:
    async with httpx.AsyncClient() as http:
        service = SourceService(db, http_client=http)
        source = await service.create_source(title, url, publisher)
        await service.capture_html_snapshot(source.id, url)
"""

import hashlib
import uuid

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.core.config import settings
from ledger.core.logging import get_logger
from ledger.db.base import to_uuid, utcnow
from ledger.db.enums import DocType, VerificationStatus
from ledger.db.models import AuditAction, Source
from ledger.services.audit import record_event
from ledger.services.errors import RecordNotFoundError, SnapshotError

logger = get_logger(__name__)

SNAPSHOT_USER_AGENT = "ledger-snapshot/1.0"


class SourceService:
    """Service for creating sources and capturing their snapshots."""

    def __init__(
        self,
        db: AsyncSession,
        http_client: httpx.AsyncClient | None = None,
        max_bytes: int | None = None,
        timeout: float | None = None,
    ):
        """
        Initialize source service.

        Args:
            db: Database session
            http_client: Shared HTTP client (a short-lived one is created per
                capture when omitted)
            max_bytes: Snapshot size limit (defaults to settings)
            timeout: Fetch timeout in seconds (defaults to settings)
        """
        self.db = db
        self.http_client = http_client
        self.max_bytes = max_bytes or settings.snapshot_max_bytes
        self.timeout = timeout or settings.snapshot_timeout_seconds

    async def get_source(self, source_id: uuid.UUID | str) -> Source | None:
        source_uuid = to_uuid(source_id)
        if source_uuid is None:
            return None
        return await self.db.get(Source, source_uuid)

    async def create_source(
        self,
        title: str,
        url: str,
        publisher: str | None = None,
        doc_type: DocType = DocType.HTML,
        excerpt: str | None = None,
        created_by: str | None = None,
    ) -> Source:
        """Create and commit a PENDING source."""
        source = Source(
            title=title,
            url=url,
            publisher=publisher,
            doc_type=doc_type,
            excerpt=excerpt,
            verification_status=VerificationStatus.PENDING,
            created_by=created_by,
        )
        self.db.add(source)
        await self.db.flush()

        record_event(
            self.db,
            AuditAction.CREATE,
            table_name="sources",
            record_id=source.id,
            actor=created_by,
            metadata={"url": url},
        )
        await self.db.commit()

        logger.info("Created source", source_id=str(source.id), url=url)
        return source

    # =========================================================================
    # Snapshots
    # =========================================================================

    async def capture_html_snapshot(self, source_id: uuid.UUID | str, url: str) -> Source:
        """
        Fetch the document at url, hash it and mark the source VERIFIED.

        Raises:
            RecordNotFoundError: Unknown source
            SnapshotError: The URL was malformed, the fetch failed or the
                document exceeded the size limit (the source is marked FAILED)
        """
        source = await self.get_source(source_id)
        if source is None:
            raise RecordNotFoundError("Source", source_id)

        try:
            content, mime_type = await self._fetch(url)
        except (httpx.HTTPError, httpx.InvalidURL, SnapshotError) as e:
            source.verification_status = VerificationStatus.FAILED
            await self.db.commit()
            logger.warning("Snapshot capture failed", source_id=str(source_id), url=url, error=str(e))
            if isinstance(e, SnapshotError):
                raise
            raise SnapshotError(f"Failed to fetch {url}: {e}") from e

        source.sha256 = hashlib.sha256(content).hexdigest()
        source.byte_length = len(content)
        source.mime_type = mime_type
        source.captured_at = utcnow()
        source.verification_status = VerificationStatus.VERIFIED
        await self.db.commit()

        logger.info(
            "Snapshot captured",
            source_id=str(source_id),
            sha256=source.sha256,
            bytes=source.byte_length,
        )
        return source

    async def _fetch(self, url: str) -> tuple[bytes, str | None]:
        if self.http_client is not None:
            return await self._stream(self.http_client, url)

        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            return await self._stream(client, url)

    async def _stream(self, client: httpx.AsyncClient, url: str) -> tuple[bytes, str | None]:
        """Download url, refusing bodies larger than max_bytes."""
        chunks: list[bytes] = []
        total = 0

        async with client.stream("GET", url, headers={"User-Agent": SNAPSHOT_USER_AGENT}) as response:
            response.raise_for_status()
            async for chunk in response.aiter_bytes():
                total += len(chunk)
                if total > self.max_bytes:
                    raise SnapshotError(f"Document exceeds {self.max_bytes} bytes: {url}")
                chunks.append(chunk)

            mime_type = response.headers.get("content-type")

        if mime_type:
            mime_type = mime_type.split(";")[0].strip()
        return b"".join(chunks), mime_type
