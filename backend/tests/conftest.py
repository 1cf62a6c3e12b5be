"""
Test configuration and fixtures.

Uses an in-memory SQLite ledger (aiosqlite) and an in-memory object store,
so the suite runs without PostgreSQL, MinIO or libmagic.
"""
import os

# Set test environment before any imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["S3_ENDPOINT"] = "http://localhost:9000"
os.environ["S3_BUCKET"] = "test-bucket"

import pytest
from datetime import datetime, timezone
from typing import AsyncGenerator, AsyncIterator, Dict, List, Optional

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.exceptions import ObjectNotFoundError, StorageError
from app.models.base import Base
from app.models.file_analytics import FileAnalytics  # noqa: F401
from app.services.analytics_service import AnalyticsService
from app.services.content_validator import ContentValidator
from app.services.file_service import FileService
from app.storage.s3_client import ObjectStat


FIXED_NOW = datetime(2026, 10, 18, 12, 30, tzinfo=timezone.utc)

# Leading signatures of the sample payloads
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
PDF_SIGNATURE = b"%PDF-1.4\n"
MP4_SIGNATURE = b"\x00\x00\x00\x18ftypmp42"
ZIP_SIGNATURE = b"PK\x03\x04"
ELF_SIGNATURE = b"\x7fELF"


def make_payload(signature: bytes, size: int) -> bytes:
    """Deterministic payload of exactly `size` bytes starting with `signature`."""
    filler = bytes(i % 251 for i in range(max(size - len(signature), 0)))
    return (signature + filler)[:size]


def fake_sniff(sample: bytes) -> Optional[str]:
    """Signature-based stand-in for libmagic."""
    if sample.startswith(PNG_SIGNATURE):
        return "image/png"
    if sample.startswith(PDF_SIGNATURE):
        return "application/pdf"
    if sample[4:8] == b"ftyp":
        return "video/mp4"
    if sample.startswith(ZIP_SIGNATURE):
        return "application/zip"
    if sample.startswith(ELF_SIGNATURE):
        return "application/x-executable"
    return "application/octet-stream"


class InMemoryObjectStore:
    """Object store double with the same async surface as ObjectStorageClient."""

    def __init__(self, chunk_size: int = 256):
        self.objects: Dict[str, dict] = {}
        self.chunk_size = chunk_size
        self.put_calls = 0
        self.removed: List[str] = []
        self.closed_bodies = 0
        self.fail_puts = False

    async def put_object(self, object_key, data, size, content_type, original_name=None, declared_type=None):
        self.put_calls += 1
        if self.fail_puts:
            raise StorageError("put", object_key, RuntimeError("backend unavailable"))
        self.objects[object_key] = {
            "data": bytes(data),
            "content_type": content_type,
            "original_name": original_name,
            "declared_type": declared_type,
        }

    async def stat_object(self, object_key) -> ObjectStat:
        obj = self.objects.get(object_key)
        if obj is None:
            raise ObjectNotFoundError(object_key)
        return ObjectStat(
            size=len(obj["data"]),
            content_type=obj["content_type"],
            original_name=obj["original_name"],
        )

    async def open_object(self, object_key, offset=None, length=None) -> AsyncIterator[bytes]:
        obj = self.objects.get(object_key)
        if obj is None:
            raise ObjectNotFoundError(object_key)
        data = obj["data"]
        if offset is not None:
            data = data[offset:offset + length]
        return self._iter(data)

    async def _iter(self, data: bytes) -> AsyncIterator[bytes]:
        try:
            for i in range(0, len(data), self.chunk_size):
                yield data[i:i + self.chunk_size]
        finally:
            self.closed_bodies += 1

    async def remove_object(self, object_key):
        self.removed.append(object_key)
        self.objects.pop(object_key, None)

    async def presigned_get_url(self, object_key, expiration=None):
        return f"http://localhost:9000/test-bucket/{object_key}?X-Amz-Expires={expiration or 3600}"

    async def ping(self):
        return None

    async def list_objects(self, prefix=""):
        return [
            {"Key": key, "Size": len(obj["data"])}
            for key, obj in sorted(self.objects.items())
            if key.startswith(prefix)
        ]

    async def delete_objects_batch(self, object_keys):
        for key in object_keys:
            self.objects.pop(key, None)
        return len(object_keys), 0

    def add(self, object_key: str, data: bytes, content_type: str, original_name: Optional[str] = None):
        """Seed an object directly."""
        self.objects[object_key] = {
            "data": data,
            "content_type": content_type,
            "original_name": original_name,
            "declared_type": None,
        }


@pytest.fixture(scope="function")
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """
    In-memory SQLite ledger shared by every session of one test.

    All sessions share one connection (StaticPool), so sessions must not
    overlap. Concurrency tests build their own file-backed engine.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    await engine.dispose()


@pytest.fixture
async def analytics(session_factory) -> AnalyticsService:
    return AnalyticsService(session_factory)


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def validator() -> ContentValidator:
    return ContentValidator(detector=fake_sniff)


@pytest.fixture
def file_service(object_store, analytics, validator) -> FileService:
    return FileService(
        storage=object_store,
        analytics=analytics,
        validator=validator,
        max_upload_bytes=64 * 1024,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
async def client(file_service, analytics, object_store, session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    from app.main import app
    from app.database import get_db
    from app.api.dependencies import get_analytics_service, get_file_service, get_storage

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_file_service] = lambda: file_service
    app.dependency_overrides[get_analytics_service] = lambda: analytics
    app.dependency_overrides[get_storage] = lambda: object_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Clean up overrides
    app.dependency_overrides.clear()


async def read_stream(file_stream) -> bytes:
    """Drain a FileStream body."""
    chunks = []
    async for chunk in file_stream.body:
        chunks.append(chunk)
    return b"".join(chunks)
