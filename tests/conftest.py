"""
Test configuration and fixtures.
Uses a throwaway SQLite database per test (aiosqlite) and a mocked storage
service behind httpx.MockTransport. Presigning is real boto3 against a dummy
endpoint, which needs no network.
"""
import base64
import hashlib
import os

# Set test environment before any imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["ENVIRONMENT"] = "test"
os.environ["S3_ENDPOINT"] = "http://localhost:9000"
os.environ["S3_ACCESS_KEY"] = "test-access-key"
os.environ["S3_SECRET_KEY"] = "test-secret-key"
os.environ["S3_BUCKET"] = "test-bucket"
os.environ["S3_REGION"] = "us-east-1"

import pytest
from datetime import datetime, timezone
from typing import AsyncGenerator, Dict, List, Optional

import httpx
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from direct_upload.database import create_engine, create_session_factory, init_db
from direct_upload.repositories.base import RecordStore
from direct_upload.repositories.upload_repository import UploadRepository
from direct_upload.schemas.upload import CompletedUploadRecord, PendingUploadRecord, UploadPolicy
from direct_upload.services.upload_service import UploadService
from direct_upload.storage.s3_client import S3Client

ENDPOINT = "http://localhost:9000"
BUCKET = "test-bucket"


@pytest.fixture(scope="function")
async def db_engine(tmp_path):
    """Fresh SQLite database with all tables."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'uploads.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    session_maker = create_session_factory(db_engine)
    async with session_maker() as session:
        yield session


@pytest.fixture
def repository(db_session: AsyncSession) -> UploadRepository:
    return UploadRepository(db_session)


@pytest.fixture
def storage() -> S3Client:
    """Storage client pointing at a dummy path-style endpoint."""
    return S3Client(
        endpoint=ENDPOINT,
        access_key="test-access-key",
        secret_key="test-secret-key",
        region="us-east-1",
        bucket=BUCKET,
        force_path_style=True,
    )


@pytest.fixture
def policy() -> UploadPolicy:
    return UploadPolicy(
        bucket=BUCKET,
        folder="uploads",
        expires=60,
        maxSize=5_000_000,
        types=["image/png"],
        metadata={},
    )


@pytest.fixture
def service(storage: S3Client, repository: UploadRepository) -> UploadService:
    return UploadService(storage=storage, store=repository)


@pytest.fixture
def png_bytes() -> bytes:
    """A small fake PNG payload."""
    return b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 4


class FakeStorageService:
    """
    Stands in for the bucket: accepts PUTs to /<bucket>/<key> and enforces
    the content length and SHA-256 checksum headers like S3 does.
    """

    def __init__(self, bucket: str = BUCKET):
        self.bucket = bucket
        self.objects: Dict[str, bytes] = {}
        self.requests: List[httpx.Request] = []
        self.fail_with: Optional[int] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, text="<Error><Code>AccessDenied</Code></Error>")

        if request.method != "PUT" or not request.url.path.startswith(f"/{self.bucket}/"):
            return httpx.Response(405)

        body = request.content
        if int(request.headers.get("content-length", -1)) != len(body):
            return httpx.Response(400, text="<Error><Code>IncompleteBody</Code></Error>")

        declared = request.headers.get("x-amz-checksum-sha256")
        actual = base64.b64encode(hashlib.sha256(body).digest()).decode("ascii")
        if declared is not None and declared != actual:
            return httpx.Response(400, text="<Error><Code>BadDigest</Code></Error>")

        key = request.url.path[len(self.bucket) + 2:]
        self.objects[key] = body
        return httpx.Response(200)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_storage() -> FakeStorageService:
    return FakeStorageService()


class InMemoryRecordStore(RecordStore):
    """
    Record store without transactions; exercises the idempotent fallback
    promotion. Set ``fail_on`` to an operation name to make it raise once.
    """

    def __init__(self):
        self.pending: Dict[str, PendingUploadRecord] = {}
        self.completed: Dict[str, CompletedUploadRecord] = {}
        self.fail_on: Optional[str] = None

    def _maybe_fail(self, operation: str):
        if self.fail_on == operation:
            self.fail_on = None
            raise RuntimeError(f"{operation} failed")

    async def create_pending(self, pending):
        self._maybe_fail("create_pending")
        self.pending[pending.generated_filename] = pending

    async def find_pending(self, generated_filename):
        self._maybe_fail("find_pending")
        return self.pending.get(generated_filename)

    async def delete_pending(self, generated_filename):
        self._maybe_fail("delete_pending")
        self.pending.pop(generated_filename, None)

    async def create_completed(self, completed):
        self._maybe_fail("create_completed")
        self.completed.setdefault(completed.stored_name, completed)

    async def find_completed(self, stored_name):
        return self.completed.get(stored_name)

    async def delete_expired_pending(self, now: datetime):
        expired = [p for p in self.pending.values() if p.is_expired(now)]
        for p in expired:
            del self.pending[p.generated_filename]
        return expired


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


def make_pending(filename: str = "abc.png", expires_at: Optional[datetime] = None, **overrides) -> PendingUploadRecord:
    """Pending record helper for tests that bypass issuance."""
    data = dict(
        generated_filename=filename,
        original_filename="cat.png",
        bucket=BUCKET,
        folder="uploads",
        size=1000,
        mime_type="image/png",
        signed_url=f"{ENDPOINT}/{BUCKET}/uploads/{filename}?X-Amz-Signature=x",
        object_url=f"{ENDPOINT}/{BUCKET}/uploads/{filename}",
        expires_at=expires_at or datetime(2099, 1, 1, tzinfo=timezone.utc),
    )
    data.update(overrides)
    return PendingUploadRecord(**data)


@pytest.fixture
def pending_factory():
    return make_pending


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession, storage: S3Client, policy: UploadPolicy) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    from direct_upload.main import app
    from direct_upload.database import get_db
    from direct_upload.api.dependencies import get_storage, get_upload_policy

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_upload_policy] = lambda: policy

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Clean up overrides
    app.dependency_overrides.clear()
