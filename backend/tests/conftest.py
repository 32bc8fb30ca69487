import os

# Configure the app for tests before any app module reads settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["AI_GATEWAY_API_KEY"] = ""
os.environ["DEBUG"] = "false"

import uuid
from datetime import date
from typing import List, Dict, Optional, Tuple

import pytest
from httpx import AsyncClient, ASGITransport
from minio.error import S3Error
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.integrations.ai_gateway import get_ai_client
from app.main import app
from app.models.athlete_profile import AthleteProfile
from app.models.injury import Injury
from app.models.medical_report import MedicalReport
from app.models.user import User
from app.storage import S3BlobStore, get_blob_store
from app.utils.enums import InjurySeverity, ReportType
from app.utils.rate_limiter import GatewayRateLimiter
from app.utils.security import get_password_hash


TODAY = date.today()


class FakeAIClient:
    """Stands in for AIGatewayClient; records every completion request."""

    def __init__(self, reply: Optional[str] = "Stay patient and follow the plan.", error: Exception = None):
        self.reply = reply
        self.error = error
        self.is_configured = True
        self.calls: List[Dict] = []

    async def complete(self, messages, temperature=None, max_tokens=None):
        self.calls.append({
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.error is not None:
            raise self.error
        return self.reply


class FakeObjectResponse:
    def __init__(self, data: bytes, content_type: str):
        self.data = data
        self.headers = {"Content-Type": content_type}
        self.closed = False
        self.released = False

    def read(self) -> bytes:
        return self.data

    def close(self):
        self.closed = True

    def release_conn(self):
        self.released = True


class FakeMinio:
    """In-memory stand-in for the minio client used by S3BlobStore."""

    def __init__(self, buckets=None):
        self.buckets = set(buckets or ())
        self.objects: Dict[Tuple[str, str], Tuple[bytes, str]] = {}
        self.presigned: List[Dict] = []
        self.error: Optional[Exception] = None

    def _not_found(self, bucket: str, name: str) -> S3Error:
        return S3Error(
            code="NoSuchKey",
            message="Object does not exist",
            resource=f"/{bucket}/{name}",
            request_id="test",
            host_id="test",
            response=None,
            bucket_name=bucket,
            object_name=name,
        )

    def _check(self):
        if self.error is not None:
            raise self.error

    def bucket_exists(self, bucket: str) -> bool:
        self._check()
        return bucket in self.buckets

    def make_bucket(self, bucket: str):
        self._check()
        self.buckets.add(bucket)

    def put_object(self, bucket_name, object_name, data, length, content_type="application/octet-stream"):
        self._check()
        payload = data.read()
        assert len(payload) == length
        self.objects[(bucket_name, object_name)] = (payload, content_type)

    def stat_object(self, bucket: str, name: str):
        self._check()
        if (bucket, name) not in self.objects:
            raise self._not_found(bucket, name)
        return self.objects[(bucket, name)]

    def get_object(self, bucket: str, name: str) -> FakeObjectResponse:
        payload, content_type = self.stat_object(bucket, name)
        return FakeObjectResponse(payload, content_type)

    def presigned_get_object(self, bucket: str, name: str, expires=None) -> str:
        self._check()
        self.presigned.append({"bucket": bucket, "name": name, "expires": expires})
        return (
            f"http://minio.test/{bucket}/{name}"
            f"?X-Amz-Expires={int(expires.total_seconds())}&X-Amz-Signature=fake"
        )


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    GatewayRateLimiter.reset_instances()
    yield
    GatewayRateLimiter.reset_instances()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def minio_client():
    return FakeMinio(buckets={"medical-reports"})


@pytest.fixture
def blob_store(minio_client):
    return S3BlobStore(client=minio_client)


@pytest.fixture
def ai_client():
    return FakeAIClient()


@pytest.fixture
async def client(session_factory, blob_store, ai_client):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_ai_client] = lambda: ai_client

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ==================== Database rows ====================

@pytest.fixture
async def athlete(db) -> AthleteProfile:
    """A 22 year old (calendar-year) soccer player"""
    user = User(email="athlete@example.com", hashed_password=get_password_hash("secret123"))
    db.add(user)
    await db.flush()

    profile = AthleteProfile(
        user_id=user.id,
        full_name="Jordan Lee",
        sport="Soccer",
        position="Midfielder",
        date_of_birth=date(TODAY.year - 22, 6, 15),
    )
    db.add(profile)
    await db.flush()
    await db.refresh(profile)
    return profile


@pytest.fixture
async def injury(db, athlete) -> Injury:
    injury = Injury(
        athlete_id=athlete.id,
        injury_type="ankle-sprain",
        injury_location="Left ankle",
        severity=InjurySeverity.mild,
        injury_date=TODAY,
        mechanism="Rolled ankle landing from a header",
    )
    db.add(injury)
    await db.flush()
    await db.refresh(injury)
    return injury


@pytest.fixture
async def stored_report(db, athlete, injury, blob_store) -> MedicalReport:
    """A text report stored in the reports bucket and tracked as pending"""
    file_path = f"{athlete.user_id}/1700000000000-mri.txt"
    content = b"MRI: grade 1 sprain of the anterior talofibular ligament."
    await blob_store.upload("medical-reports", file_path, content)

    report = MedicalReport(
        athlete_id=athlete.id,
        injury_id=injury.id,
        file_name="mri.txt",
        file_path=file_path,
        file_size=len(content),
        report_type=ReportType.mri,
        uploaded_by=athlete.user_id,
    )
    db.add(report)
    await db.flush()
    await db.refresh(report)
    return report


# ==================== API helpers ====================

async def register_and_login(client: AsyncClient, email: str = "runner@example.com",
                             password: str = "secret123") -> Dict[str, str]:
    response = await client.post("/api/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201

    response = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
async def auth_headers(client) -> Dict[str, str]:
    return await register_and_login(client)


@pytest.fixture
async def athlete_headers(client, auth_headers) -> Dict[str, str]:
    """Headers for a user that already has an athlete profile"""
    response = await client.put("/api/athletes/me", headers=auth_headers, json={
        "full_name": "Sam Rivera",
        "sport": "Basketball",
        "date_of_birth": date(TODAY.year - 22, 3, 1).isoformat(),
    })
    assert response.status_code == 200
    return auth_headers


def random_uuid() -> str:
    return str(uuid.uuid4())
