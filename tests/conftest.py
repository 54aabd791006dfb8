import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

# Load environment variables from .env file
load_dotenv()

from mediqueue.core.locks import QueueLockRegistry
from mediqueue.database import get_db
from mediqueue.dependencies import get_cache_manager
from mediqueue.main import app
from mediqueue.models import metadata
from mediqueue.schemas.patients import PatientCreate
from mediqueue.services.broadcaster import get_broadcaster
from mediqueue.services.queue_service import QueueService
from mediqueue.services.queue_store import QueueStore

# Tests default to an in-memory SQLite database; point TEST_DATABASE_URL at a
# PostgreSQL test database to run against the production dialect
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

if TEST_DATABASE_URL.startswith("postgresql://"):
    TEST_DATABASE_URL = TEST_DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")


class RecordingBroadcaster:
    """Stands in for the broadcaster and keeps every published event."""

    def __init__(self):
        self.events = []

    def publish(self, event) -> int:
        self.events.append(event)
        return 1

    @property
    def actions(self) -> list[str]:
        return [event.action for event in self.events]


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session on freshly created tables."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        # One shared connection so every session sees the same in-memory database
        test_engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    else:
        test_engine = create_async_engine(TEST_DATABASE_URL, poolclass=NullPool)

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with TestSessionLocal() as session:
        yield session

    # Drop tables after test
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def recorder() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    recorder: RecordingBroadcaster,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_manager] = lambda: None
    app.dependency_overrides[get_broadcaster] = lambda: recorder

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def store(db_session: AsyncSession) -> QueueStore:
    return QueueStore(db_session)


@pytest.fixture
def queue_service(db_session: AsyncSession, recorder: RecordingBroadcaster) -> QueueService:
    """Queue service with a recording broadcaster and its own lock registry."""
    return QueueService(db_session, broadcaster=recorder, locks=QueueLockRegistry())


@pytest_asyncio.fixture
async def test_doctor(store: QueueStore):
    """Create a test doctor in the database."""
    return await store.create_doctor(
        name="Dr. Sarah Johnson",
        specialization="General Practice",
        room_number="204",
    )


@pytest_asyncio.fixture
async def test_queue(store: QueueStore, test_doctor):
    """Create a queue assigned to the test doctor."""
    return await store.create_queue("Room 204", doctor_id=test_doctor.id)


@pytest.fixture
def make_patient(store: QueueStore):
    """Factory creating patients with distinct phone numbers."""
    counter = iter(range(1000))

    async def _make(name: str = "Test Patient"):
        return await store.create_patient(
            PatientCreate(name=name, phone_number=f"+1555000{next(counter):04d}")
        )

    return _make


@pytest.fixture
def sample_patient_data() -> dict:
    """Sample patient registration data for testing."""
    return {
        "name": "Jane Roe",
        "age": 34,
        "gender": "female",
        "phone_number": "+1 555-123-4567",
        "email": "jane@example.com",
    }
