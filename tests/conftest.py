"""Configuration for pytest tests.

Services are wired to in-memory repositories and a frozen clock; the API client
overrides the repository and clock dependencies with the same objects.
"""

import os
from datetime import datetime, timedelta, timezone

# Set test environment before the app reads its settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["HASH_SALT"] = "test-salt"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_TOKEN"] = "test-admin-token"
os.environ["AUTO_RELEASE_ENABLED"] = "false"

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tutor_market.deps import get_clock, get_review_repository, get_session_repository, get_student_repository
from tutor_market.main import app
from tutor_market.models import Base
from tutor_market.repositories.memory import InMemoryRepository
from tutor_market.services.clock import FrozenClock
from tutor_market.services.escrow import EscrowService
from tutor_market.services.locks import KeyedLock
from tutor_market.services.registry import RegistryService
from tutor_market.services.reviews import ReviewService

SESSION_START = datetime(2025, 1, 10, 14, 0, tzinfo=timezone.utc)
STUDENT_WALLET = "3Fsx7a8k9QaT"
TUTOR_WALLET = "9TutorWa11et"
ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}


@pytest.fixture
def clock() -> FrozenClock:
    """Clock just after a one-hour session starting at SESSION_START."""
    return FrozenClock(SESSION_START + timedelta(hours=1, minutes=5))


@pytest.fixture
def session_repo() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def review_repo() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def student_repo() -> InMemoryRepository:
    return InMemoryRepository(key_attr="wallet")


@pytest.fixture
def escrow(session_repo, clock) -> EscrowService:
    return EscrowService(session_repo, clock=clock, locks=KeyedLock())


@pytest.fixture
def reviews(review_repo, session_repo, clock) -> ReviewService:
    return ReviewService(review_repo, session_repo, clock=clock, locks=KeyedLock())


@pytest.fixture
def registry(student_repo, clock) -> RegistryService:
    return RegistryService(student_repo, clock=clock)


@pytest.fixture
def book(escrow):
    """Book a session between STUDENT_WALLET and TUTOR_WALLET (defaults: $30, 60 minutes)."""

    async def _book(
        session_id: str = "S1",
        amount: str = "30.00",
        minutes: int = 60,
        tutor_id: str = "tutor-1",
        student_wallet: str = STUDENT_WALLET,
        tutor_wallet: str = TUTOR_WALLET,
    ):
        result, session = await escrow.book_session(
            session_id=session_id,
            student_id="user-1",
            student_wallet=student_wallet,
            tutor_id=tutor_id,
            tutor_wallet=tutor_wallet,
            scheduled_time=SESSION_START,
            session_end_time=SESSION_START + timedelta(minutes=minutes),
            amount=amount,
            course_id="CS300",
        )
        assert result.success, result.message
        return session

    return _book


@pytest.fixture
def settle(book, escrow):
    """Book a session and have both parties confirm it, releasing payment."""

    async def _settle(session_id: str = "S1", **kwargs):
        session = await book(session_id=session_id, **kwargs)
        await escrow.confirm_session(session_id, session.tutor_wallet, "tutor")
        result = await escrow.confirm_session(session_id, session.student_wallet, "student")
        assert result.success, result.message
        return session

    return _settle


@pytest.fixture
def client(session_repo, review_repo, student_repo, clock):
    """Test client backed by the in-memory repositories (lifespan and database are not started)."""
    app.dependency_overrides[get_session_repository] = lambda: session_repo
    app.dependency_overrides[get_review_repository] = lambda: review_repo
    app.dependency_overrides[get_student_repository] = lambda: student_repo
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    """Register a student wallet through the API and return bearer headers for it."""

    def _login(student_id: str, email: str, wallet: str) -> dict[str, str]:
        body = {"student_id": student_id, "email": email, "wallet": wallet}
        response = client.post("/api/registry/register", json=body)
        assert response.status_code == 201, response.text
        response = client.post("/api/registry/login", json=body)
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


@pytest_asyncio.fixture
async def sqlite_session_factory(tmp_path):
    """Session factory over a fresh SQLite database file with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tutor_market.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()
