from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from early_access.main import app
from early_access.models import Base
from early_access.core.database import get_db
from early_access.core.service_dependencies import get_clock, get_email_service
from early_access.repositories.unit_of_work import SqlAlchemyUnitOfWork
from early_access.services.verification_service import VerificationService


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingEmailService:
    """Stands in for EmailService and keeps every code it was asked to send."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent = []

    async def send_verification_email(self, email: str, code: str, tracking_token: str) -> bool:
        self.sent.append({"email": email, "code": code, "tracking_token": tracking_token})
        return self.succeed

    def last_code_for(self, email: str) -> str:
        return [m for m in self.sent if m["email"] == email][-1]["code"]

    def last_token_for(self, email: str) -> str:
        return [m for m in self.sent if m["email"] == email][-1]["tracking_token"]


@pytest_asyncio.fixture
async def async_engine():
    """Create an async engine for testing."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def async_session(async_engine):
    """Create an async session for testing."""
    async_session_maker = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def override_get_db(async_session):
    """Override the get_db dependency."""

    async def _override_get_db():
        try:
            yield async_session
            await async_session.commit()
        except Exception:
            await async_session.rollback()
            raise

    return _override_get_db


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def email_service():
    return RecordingEmailService()


@pytest_asyncio.fixture
async def client(override_get_db, clock, email_service):
    """Create test client with overridden database, clock and mailer."""
    from httpx import ASGITransport

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_email_service] = lambda: email_service

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def uow(async_session):
    return SqlAlchemyUnitOfWork(async_session)


@pytest.fixture
def verification_service(uow, email_service, clock):
    return VerificationService(uow, email_service, clock)


@pytest_asyncio.fixture
async def unreachable_db_client(clock, email_service):
    """Test client whose database session fails as if the server were down."""
    from unittest.mock import AsyncMock, MagicMock

    from httpx import ASGITransport

    session = MagicMock(spec=AsyncSession)
    session.execute = AsyncMock(side_effect=ConnectionRefusedError(111, "Connection refused"))
    session.commit = AsyncMock()
    session.rollback = AsyncMock()

    async def _unreachable_get_db():
        yield session

    app.dependency_overrides[get_db] = _unreachable_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_email_service] = lambda: email_service

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
