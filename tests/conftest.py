"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.
"""

import os

# WHY: Settings are read at import time and JWT_SECRET/DATABASE_URL have no
# defaults, so the environment must be prepared before helpdesk is imported.
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-helpdesk-tests")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("OUTBOX_ENABLED", "false")

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from helpdesk.main import app
from helpdesk.models.base import Base
from helpdesk.db.session import get_db
from helpdesk.services import email as email_module
from helpdesk.services import outbox_service as outbox_module

from tests.factories import build_tenant


# Test database URL
# WHY: Using SQLite for tests eliminates external database dependencies
# and makes tests faster.
TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    Create a test database engine.

    WHY: Function scope ensures each test gets a fresh database state.
    StaticPool keeps every session on the one in-memory connection, so the
    outbox processor's own sessions see the same data as the test.
    """
    engine = create_async_engine(
        TEST_ASYNC_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session.

    Yields:
        AsyncSession: Database session for the test
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test HTTP client.

    WHY: AsyncClient allows testing FastAPI endpoints without running
    a real server. The get_db override commits or rolls back exactly like
    the real dependency, so a failed request leaves nothing behind.

    A failed request rolls back the shared session, which expires every ORM
    object the test holds. Read ids and build auth headers before any
    request that is expected to fail.

    Yields:
        AsyncClient: HTTP client for making test requests
    """

    async def override_get_db():
        """Override database dependency with test session."""
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def tenant(db_session: AsyncSession):
    """
    Two organizations with staff, clients, projects and lookups.

    WHY: Nearly every visibility test needs the same cast: an ADMIN, two
    EMPLOYEEs, two clients with one CLIENT user each, and a second
    organization that must stay invisible.
    """
    return await build_tenant(db_session)


@pytest.fixture(autouse=True)
def reset_notification_processor():
    """
    Reset the process-wide NotificationProcessor.

    WHY: The processor is a module singleton holding a lock and a cached
    EmailService; each test starts with a fresh one.
    """
    outbox_module._processor = None
    yield
    outbox_module._processor = None


@pytest.fixture(autouse=True)
def use_mock_email_provider(monkeypatch):
    """
    Use mock email provider for all tests.

    WHY: Tests should not send real emails. The mock provider records
    messages in MockEmailProvider.sent_emails for assertions.
    """
    email_module.MockEmailProvider.clear_sent_emails()

    from helpdesk.core import config

    # WHY: Without RESEND_API_KEY the EmailService picks the mock provider
    monkeypatch.setattr(config.settings, "RESEND_API_KEY", None)

    yield

    email_module.MockEmailProvider.clear_sent_emails()
