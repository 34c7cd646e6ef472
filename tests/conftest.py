import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncGenerator, Awaitable, Callable, Generator, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

# The app engine is created at import time; point it at SQLite unless the
# environment already names a database.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("COMMIT_HASH", "test")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool  # noqa: E402

import rushr_messaging.models.db  # noqa: E402,F401
from rushr_messaging.database import Base  # noqa: E402
from rushr_messaging.events.broker import EventBroker  # noqa: E402
from rushr_messaging.main import app  # noqa: E402
from rushr_messaging.models.api.conversations import ConversationResponse  # noqa: E402
from rushr_messaging.services.conversation_directory_service import (  # noqa: E402
    ConversationDirectoryService,
)


@pytest.fixture(scope="function")
async def test_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """A throwaway SQLite database file per test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'messaging.db'}",
        poolclass=NullPool,
        future=True,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Clean up
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def test_db(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session for integration tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
def broker() -> EventBroker:
    """A fresh broker so tests never share subscriptions or listeners."""
    return EventBroker(queue_size=10)


@pytest.fixture(scope="function")
def mock_db() -> Generator[AsyncMock, None, None]:
    """Create a mock database session for unit tests."""
    # Use mock to avoid database connection issues in unit tests
    mock_session = AsyncMock()
    mock_session.commit = AsyncMock()
    mock_session.rollback = AsyncMock()
    mock_session.close = AsyncMock()
    mock_session.flush = AsyncMock()
    mock_session.execute = AsyncMock()
    mock_session.add = MagicMock()  # add is sync, not async

    yield mock_session


@pytest.fixture
def client() -> Generator[TestClient, Any, None]:
    """Create a test client for the FastAPI app."""
    with TestClient(app) as test_client:
        yield test_client


@dataclass
class Parties:
    """A conversation between a requester and a provider."""

    conversation: ConversationResponse
    requester_id: UUID
    provider_id: UUID
    outsider_id: UUID

    @property
    def conversation_id(self) -> UUID:
        return self.conversation.id


@pytest.fixture
def make_conversation(
    test_db: AsyncSession, broker: EventBroker
) -> Callable[..., Awaitable[Parties]]:
    """Factory creating a fresh conversation with two new users."""

    async def _make(title: str = "Fix sink", job_ref: Optional[UUID] = None) -> Parties:
        requester_id, provider_id = uuid4(), uuid4()
        directory = ConversationDirectoryService(test_db, broker)
        conversation = await directory.create_or_get(
            requester_id, provider_id, title, job_ref
        )
        return Parties(conversation, requester_id, provider_id, uuid4())

    return _make


@pytest.fixture
async def parties(make_conversation: Callable[..., Awaitable[Parties]]) -> Parties:
    return await make_conversation()
