"""Database configuration and connection management."""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from rushr_messaging import config
from rushr_messaging.logging_config import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


def engine_options(database_url: str) -> Dict[str, Any]:
    """Pool settings for the configured backend.

    SQLite (tests, local runs) uses the driver defaults.
    """
    options: Dict[str, Any] = {"echo": config.SQL_DEBUG, "future": True}
    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
        )
    return options


if not config.DATABASE_URL:
    raise ValueError("DATABASE_URL environment variable is required")

# Create async engine
engine = create_async_engine(config.DATABASE_URL, **engine_options(config.DATABASE_URL))

# Create session factory
AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    """Check connectivity on startup.

    The schema is owned by alembic migrations; nothing is created here.
    """
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("database_ready", dialect=engine.dialect.name)


async def close_db() -> None:
    """Close database connections on shutdown."""
    await engine.dispose()
