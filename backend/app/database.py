"""
Database configuration and session management.
Uses SQLAlchemy async engine; PostgreSQL (asyncpg) in production, SQLite (aiosqlite) locally.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from app.config import settings
from app.models.base import Base

logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> dict:
    """Pool options for the configured backend. SQLite pools reject sizing arguments."""
    options = {
        "echo": False,  # Disable SQLAlchemy query logging
        "future": True,
    }
    if not database_url.startswith("sqlite"):
        options.update(
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=20,
        )
    return options


# Create async engine
engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncSession:
    """
    Dependency for FastAPI routes to get database session.
    Usage: db: AsyncSession = Depends(get_db)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """
    Initialize database: create tables.
    Called on application startup.
    """
    from app.models.file_analytics import FileAnalytics  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Accounting tables ready")
