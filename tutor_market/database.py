"""Async engine and session factory shared by request handlers and the auto-release task."""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tutor_market.config import settings

# URL must use an async driver (asyncpg, aiosqlite)
engine = create_async_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db():
    """One session per request: commit on success, roll back and re-raise on error."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
