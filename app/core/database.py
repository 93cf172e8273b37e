from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.shared.models.base import Base
from ..shared.utils.logger import get_logger
from .config import settings

logger = get_logger(__name__)


def _engine_options(url: str) -> dict:
    # sqlite pools reject sizing arguments
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": 20,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
    }


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO,
    **_engine_options(settings.DATABASE_URL),
)

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request, committed on success."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def transaction() -> AsyncIterator[AsyncSession]:
    """
    Open a session and an explicit transaction around it.

    Everything done with the yielded session commits together or rolls back
    together; wallet mutations take this session as their transaction context.
    """
    async with AsyncSessionLocal() as session:
        async with session.begin():
            yield session


async def init_db():
    if settings.ENVIRONMENT.value in ("local", "dev"):
        # Auto-create tables outside of managed environments
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    else:
        # Managed environments are migrated with alembic only
        logger.info("Skipping auto table creation, alembic owns the schema")


async def check_connection() -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            return True
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return False
