"""Database engine, session factory, and declarative base.

All KPIBoard tables share one DeclarativeBase. Request handlers receive a
session through `get_db()`, which wraps the whole request in a single
transaction: commit on success, rollback on any exception (including
cancellation), so no partial grant or half-applied layout is ever visible.
Cache invalidations queued during the transaction run only after commit.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

from kpiboard.config import settings
from kpiboard.utils.cache import discard_pending_invalidations, run_pending_invalidations

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_size=20,
    max_overflow=10,
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    pass


# ── Session dependency ──────────────────────────────────────

async def commit(session: AsyncSession) -> None:
    """Commit, then drop the cache keys the transaction made stale."""
    await session.commit()
    await run_pending_invalidations(session)


async def get_db() -> AsyncSession:
    """Yield a request-scoped session that commits or rolls back as a unit."""
    async with async_session() as session:
        try:
            yield session
            await commit(session)
        except BaseException:
            discard_pending_invalidations(session)
            await session.rollback()
            raise


async def create_all_tables() -> None:
    """Create any missing tables (used by `cli init-db`)."""
    import kpiboard.models  # noqa: F401  (register mappers)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
