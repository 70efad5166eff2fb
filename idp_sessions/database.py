import threading
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import settings


_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None
_engine_lock = threading.Lock()


def get_engine() -> AsyncEngine:
    """Create the process-wide engine on first use."""
    global _engine, _sessionmaker

    if _engine is not None:
        return _engine

    with _engine_lock:
        if _engine is None:
            _engine = create_async_engine(
                settings.database_url,
                echo=settings.debug,
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_recycle=settings.db_pool_recycle,
                pool_pre_ping=settings.db_pool_pre_ping,
            )
            # expire_on_commit=False keeps ORM objects readable after commit.
            # Rows that may have been changed by another request MUST be
            # re-queried (see crud.user_session, which loads with
            # populate_existing) rather than trusted from the identity map.
            _sessionmaker = async_sessionmaker(
                bind=_engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    get_engine()
    assert _sessionmaker is not None
    return _sessionmaker


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with get_sessionmaker()() as session:
        yield session


async def dispose_engine() -> None:
    global _engine, _sessionmaker

    with _engine_lock:
        engine, _engine, _sessionmaker = _engine, None, None
    if engine is not None:
        await engine.dispose()
