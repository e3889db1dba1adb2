from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
)

from forum.config import get_settings


# Engine and session factory are built on first use, not at import time, so importing
# repositories or models never requires a database driver to be installed.
@lru_cache()
def get_engine(database_url: str | None = None) -> AsyncEngine:
    settings = get_settings()
    return create_async_engine(
        database_url or settings.DATABASE_URL,
        echo=settings.SQLALCHEMY_ECHO,   # Set to False in production
        pool_pre_ping=True,              # Enables connection health checks
    )


@lru_cache()
def get_session_maker(database_url: str | None = None) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=get_engine(database_url),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_async_session(database_url: str | None = None) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session and make sure it is closed afterwards.

    The caller owns the transaction: repositories only flush, so commit (or roll back)
    once the whole unit of work is done.

    Usage:
        async for session in get_async_session():
            service = ConversationService(session)
            ...
            await session.commit()
    """
    async with get_session_maker(database_url)() as session:
        yield session
