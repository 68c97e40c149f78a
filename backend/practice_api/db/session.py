"""
Database session management.

One async engine per process. Every request borrows a session from the
shared pool and runs as one transaction: ``get_db`` commits when the handler
returns and rolls back when it raises. Services that need a smaller unit of
work inside the request (the sale writer) open a savepoint on that session.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from practice_api.core.config import Settings, settings


def engine_options(config: Settings) -> Dict[str, Any]:
    """
    Keyword arguments for ``create_async_engine``.

    SQLite (local runs, tests) has no server-side pool to size or recycle, so
    only the server databases get pool settings.
    """
    options: Dict[str, Any] = {"echo": config.DEBUG}
    if not config.async_database_url.startswith("sqlite"):
        options.update(
            pool_pre_ping=True,
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            pool_recycle=config.DB_POOL_RECYCLE_SECONDS,
        )
    return options


engine = create_async_engine(settings.async_database_url, **engine_options(settings))

# Entities returned by a handler stay readable after get_db commits
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.

    Yields:
        AsyncSession: Session whose transaction spans the request
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
