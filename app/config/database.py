"""
Database engine and session factory.

A single bounded connection pool shared by every component.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config.settings import settings


def create_engine(database_url: str | None = None) -> AsyncEngine:
    """
    Create the async engine.

    SQLite (used by tests and local runs) does not accept pool sizing
    arguments, so they are only passed for server databases.
    """
    url = database_url or settings.database_url
    kwargs: dict = {"echo": settings.database_echo}
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.database_pool_size,
            pool_timeout=settings.database_pool_timeout,
            pool_pre_ping=True,
        )
    return create_async_engine(url, **kwargs)


def create_session_maker(
    bind: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = create_engine()
async_session_maker = create_session_maker(engine)
