"""
Database decorators for automatic error handling and rollback.

Provides a decorator that rolls back the session when a write fails and
surfaces datastore failures as PersistenceError.
"""

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.utils.exceptions import PersistenceError

T = TypeVar("T")


def _find_session(args: tuple, kwargs: dict) -> AsyncSession | None:
    """Locate the session in call arguments or on a repository instance."""
    session = kwargs.get("session")
    if session is not None:
        return session
    if args:
        if isinstance(args[0], AsyncSession):
            return args[0]
        candidate = getattr(args[0], "session", None)
        if isinstance(candidate, AsyncSession):
            return candidate
    return None


def with_rollback_on_error(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator that automatically rolls back the session on any exception.

    Usage:
        class EventRepository(BaseRepository[ChainEvent]):
            @with_rollback_on_error
            async def insert_ignore_duplicates(self, rows):
                ...

    The session is taken from a ``session`` keyword argument, the first
    positional argument, or the ``session`` attribute of ``self``.
    SQLAlchemy errors are re-raised as PersistenceError; anything else is
    re-raised unchanged.

    Args:
        func: Async function to wrap

    Returns:
        Wrapped function with automatic rollback on error
    """
    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        session = _find_session(args, kwargs)

        if session is None:
            logger.warning(
                f"Function {func.__name__} decorated with @with_rollback_on_error "
                f"but no session argument found. Rollback will not be performed."
            )
            return await func(*args, **kwargs)

        try:
            return await func(*args, **kwargs)
        except Exception as e:
            try:
                await session.rollback()
                logger.info(
                    f"Rollback performed in {func.__name__} due to error: {type(e).__name__}"
                )
            except Exception as rollback_error:
                logger.error(
                    f"Failed to rollback in {func.__name__}: {rollback_error}"
                )
            if isinstance(e, SQLAlchemyError):
                raise PersistenceError(f"{func.__name__} failed: {e}") from e
            raise

    return wrapper
