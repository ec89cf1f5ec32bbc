"""
Database error translation.

Repositories decorate their coroutines with `translate_db_errors` so callers
only ever see PersistenceError, never raw SQLAlchemy exceptions.
"""
import functools
import logging

from sqlalchemy.exc import SQLAlchemyError

from app.shared.utils.exceptions import PersistenceError

logger = logging.getLogger(__name__)


def translate_db_errors(operation: str):
    """Wrap SQLAlchemyError raised by an async repository method in PersistenceError."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as e:
                logger.error(f"Database error during {operation}: {e}")
                raise PersistenceError(operation, e) from e
        return wrapper
    return decorator
