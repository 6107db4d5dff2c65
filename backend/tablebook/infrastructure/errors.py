from __future__ import annotations

import functools
import logging
from typing import Awaitable, Callable, ParamSpec, TypeVar

from sqlalchemy.exc import DataError, IntegrityError, NoResultFound, SQLAlchemyError

from ..domain.errors import ErrorCode, StorageError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

PHONE_TAKEN_MESSAGE = "This phone number is already registered. Please use a different phone number."
EMAIL_TAKEN_MESSAGE = "Enter another email address to proceed"


def _unique_violation_message(text: str, operation: str) -> str:
    if "phone" in text:
        return PHONE_TAKEN_MESSAGE
    if "email" in text:
        return EMAIL_TAKEN_MESSAGE
    return f"{operation}: a record with the same unique value already exists"


def map_storage_error(exc: Exception, operation: str) -> StorageError:
    """Translate a SQLAlchemy failure into the fixed storage error codes.

    Engines word constraint failures differently (MySQL "Duplicate entry",
    SQLite "UNIQUE constraint failed", PostgreSQL "duplicate key value"), so the
    driver message is inspected rather than any engine-specific error number.
    """
    if isinstance(exc, IntegrityError):
        text = str(exc.orig).lower()
        if "unique" in text or "duplicate" in text:
            return StorageError(
                _unique_violation_message(text, operation),
                code=ErrorCode.UNIQUE_CONSTRAINT_VIOLATION,
                details=exc,
            )
        if "foreign key" in text:
            return StorageError(
                f"{operation}: referenced record does not exist",
                code=ErrorCode.FOREIGN_KEY_CONSTRAINT_VIOLATION,
                details=exc,
            )
    if isinstance(exc, NoResultFound):
        return StorageError(f"{operation}: record not found", code=ErrorCode.RECORD_NOT_FOUND, details=exc)
    if isinstance(exc, DataError):
        return StorageError(f"{operation}: invalid id or value", code=ErrorCode.INVALID_ID, details=exc)
    return StorageError(f"{operation}: database operation failed", code=ErrorCode.DATABASE_ERROR, details=exc)


def translate_errors(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Wrap a repository coroutine so SQLAlchemy errors leave it as StorageError."""
    operation = func.__qualname__

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as exc:
            mapped = map_storage_error(exc, operation)
            logger.warning("storage error in %s: %s (%s)", operation, mapped.code, exc.__class__.__name__)
            raise mapped from exc

    return wrapper
