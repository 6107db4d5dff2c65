from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, ParamSpec, TypeVar

from ..domain.errors import DomainError, ErrorCode
from ..schemas import QueryResult

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def returns_result(
    operation: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[QueryResult[Any]]]]:
    """
    Result boundary for component operations.

    The wrapped coroutine returns its payload or raises. Domain errors become
    ``QueryResult.fail`` with their own code; anything else is logged and
    collapsed to ``DATABASE_ERROR`` carrying the cause in ``details``.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[QueryResult[Any]]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> QueryResult[Any]:
            try:
                data = await func(*args, **kwargs)
            except DomainError as exc:
                logger.info("%s failed: %s %s", operation, exc.code, exc.message)
                return QueryResult.fail(exc.code, exc.message, exc.details)
            except Exception as exc:
                logger.exception("%s failed unexpectedly", operation)
                return QueryResult.fail(ErrorCode.DATABASE_ERROR, f"Failed to {operation}", exc)
            return QueryResult.ok(data)

        return wrapper

    return decorator
