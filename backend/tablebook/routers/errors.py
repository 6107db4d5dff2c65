from typing import TypeVar

from fastapi import HTTPException, status

from ..domain.errors import CONFLICT_CODES, NOT_FOUND_CODES, ErrorCode
from ..schemas import QueryResult

T = TypeVar("T")


def status_for(code: ErrorCode) -> int:
    if code in NOT_FOUND_CODES:
        return status.HTTP_404_NOT_FOUND
    if code in CONFLICT_CODES:
        return status.HTTP_409_CONFLICT
    if code == ErrorCode.INVALID_ID:
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def unwrap(result: QueryResult[T]) -> T:
    """Payload of a successful result; HTTPException carrying the error otherwise."""
    error = result.error
    if result.success or error is None:
        return result.data  # type: ignore[return-value]
    raise HTTPException(
        status_code=status_for(error.code),
        detail={"code": error.code.value, "message": error.message},
    )
