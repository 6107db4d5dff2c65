from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    RESTAURANT_NOT_FOUND = "RESTAURANT_NOT_FOUND"
    MEAL_SERVICE_NOT_FOUND = "MEAL_SERVICE_NOT_FOUND"
    CAPACITY_RECORD_NOT_FOUND = "CAPACITY_RECORD_NOT_FOUND"
    PROMO_CODE_NOT_FOUND = "PROMO_CODE_NOT_FOUND"
    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"
    RESTAURANT_CLOSED = "RESTAURANT_CLOSED"
    INSUFFICIENT_CAPACITY = "INSUFFICIENT_CAPACITY"
    UNIQUE_CONSTRAINT_VIOLATION = "UNIQUE_CONSTRAINT_VIOLATION"
    FOREIGN_KEY_CONSTRAINT_VIOLATION = "FOREIGN_KEY_CONSTRAINT_VIOLATION"
    INVALID_ID = "INVALID_ID"
    DATABASE_ERROR = "DATABASE_ERROR"


NOT_FOUND_CODES = frozenset(
    {
        ErrorCode.RESTAURANT_NOT_FOUND,
        ErrorCode.MEAL_SERVICE_NOT_FOUND,
        ErrorCode.CAPACITY_RECORD_NOT_FOUND,
        ErrorCode.PROMO_CODE_NOT_FOUND,
        ErrorCode.CUSTOMER_NOT_FOUND,
        ErrorCode.RECORD_NOT_FOUND,
    }
)

CONFLICT_CODES = frozenset(
    {
        ErrorCode.RESTAURANT_CLOSED,
        ErrorCode.INSUFFICIENT_CAPACITY,
        ErrorCode.UNIQUE_CONSTRAINT_VIOLATION,
        ErrorCode.FOREIGN_KEY_CONSTRAINT_VIOLATION,
    }
)


class DomainError(Exception):
    """Expected business outcome carried as an exception until the result boundary."""

    code: ErrorCode = ErrorCode.DATABASE_ERROR

    def __init__(self, message: str, *, code: ErrorCode | None = None, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details


class NotFoundError(DomainError):
    code = ErrorCode.RECORD_NOT_FOUND


class CapacityError(DomainError):
    code = ErrorCode.INSUFFICIENT_CAPACITY


class StorageError(DomainError):
    """Raised by storage adapters after translating an engine-specific failure."""

    code = ErrorCode.DATABASE_ERROR
