from dataclasses import dataclass
from enum import StrEnum


class ErrorCode(StrEnum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMITED = "RATE_LIMITED"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(slots=True)
class ApiError(Exception):
    status_code: int
    error_code: ErrorCode
    message: str
    field: str | None = None

    def __str__(self) -> str:
        return self.message


class ValidationError(ApiError):
    """A required field is missing or a value is malformed. Not retried."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(400, ErrorCode.VALIDATION_ERROR, message, field)


class NotFoundError(ApiError):
    def __init__(self, message: str) -> None:
        super().__init__(404, ErrorCode.NOT_FOUND, message)


class StorageError(ApiError):
    """The store was unreachable or a query failed.

    Reads are safe to retry. Writes are keyed (upsert by intervention and
    week, update/delete by id) so a retry targets the same row.
    """

    def __init__(self, message: str = "storage operation failed") -> None:
        super().__init__(503, ErrorCode.STORAGE_UNAVAILABLE, message)


def map_status_to_error_code(status_code: int) -> ErrorCode:
    if status_code in (400, 422):
        return ErrorCode.VALIDATION_ERROR
    if status_code == 401:
        return ErrorCode.UNAUTHORIZED
    if status_code == 403:
        return ErrorCode.FORBIDDEN
    if status_code == 404:
        return ErrorCode.NOT_FOUND
    if status_code == 409:
        return ErrorCode.CONFLICT
    if status_code == 429:
        return ErrorCode.RATE_LIMITED
    if status_code == 503:
        return ErrorCode.STORAGE_UNAVAILABLE
    return ErrorCode.INTERNAL_ERROR


def build_error_payload(
    error_code: ErrorCode,
    message: str,
    request_id: str,
    field: str | None = None,
) -> dict:
    payload = {
        "error_code": error_code.value,
        "message": message,
        "request_id": request_id,
    }
    if field:
        payload["field"] = field
    return payload
