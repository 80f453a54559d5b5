from app.core.errors import (
    ErrorCode,
    NotFoundError,
    StorageError,
    ValidationError,
    build_error_payload,
    map_status_to_error_code,
)


def test_map_status_to_error_code():
    assert map_status_to_error_code(400) == ErrorCode.VALIDATION_ERROR
    assert map_status_to_error_code(422) == ErrorCode.VALIDATION_ERROR
    assert map_status_to_error_code(401) == ErrorCode.UNAUTHORIZED
    assert map_status_to_error_code(403) == ErrorCode.FORBIDDEN
    assert map_status_to_error_code(404) == ErrorCode.NOT_FOUND
    assert map_status_to_error_code(409) == ErrorCode.CONFLICT
    assert map_status_to_error_code(429) == ErrorCode.RATE_LIMITED
    assert map_status_to_error_code(503) == ErrorCode.STORAGE_UNAVAILABLE
    assert map_status_to_error_code(500) == ErrorCode.INTERNAL_ERROR


def test_domain_errors_carry_status_and_code():
    validation = ValidationError("rating must be an integer from 1 to 5", field="rating")
    assert (validation.status_code, validation.error_code) == (400, ErrorCode.VALIDATION_ERROR)
    assert validation.field == "rating"
    assert str(validation) == "rating must be an integer from 1 to 5"

    not_found = NotFoundError("student not found")
    assert (not_found.status_code, not_found.error_code) == (404, ErrorCode.NOT_FOUND)
    assert not_found.field is None

    storage = StorageError()
    assert (storage.status_code, storage.error_code) == (503, ErrorCode.STORAGE_UNAVAILABLE)


def test_build_error_payload_only_includes_field_when_present():
    assert build_error_payload(ErrorCode.NOT_FOUND, "missing", "req-1") == {
        "error_code": "NOT_FOUND",
        "message": "missing",
        "request_id": "req-1",
    }
    payload = build_error_payload(ErrorCode.VALIDATION_ERROR, "bad", "req-2", field="status")
    assert payload["field"] == "status"
