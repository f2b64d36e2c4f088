"""Error Hierarchy — codes, HTTP statuses and response shape."""

import pytest

from mirrio.core.errors import (
    AuthenticationError, ConflictError, DatabaseError, ErrorContext,
    MirrioError, NoContentError, NotFoundError, PermissionDeniedError,
    ValidationError,
)


@pytest.mark.parametrize("error,code,status", [
    (ConflictError("open round exists"), "CONFLICT", 409),
    (NoContentError("ed-1"), "NO_CONTENT", 422),
    (NotFoundError("Group", "g-1"), "RESOURCE_NOT_FOUND", 404),
    (ValidationError("bad", "target_user_id"), "VALIDATION_ERROR", 400),
    (AuthenticationError(), "UNAUTHENTICATED", 401),
    (PermissionDeniedError("nope"), "PERMISSION_DENIED", 403),
    (DatabaseError("down", "execute"), "DATABASE_ERROR", 503),
])
def test_error_codes_and_statuses(error, code, status):
    assert isinstance(error, MirrioError)
    assert error.code == code
    assert error.http_status == status


def test_to_response_includes_context():
    ctx = ErrorContext(group_id="g-1", round_id="r-1")
    body = ConflictError("Round is already closed", ctx).to_response()
    assert body["error"]["code"] == "CONFLICT"
    assert body["error"]["message"] == "Round is already closed"
    assert body["error"]["context"] == {"group_id": "g-1", "round_id": "r-1"}
    assert body["error"]["severity"] == "warning"


def test_user_message_overrides_message():
    ctx = ErrorContext(user_message="Try again later")
    assert NoContentError("ed-1", ctx).to_response()["error"]["message"] == "Try again later"
