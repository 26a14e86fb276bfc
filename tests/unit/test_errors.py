from solarops.core.errors import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    WorkflowError,
)


def test_error_taxonomy_maps_to_http_statuses() -> None:
    assert NotFoundError("x").http_status == 404
    assert AuthorizationError("x").http_status == 403
    assert InvalidStateError("x").http_status == 400
    assert ConflictError("x").http_status == 409
    assert all(
        issubclass(cls, WorkflowError)
        for cls in (NotFoundError, AuthorizationError, InvalidStateError, ConflictError)
    )


def test_only_conflicts_are_retryable() -> None:
    assert ConflictError("stale").to_dict() == {
        "error": {"code": "CONFLICT", "message": "stale", "retryable": True}
    }
    assert AuthorizationError("nope").to_dict()["error"]["retryable"] is False
