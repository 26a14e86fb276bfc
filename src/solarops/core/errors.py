"""
Error taxonomy for job workflow operations.

Every failure the core can report maps onto one of four codes; the HTTP layer
and the CLI render them with ``to_dict()``.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    AUTHORIZATION = "AUTHORIZATION"
    INVALID_STATE = "INVALID_STATE"
    CONFLICT = "CONFLICT"


class WorkflowError(Exception):
    """Base class for errors raised by the workflow core."""

    code: ErrorCode = ErrorCode.INVALID_STATE
    http_status: int = 400
    retryable: bool = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "retryable": self.retryable,
            }
        }


class NotFoundError(WorkflowError):
    """A job, project, company or profile does not exist."""

    code = ErrorCode.NOT_FOUND
    http_status = 404


class AuthorizationError(WorkflowError):
    """The caller's role, assignment or company does not permit the change."""

    code = ErrorCode.AUTHORIZATION
    http_status = 403


class InvalidStateError(WorkflowError):
    """Unknown status or step name, or a request that makes no sense for the job."""

    code = ErrorCode.INVALID_STATE
    http_status = 400


class ConflictError(WorkflowError):
    """The job changed underneath the caller; reload and retry."""

    code = ErrorCode.CONFLICT
    http_status = 409
    retryable = True
