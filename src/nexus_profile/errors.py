"""Service error taxonomy.

Every error carries an HTTP status, a machine-readable code and optional
details. The global handlers render them as
``{"message": ..., "code": ..., "details": ...}``.
"""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, *, details: Any = None, code: str | None = None) -> None:  # noqa: ANN401
        super().__init__(message)
        self.message = message
        self.details = details
        if code is not None:
            self.code = code

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}


class ValidationError(ServiceError):
    """Malformed or out-of-range input."""

    status_code = 400
    code = "validation_error"


class AuthenticationError(ServiceError):
    """Missing or invalid bearer credential."""

    status_code = 401
    code = "authentication_failed"


class AuthorizationError(ServiceError):
    """Caller lacks a required role."""

    status_code = 403
    code = "forbidden"


class NotFoundError(ServiceError):
    """Resource absent, or owned by another user."""

    status_code = 404
    code = "not_found"


class ConflictError(ServiceError):
    status_code = 409
    code = "conflict"


class UpstreamUnavailableError(ServiceError):
    """The identity gateway (or another upstream) failed or timed out."""

    status_code = 502
    code = "upstream_unavailable"


class InternalError(ServiceError):
    """Store failure or any unexpected error."""

    status_code = 500
    code = "internal_error"
