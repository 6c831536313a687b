"""
core/errors.py -- Error taxonomy shared by the stores, auth, and the API layer.

Stores and the token authenticator raise these; api/main.py registers one
exception handler for ApiError that turns any of them into the standard JSON
error envelope with the matching HTTP status. Route handlers therefore never
build error responses by hand -- they raise.

    ValidationError  400  malformed or missing input
    Unauthorized     401  missing, malformed, or expired credential
    NotFoundError    404  no such row
    ConflictError    409  uniqueness violation
    InternalError    500  unexpected failure (message is never sent to clients)

Layer rule: no imports from api/, auth/, or catalog/.
"""

from __future__ import annotations


class ApiError(Exception):
    """Base class for errors that map onto an HTTP status code."""

    status_code: int = 500
    code: str = "error"

    def __init__(self, message: str, code: str | None = None, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.detail = detail

    def to_dict(self) -> dict:
        return {
            "success": False,
            "message": self.message,
            "code": self.code,
            "detail": self.detail,
        }


class ValidationError(ApiError):
    status_code = 400
    code = "validation_error"


class Unauthorized(ApiError):
    status_code = 401
    code = "unauthorized"


class NotFoundError(ApiError):
    status_code = 404
    code = "not_found"


class ConflictError(ApiError):
    status_code = 409
    code = "conflict"


class InternalError(ApiError):
    status_code = 500
    code = "internal_error"
