"""
App-level exceptions raised by repositories and services.

Everything derives from RepositoryError so a caller (web controller, CLI, test) can
catch one type and still get a stable payload and HTTP status out of it.
"""

from typing import Iterable, Mapping


class RepositoryError(Exception):
    """
    Base exception for repository/service errors.

    - message: human-friendly message (safe to show to clients)
    - fields: optional list of field names related to the error (e.g., ['name'])
    - constraint: optional DB constraint name or identifier (for logs only)
    - error_code: canonical short code (e.g., 'duplicate', 'invalid_input') used by clients
    """

    # canonical error_code -> default HTTP status
    ERROR_CODE_TO_STATUS = {
        "duplicate": 409,
        "invalid_field": 422,
        "invalid_input": 422,
        "validation_failed": 422,
        "not_found": 404,
    }

    def __init__(self, message: str, *, fields: Iterable[str] | None = None,
                 constraint: str | None = None, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        self.fields = list(fields) if fields else None
        self.constraint = constraint
        self.error_code = error_code

    def __str__(self) -> str:
        parts = []
        if self.fields:
            parts.append(f"fields: {', '.join(self.fields)}")
        if self.constraint:
            parts.append(f"constraint: {self.constraint}")
        if self.error_code:
            parts.append(f"code: {self.error_code}")
        if parts:
            return f"{self.message} ({'; '.join(parts)})"
        return self.message

    def to_payload(self) -> dict:
        """
        JSON-serializable body for API responses:
            {"detail": "...", "code": "duplicate", "fields": ["name"]}
        The constraint name is left out on purpose (DB internals stay in the logs).
        """
        payload = {"detail": self.message}
        if self.error_code:
            payload["code"] = self.error_code
        if self.fields:
            payload["fields"] = list(self.fields)
        return payload

    def http_status(self) -> int:
        if self.error_code:
            return self.ERROR_CODE_TO_STATUS.get(self.error_code, 400)
        return 400


class NotFoundError(RepositoryError):
    def __init__(self, message: str = "Not found", *, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields, error_code="not_found")


class DuplicateError(RepositoryError):
    def __init__(self, message: str, *, fields: Iterable[str] | None = None, constraint: str | None = None):
        super().__init__(message, fields=fields, constraint=constraint, error_code="duplicate")


class InvalidFieldError(RepositoryError):
    """Raised when the caller passes unexpected/unknown fields to repository methods."""

    def __init__(self, message: str, *, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields, error_code="invalid_field")


class InvalidInputError(RepositoryError):
    """Raised when an operation is called with arguments it cannot act on."""

    def __init__(self, message: str, *, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields, error_code="invalid_input")


class ValidationError(RepositoryError):
    """
    A record failed its validation rules and was not saved.

    `errors` maps each failing field to its messages, e.g.
        {"name": ["is too short (minimum is 3 characters)"]}
    so a form can show every problem at once.
    """

    def __init__(self, errors: Mapping[str, list[str]], message: str | None = None):
        self.errors = {field: list(msgs) for field, msgs in errors.items()}
        super().__init__(
            message or "Validation failed",
            fields=sorted(self.errors),
            error_code="validation_failed",
        )

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["errors"] = self.errors
        return payload


__all__ = [
    "RepositoryError",
    "NotFoundError",
    "DuplicateError",
    "InvalidFieldError",
    "InvalidInputError",
    "ValidationError",
]
