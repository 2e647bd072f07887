"""Error taxonomy shared by the storage, extraction and invoice layers.

Each error carries the HTTP status the API layer answers with, so business code
raises domain errors and never builds HTTP responses itself.
"""

from collections.abc import Iterable
from typing import Any

# Location prefixes added by FastAPI request validation
_REQUEST_LOCATIONS = {"body", "query", "path", "header", "cookie"}


def describe_errors(errors: Iterable[dict[str, Any]]) -> list[str]:
    """Turn pydantic error dicts into one readable line per violated field.

    Example: ``vendor.name: String should have at most 200 characters``
    """
    lines = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in _REQUEST_LOCATIONS:
            loc = loc[1:]
        field = ".".join(loc)
        message = error.get("msg", "Invalid value")
        lines.append(f"{field}: {message}" if field else message)
    return lines


class AppError(Exception):
    """Base class for expected application errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Malformed input shape or range (client's fault).

    Attributes:
        details: One human-readable entry per violated field constraint
    """

    status_code = 400

    def __init__(self, message: str = "Validation error", details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class StorageError(AppError):
    """File storage backend rejected or failed an operation."""

    status_code = 500


class ExtractionError(AppError):
    """AI provider is unconfigured or the model call failed."""

    status_code = 500


class AuthError(AppError):
    """Missing or rejected credentials."""

    status_code = 401


class DatabaseUnavailableError(AppError):
    status_code = 503
