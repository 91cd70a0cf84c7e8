"""Error types raised by the tracker core.

Messages are safe to show: they never carry record contents, store paths or
collaborator error text. Callers translate them with ``user_message``.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class TrackerError(Exception):
    """Base class for every domain error in the tracker."""

    code = "tracker_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = str(self.args[0])


class InvalidIdentifier(TrackerError):
    """Invalid application ID."""

    code = "invalid_identifier"


class InvalidPath(TrackerError):
    """Invalid storage path."""

    code = "invalid_path"


class RateLimited(TrackerError):
    """Too many requests. Please wait a moment and try again."""

    code = "rate_limited"

    def __init__(self, operation: str, message: str = "") -> None:
        super().__init__(message)
        self.operation = operation


class NotFound(TrackerError):
    """Application not found."""

    code = "not_found"


class StoreUnavailable(TrackerError):
    """Storage is unavailable. Please try again later."""

    code = "store_unavailable"


class ValidationFailed(TrackerError):
    """Application data is invalid."""

    code = "validation_failed"

    def __init__(self, errors: list[FieldError]) -> None:
        super().__init__()
        self.errors = list(errors)

    def __str__(self) -> str:
        fields = ", ".join(e.field for e in self.errors)
        return f"{self.message} ({fields})" if fields else self.message


_GENERIC_MESSAGE = "An error occurred. Please try again."


def user_message(exc: BaseException) -> str:
    """Map any exception to text that can be shown to an end user."""
    if isinstance(exc, ValidationFailed):
        return "; ".join(e.message for e in exc.errors) or exc.message
    if isinstance(exc, TrackerError):
        return exc.message
    text = str(exc).lower()
    if "permission" in text or "unauthorized" in text:
        return "You do not have permission to perform this action."
    if "network" in text or "connection" in text:
        return "Network error. Please check your connection and try again."
    if "quota" in text or "limit" in text:
        return "Service limit reached. Please try again later."
    return _GENERIC_MESSAGE
