"""
Error types for the Sprout health data engine.

Every error carries a machine-readable code and a message that can be shown
to a parent as-is.
"""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for all engine errors."""

    code: str = "unknown"
    default_message: str = "Something went wrong. Please try again."

    def __init__(self, detail: str | None = None, user_message: str | None = None):
        self.detail = detail or self.default_message
        self.user_message = user_message or self.default_message
        super().__init__(self.detail)


class ValidationError(TrackerError):
    """Client-detectable bad input (missing field, implausible date, bad number)."""

    code = "validation-error"
    default_message = "Some of the information provided is not valid."

    def __init__(self, detail: str | None = None, user_message: str | None = None):
        # The detail is already phrased for the parent
        super().__init__(detail, user_message or detail)


class PermissionDenied(TrackerError):
    code = "permission-denied"
    default_message = "Permission denied. Please ensure you are logged in as a parent and try again."


class Unauthenticated(TrackerError):
    code = "unauthenticated"
    default_message = "Authentication required. Please log in again."


class InvalidArgument(TrackerError):
    """The remote store rejected otherwise well-formed input."""

    code = "invalid-argument"
    default_message = "Invalid data provided. Please check all fields and try again."


class NotFound(TrackerError):
    code = "not-found"
    default_message = "That child profile no longer exists."


class Unknown(TrackerError):
    code = "unknown"
    default_message = "Something went wrong. Please try again."


ERRORS_BY_CODE: dict[str, type[TrackerError]] = {
    cls.code: cls
    for cls in (ValidationError, PermissionDenied, Unauthenticated, InvalidArgument, NotFound, Unknown)
}
