"""Custom application exceptions."""

from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with message, status code and optional payload."""
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class NotFoundException(AppException):
    """Referenced queue, doctor, patient or entry does not exist."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict", details: dict[str, Any] | None = None):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409, details=details)


class InvalidTransitionException(BadRequestException):
    """Attempted queue entry status change is not allowed."""

    def __init__(self, current_status: str, new_status: str):
        """Initialize with the rejected status pair."""
        super().__init__(f"Cannot move queue item from '{current_status}' to '{new_status}'")
        self.current_status = current_status
        self.new_status = new_status
        self.details = {"current_status": current_status, "requested_status": new_status}


class DoctorUnavailableException(ConflictException):
    """The queue's doctor is marked unavailable."""

    def __init__(self, message: str = "Doctor is currently unavailable"):
        """Initialize with 409 status code."""
        super().__init__(message)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)
