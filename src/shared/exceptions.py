"""Custom exceptions for the finance tracker application."""

from typing import Dict, Optional


class FinanceTrackerException(Exception):
    """Base exception for all finance tracker errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(FinanceTrackerException, ValueError):
    """
    Raised when input validation fails.

    Subclasses ValueError so that pydantic field validators collect it
    alongside their own errors.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[Dict[str, str]] = None
    ):
        super().__init__(message, status_code=400)
        self.field = field
        self.errors = errors or ({field: message} if field else {})


class AuthorizationError(FinanceTrackerException):
    """Raised when a user touches a record they do not own."""

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, status_code=403)


class NotFoundError(FinanceTrackerException):
    """Raised when a resource is not found."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class StorageError(FinanceTrackerException):
    """Raised when object storage operations fail."""

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message, status_code=500)


class DatabaseError(FinanceTrackerException):
    """Raised when the transaction repository fails."""

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message, status_code=500)
