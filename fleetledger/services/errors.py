"""Billing error taxonomy shared by ledgers, calculators and the HTTP layer."""

from typing import Any, Dict

from fastapi import status


class BillingError(Exception):
    """Base billing error."""

    def __init__(self, message: str, code: str, http_status: int = 400):
        """Initialize error."""
        self.message = message
        self.code = code
        self.http_status = http_status
        super().__init__(message)


class NotFoundError(BillingError):
    """Referenced entity does not exist."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, "not_found", status.HTTP_404_NOT_FOUND)


class InvalidInputError(BillingError):
    """Malformed or inconsistent input."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, "invalid_input", status.HTTP_400_BAD_REQUEST)


class ConflictError(BillingError):
    """Request collides with existing state (paid lock, overlap, duplicate)."""

    def __init__(self, message: str = "Conflict"):
        super().__init__(message, "conflict", status.HTTP_409_CONFLICT)


class InvalidStateError(BillingError):
    """Operation not allowed in the entity's current state."""

    def __init__(self, message: str = "Invalid state", http_status: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(message, "invalid_state", http_status)


def error_response(error: BillingError) -> Dict[str, Any]:
    """Create a standardized error response."""
    return {
        "error": {
            "code": error.code,
            "message": error.message,
        }
    }


__all__ = [
    "BillingError",
    "NotFoundError",
    "InvalidInputError",
    "ConflictError",
    "InvalidStateError",
    "error_response",
]
