"""
PantryPal Error Taxonomy
Service-level exceptions translated to HTTP responses by the app's exception handlers
"""

from typing import Optional


class PantryPalError(Exception):
    """Base class for errors that map to a single HTTP status"""

    status_code: int = 500
    error: str = "internal_error"
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PantryPalError):
    status_code = 400
    error = "validation_error"
    default_message = "Invalid request"


class UnauthorizedError(PantryPalError):
    status_code = 401
    error = "unauthorized"
    default_message = "Not authorized"


class ForbiddenError(PantryPalError):
    status_code = 403
    error = "forbidden"
    default_message = "You are not allowed to perform this action"


class NotFoundError(PantryPalError):
    status_code = 404
    error = "not_found"
    default_message = "Resource not found"


class ConflictError(PantryPalError):
    status_code = 409
    error = "conflict"
    default_message = "Resource already exists"


class RateLimitError(PantryPalError):
    status_code = 429
    error = "rate_limited"
    default_message = "Too many requests. Please try again later."


class InternalError(PantryPalError):
    """Expected failure of an external collaborator (mail, storage)"""


__all__ = [
    "PantryPalError",
    "ValidationError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "InternalError",
]
