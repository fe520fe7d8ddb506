"""
PantryPal Middleware
Custom middleware for security headers and request logging
"""

from .security import SecurityMiddleware
from .logging import LoggingMiddleware, log_user_activity, log_business_event

__all__ = [
    "SecurityMiddleware",
    "LoggingMiddleware",
    "log_user_activity",
    "log_business_event"
]
