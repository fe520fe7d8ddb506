"""
PantryPal API Endpoints
All API endpoint modules
"""

from . import auth, contact, health, recipes, users

__all__ = [
    "auth",
    "contact",
    "health",
    "recipes",
    "users",
]
