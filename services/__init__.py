"""
PantryPal Services Module
Core business logic and external collaborators
"""

from .auth_service import AuthService, auth_service
from .email_service import EmailService, email_service
from .recipe_service import RecipeService, recipe_service
from .storage_service import StorageService, storage_service
from .user_service import UserService, user_service

__all__ = [
    "AuthService",
    "auth_service",
    "EmailService",
    "email_service",
    "RecipeService",
    "recipe_service",
    "StorageService",
    "storage_service",
    "UserService",
    "user_service",
]
