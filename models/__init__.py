"""
PantryPal Database Models
Central import module for all database models
"""

from .users import User, UserFavorite
from .recipe_models import Recipe, RecipeLike

__all__ = [
    "User",
    "UserFavorite",
    "Recipe",
    "RecipeLike",
]
