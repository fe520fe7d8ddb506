"""
PantryPal Core Module
Central configuration and utilities
"""

from .config import settings
from .database import Base, get_db, get_db_session, init_db, close_db

__all__ = [
    "settings",
    "Base",
    "get_db",
    "get_db_session",
    "init_db",
    "close_db",
]
