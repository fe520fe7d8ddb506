"""
PantryPal API Routes
Main router configuration for all API endpoints
"""

from fastapi import APIRouter
import structlog

from api.endpoints import auth, contact, health, recipes, users

logger = structlog.get_logger()

# Create main API router
api_router = APIRouter()

api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"]
)

# Account endpoints share the /users prefix with profile management
api_router.include_router(
    auth.router,
    prefix="/users",
    tags=["authentication"]
)

api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"]
)

api_router.include_router(
    recipes.router,
    prefix="/recipes",
    tags=["recipes"]
)

api_router.include_router(
    contact.router,
    prefix="/contact",
    tags=["contact"]
)

logger.debug("API routes configured")
