"""
PantryPal Core Dependencies
FastAPI dependencies for authentication and request-scoped resources
"""

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, Annotated
import structlog

from core.database import get_db
from core.exceptions import UnauthorizedError
from middleware.logging import user_id_var
from models.users import User
from services.auth_service import auth_service
from utils.request_utils import get_client_ip

logger = structlog.get_logger()

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Get current authenticated user from the bearer token

    Raises:
        UnauthorizedError: If the token is missing, invalid or names no user
    """
    if not credentials:
        raise UnauthorizedError("Not authorized, no token")

    try:
        user = await auth_service.get_current_user(credentials.credentials, db)
    except UnauthorizedError as e:
        logger.warning("Authentication failed", ip=get_client_ip(request), error=e.message)
        raise UnauthorizedError("Not authorized, token failed")

    user_id_var.set(str(user.id))
    return user


# Type aliases for common dependencies
CurrentUser = Annotated[User, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
