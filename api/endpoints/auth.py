"""
PantryPal Authentication Endpoints
Registration, login and password reset, mounted under /api/users
"""

from fastapi import APIRouter, Request, status
import structlog

from core.dependencies import DbSession
from middleware.logging import log_user_activity
from schemas.auth_schemas import (
    AuthResponse, PasswordReset, PasswordResetRequest, UserCreate, UserLogin
)
from schemas.common import MessageResponse
from services.auth_service import auth_service
from utils.rate_limiter import rate_limiter
from utils.request_utils import get_client_ip

logger = structlog.get_logger()
router = APIRouter()

RESET_LINK_SENT = "Reset link sent to your email"


def _auth_response(user, token: str) -> AuthResponse:
    return AuthResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        profile_image=user.profile_image,
        token=token,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, request: Request, db: DbSession):
    """
    Register a new user account

    Returns the public user fields and a session token.
    """
    ip_address = get_client_ip(request)
    await rate_limiter.enforce(
        f"register:{ip_address}", max_attempts=5, window_minutes=60,
        message="Too many registration attempts. Please try again later."
    )

    user, token = await auth_service.register_user(user_data, db)
    log_user_activity("register", {"user_id": user.id})
    return _auth_response(user, token)


@router.post("/login", response_model=AuthResponse)
async def login(login_data: UserLogin, request: Request, db: DbSession):
    """Authenticate with email and password"""
    ip_address = get_client_ip(request)
    await rate_limiter.enforce(
        f"login:{ip_address}:{login_data.email}", max_attempts=5, window_minutes=15,
        message="Too many login attempts. Please try again later."
    )

    user, token = await auth_service.authenticate_user(login_data, db)
    log_user_activity("login", {"user_id": user.id})
    return _auth_response(user, token)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(reset_request: PasswordResetRequest, request: Request, db: DbSession):
    """Email a password reset link"""
    await rate_limiter.enforce(
        f"forgot-password:{get_client_ip(request)}", max_attempts=5, window_minutes=60,
        message="Too many password reset requests. Please try again later."
    )

    if not await auth_service.request_password_reset(reset_request.email, db):
        # Same answer as a real send so account existence is not disclosed
        logger.info("Password reset answered without sending", path=request.url.path)
    return MessageResponse(message=RESET_LINK_SENT)


@router.put("/reset-password/{token}", response_model=MessageResponse)
async def reset_password(token: str, reset_data: PasswordReset, request: Request, db: DbSession):
    """Set a new password using the emailed token"""
    await rate_limiter.enforce(
        f"reset-password:{get_client_ip(request)}", max_attempts=10, window_minutes=60,
        message="Too many password reset attempts. Please try again later."
    )

    user = await auth_service.reset_password(token, reset_data.password, db)
    log_user_activity("password_reset", {"user_id": user.id})

    return MessageResponse(message="Password reset successfully")
