"""
PantryPal Authentication Service
Registration, login, JWT issuance and the stateless password-reset flow
"""

import hashlib
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from core.config import get_settings
from core.exceptions import (
    ConflictError, InternalError, NotFoundError, UnauthorizedError, ValidationError
)
from models.users import User
from schemas.auth_schemas import UserCreate, UserLogin
from services.email_service import email_service

settings = get_settings()
logger = structlog.get_logger()

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_RESET_TOKEN = "Invalid or expired reset token"


def password_fingerprint(password_hash: str) -> str:
    """Short digest of the stored hash; changes whenever the password does"""
    return hashlib.sha256(password_hash.encode()).hexdigest()[:16]


class AuthService:
    def __init__(self):
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=settings.BCRYPT_ROUNDS,
        )
        self.email_service = email_service

        # JWT settings
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.access_token_expire_days = settings.JWT_ACCESS_TOKEN_EXPIRE_DAYS
        self.reset_token_expire_minutes = settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        return self.pwd_context.verify(plain_password, hashed_password)

    def get_password_hash(self, password: str) -> str:
        """Hash a password"""
        return self.pwd_context.hash(password)

    def _encode(self, data: Dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
        now = datetime.now(timezone.utc)
        to_encode = data.copy()
        to_encode.update({
            "exp": now + expires_delta,
            "iat": now,
            "type": token_type,
        })
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def create_access_token(
        self,
        data: Dict[str, Any],
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """Create JWT access token"""
        return self._encode(
            data, "access", expires_delta or timedelta(days=self.access_token_expire_days)
        )

    def create_password_reset_token(
        self,
        user: User,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """Create a signed reset token bound to the user's current password hash"""
        return self._encode(
            {"sub": str(user.id), "pfp": password_fingerprint(user.password_hash)},
            "reset",
            expires_delta or timedelta(minutes=self.reset_token_expire_minutes),
        )

    def verify_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """Verify and decode JWT token"""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])

            if payload.get("type") != token_type:
                raise JWTError("Invalid token type")

            return payload

        except JWTError as e:
            raise UnauthorizedError(f"Invalid token: {str(e)}")

    def issue_token(self, user: User) -> str:
        return self.create_access_token(data={"sub": str(user.id), "email": user.email})

    async def get_user_by_email(self, email: str, db: AsyncSession) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def register_user(self, user_data: UserCreate, db: AsyncSession) -> Tuple[User, str]:
        """Create an account and issue its first session token"""
        email = user_data.email.lower()

        if await self.get_user_by_email(email, db):
            logger.info("Registration rejected", reason="user_exists", email=email)
            raise ConflictError("User already exists")

        user = User(
            name=user_data.name.strip(),
            email=email,
            password_hash=self.get_password_hash(user_data.password),
        )
        db.add(user)

        try:
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            raise ConflictError("User already exists")

        logger.info("User registered", user_id=user.id)
        return user, self.issue_token(user)

    async def authenticate_user(self, login_data: UserLogin, db: AsyncSession) -> Tuple[User, str]:
        """Check credentials and issue a session token"""
        user = await self.get_user_by_email(login_data.email, db)

        if not user or not self.verify_password(login_data.password, user.password_hash):
            logger.info("Login failed", reason="invalid_credentials", email=login_data.email.lower())
            raise UnauthorizedError(INVALID_CREDENTIALS)

        logger.info("User logged in", user_id=user.id)
        return user, self.issue_token(user)

    async def get_current_user(self, token: str, db: AsyncSession) -> User:
        """Get current user from JWT token"""
        payload = self.verify_token(token)
        user_id = payload.get("sub")

        if not user_id or not str(user_id).isdigit():
            raise UnauthorizedError("Invalid token payload")

        user = await db.get(User, int(user_id))
        if not user:
            raise UnauthorizedError("User not found")

        return user

    async def request_password_reset(self, email: str, db: AsyncSession) -> bool:
        """
        Mint a reset token and email the reset link

        Returns True when an email went out, False when the address is unknown
        and PASSWORD_RESET_MASK_UNKNOWN_EMAIL hides that fact.
        """
        user = await self.get_user_by_email(email, db)
        if not user:
            if settings.PASSWORD_RESET_MASK_UNKNOWN_EMAIL:
                logger.info("Password reset requested for unknown email", email=email.lower())
                return False
            raise NotFoundError("User not found")

        reset_token = self.create_password_reset_token(user)
        reset_url = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password/{reset_token}"

        if not await self.email_service.send_password_reset_email(user, reset_url):
            raise InternalError("Email could not be sent")

        logger.info("Password reset email sent", user_id=user.id)
        return True

    async def reset_password(self, token: str, new_password: str, db: AsyncSession) -> User:
        """Consume a reset token; a token stops working once the password changes"""
        try:
            payload = self.verify_token(token, "reset")
        except UnauthorizedError:
            raise UnauthorizedError(INVALID_RESET_TOKEN)

        user_id = payload.get("sub")
        user = await db.get(User, int(user_id)) if str(user_id or "").isdigit() else None
        if not user:
            raise UnauthorizedError(INVALID_RESET_TOKEN)

        if payload.get("pfp") != password_fingerprint(user.password_hash):
            raise UnauthorizedError("Reset token has already been used")

        if len(new_password or "") < settings.PASSWORD_MIN_LENGTH:
            raise ValidationError(
                f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long"
            )

        user.password_hash = self.get_password_hash(new_password)
        await db.flush()

        logger.info("Password reset completed", user_id=user.id)
        return user


# Global auth service instance
auth_service = AuthService()
