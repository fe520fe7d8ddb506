"""
PantryPal Authentication Schemas
Pydantic models for authentication, profile and contact requests and responses
"""

from datetime import datetime
from typing import List, Optional
from pydantic import EmailStr, Field, field_validator

from core.config import settings
from schemas.common import ApiModel, RequestModel
from schemas.recipe_schemas import RecipeResponse


def check_password_length(v: str) -> str:
    if len(v) < settings.PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long")
    return v


class UserCreate(RequestModel):
    """Schema for user registration"""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return check_password_length(v)


class UserLogin(RequestModel):
    """Schema for user login"""
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class AuthResponse(ApiModel):
    """Schema for register/login response"""
    id: int
    name: str
    email: str
    profile_image: Optional[str] = None
    token: str


class PasswordResetRequest(RequestModel):
    """Schema for password reset request"""
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class PasswordReset(RequestModel):
    """Schema for password reset; the token travels in the path"""
    password: str = Field(..., max_length=128)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return check_password_length(v)


class User(ApiModel):
    """Schema for public user response"""
    id: int
    name: str
    email: str
    profile_image: Optional[str] = None
    created_at: datetime


class ProfileStats(ApiModel):
    recipes_created: int
    total_likes: int
    total_favorites: int


class ProfileResponse(User):
    """Public fields plus counters"""
    stats: ProfileStats


class ProfileUpdateResponse(ApiModel):
    message: str
    user: User


class UserStats(ApiModel):
    """Schema for /me/stats"""
    total_recipes: int
    total_likes: int
    total_favorites: int


class UserRecipesResponse(ApiModel):
    """Schema for a user's public recipe listing"""
    username: str
    total_recipes: int
    recipes: List[RecipeResponse]


class ContactMessage(RequestModel):
    """Contact form; blank fields are rejected by the contact handler"""
    name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    message: Optional[str] = Field(None, max_length=5000)

    @field_validator('name', 'email')
    @classmethod
    def single_line(cls, v: Optional[str]) -> Optional[str]:
        # both end up in mail headers
        if v is not None and ("\r" in v or "\n" in v):
            raise ValueError("must be a single line")
        return v
