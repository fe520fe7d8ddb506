"""
PantryPal Recipe Schemas
Pydantic models for recipe requests and responses
"""

from datetime import datetime
from typing import List, Optional, Union
from pydantic import Field, field_validator

from schemas.common import ApiModel, RequestModel


def join_text(value: Union[str, List[str], None], separator: str) -> Optional[str]:
    """Free text passes through; a list of lines is joined into one text block"""
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip()
    return separator.join(item.strip() for item in value if item and item.strip())


class OwnerSummary(ApiModel):
    """Public owner fields embedded in a recipe"""
    id: int
    name: str
    email: str


class RecipeResponse(ApiModel):
    """Schema for recipe response"""
    id: int
    title: str
    ingredients: str
    steps: str
    cuisine: str = ""
    diet_type: str = ""
    cooking_time: int = 0
    images: List[str] = []
    likes: int = 0
    liked_by: List[int] = []
    owner: Optional[OwnerSummary] = None
    created_at: datetime
    updated_at: datetime


class RecipeUpdate(RequestModel):
    """Schema for recipe updates; only supplied fields are merged"""
    title: Optional[str] = Field(None, max_length=255)
    ingredients: Optional[Union[str, List[str]]] = None
    steps: Optional[Union[str, List[str]]] = None
    cuisine: Optional[str] = Field(None, max_length=100)
    diet_type: Optional[str] = Field(None, max_length=100)
    # Range checks run in the service, after the ownership check
    cooking_time: Optional[Union[int, str]] = None
    images: Optional[List[str]] = None

    @field_validator("ingredients")
    @classmethod
    def join_ingredients(cls, v):
        return join_text(v, ", ")

    @field_validator("steps")
    @classmethod
    def join_steps(cls, v):
        return join_text(v, "\n")


class RecipeListResponse(ApiModel):
    """Schema for a page of search results"""
    recipes: List[RecipeResponse]
    total: int
    page: int
    total_pages: int


class RecipeMutationResponse(ApiModel):
    """Schema for create/update acknowledgements"""
    message: str
    recipe: RecipeResponse


class LikeResponse(ApiModel):
    """Schema for like toggle result"""
    message: str
    liked: bool
    likes: int


class FavoriteResponse(ApiModel):
    """Schema for favorite toggle result"""
    message: str
    favorited: bool
