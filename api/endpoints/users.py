"""
PantryPal User Management Endpoints
Profiles, per-user recipe listings and account management
"""

from typing import List, Optional

from fastapi import APIRouter, File, Form, UploadFile

from core.dependencies import CurrentUser, DbSession
from core.exceptions import PantryPalError
from middleware.logging import log_business_event, log_user_activity
from schemas.auth_schemas import (
    ProfileResponse, ProfileUpdateResponse, User, UserRecipesResponse, UserStats
)
from schemas.common import MessageResponse
from schemas.recipe_schemas import RecipeResponse
from services.recipe_service import recipe_service
from services.storage_service import PROFILE_FOLDER, storage_service
from services.user_service import user_service

router = APIRouter()


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(current_user: CurrentUser, db: DbSession):
    """Current user's public fields plus stats"""
    return await user_service.get_profile(current_user.id, db)


@router.put("/profile", response_model=ProfileUpdateResponse)
async def update_profile(
    current_user: CurrentUser,
    db: DbSession,
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
):
    """
    Update name, email and/or profile image

    Multipart form; blank fields keep their current value.
    """
    previous_image = current_user.profile_image
    image_path = await storage_service.save_optional_image(profile_image, PROFILE_FOLDER)

    try:
        user = await user_service.update_profile(
            current_user.id, {"name": name, "email": email}, db, profile_image=image_path
        )
    except PantryPalError:
        if image_path:
            storage_service.delete_files([image_path])
        raise

    if image_path and previous_image:
        await db.commit()
        storage_service.delete_files([previous_image])

    log_user_activity("profile_updated", {"image_changed": bool(image_path)})
    return ProfileUpdateResponse(
        message="Profile updated successfully",
        user=User.model_validate(user),
    )


@router.get("/favorites", response_model=List[RecipeResponse])
async def get_favorites(current_user: CurrentUser, db: DbSession):
    """Recipes the current user has favorited"""
    return await recipe_service.list_favorites(current_user.id, db)


@router.get("/my-recipes", response_model=List[RecipeResponse])
async def get_my_recipes(current_user: CurrentUser, db: DbSession):
    """Recipes owned by the current user"""
    return await recipe_service.list_by_owner(current_user.id, db)


@router.get("/me/stats", response_model=UserStats)
async def get_my_stats(current_user: CurrentUser, db: DbSession):
    return await user_service.get_stats(current_user.id, db)


@router.get("/{user_id}/recipes", response_model=UserRecipesResponse)
async def get_user_recipes(user_id: int, db: DbSession):
    """Public listing of one user's recipes"""
    return await user_service.list_user_recipes(user_id, db)


@router.delete("/delete", response_model=MessageResponse)
async def delete_account(current_user: CurrentUser, db: DbSession):
    """Delete the account together with every recipe it owns"""
    user_id = current_user.id
    image_paths = await user_service.delete_account(user_id, db)
    await db.commit()
    storage_service.delete_files(image_paths)

    log_business_event("account_deleted", {"user_id": user_id, "images_removed": len(image_paths)})
    return MessageResponse(message="Your account and all recipes have been deleted.")
