"""
PantryPal Recipe Endpoints
Catalog search, recipe CRUD with image uploads, likes and favorites
"""

from typing import List, Optional

from fastapi import APIRouter, File, Form, Query, UploadFile, status
import structlog

from core.dependencies import CurrentUser, DbSession
from core.exceptions import PantryPalError
from middleware.logging import log_business_event, log_user_activity
from schemas.common import MessageResponse
from schemas.recipe_schemas import (
    FavoriteResponse, LikeResponse, RecipeListResponse, RecipeMutationResponse,
    RecipeResponse, RecipeUpdate
)
from services.query_builder import build_recipe_query
from services.recipe_service import recipe_service
from services.storage_service import RECIPE_FOLDER, storage_service

logger = structlog.get_logger()
router = APIRouter()


@router.get("", response_model=RecipeListResponse)
async def list_recipes(
    db: DbSession,
    search: Optional[str] = Query(None),
    cuisine: Optional[str] = Query(None),
    diet_type: Optional[str] = Query(None, alias="dietType"),
    ingredients: Optional[str] = Query(None, description="Comma-separated; all must match"),
    max_time: Optional[str] = Query(None, alias="maxTime"),
    sort: Optional[str] = Query(None, description="newest | oldest | likes | time"),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
):
    """
    Search, filter and paginate the catalog

    Text filters match whole words, case-insensitively. Malformed numeric
    parameters fall back to their defaults.
    """
    query = build_recipe_query(
        search=search,
        cuisine=cuisine,
        diet_type=diet_type,
        ingredients=ingredients,
        max_time=max_time,
        sort=sort,
        page=page,
        limit=limit,
    )
    recipes, total = await recipe_service.list_recipes(query, db)

    return RecipeListResponse(
        recipes=[RecipeResponse.model_validate(recipe) for recipe in recipes],
        total=total,
        page=query.page,
        total_pages=query.total_pages(total),
    )


@router.get("/my", response_model=List[RecipeResponse])
async def my_recipes(current_user: CurrentUser, db: DbSession):
    return await recipe_service.list_by_owner(current_user.id, db)


@router.get("/favorites", response_model=List[RecipeResponse])
async def favorite_recipes(current_user: CurrentUser, db: DbSession):
    return await recipe_service.list_favorites(current_user.id, db)


@router.get("/liked", response_model=List[RecipeResponse])
async def liked_recipes(current_user: CurrentUser, db: DbSession):
    return await recipe_service.list_liked(current_user.id, db)


@router.get("/{recipe_id}", response_model=RecipeResponse)
async def get_recipe(recipe_id: int, db: DbSession):
    """Single recipe with its owner's public fields"""
    return await recipe_service.get_recipe(recipe_id, db)


@router.post("", response_model=RecipeMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_recipe(
    current_user: CurrentUser,
    db: DbSession,
    title: str = Form(""),
    ingredients: str = Form(""),
    steps: str = Form(""),
    cuisine: str = Form(""),
    diet_type: str = Form("", alias="dietType"),
    cooking_time: str = Form("", alias="cookingTime"),
    images: Optional[List[UploadFile]] = File(None),
):
    """Create a recipe from a multipart form with up to 10 images"""
    image_paths = await storage_service.save_images(images, RECIPE_FOLDER)

    try:
        recipe = await recipe_service.create_recipe(
            current_user.id,
            {
                "title": title,
                "ingredients": ingredients,
                "steps": steps,
                "cuisine": cuisine,
                "diet_type": diet_type,
                "cooking_time": cooking_time,
            },
            image_paths,
            db,
        )
    except PantryPalError:
        storage_service.delete_files(image_paths)
        raise

    log_business_event("recipe_created", {"recipe_id": recipe.id, "images": len(image_paths)})
    return RecipeMutationResponse(
        message="Recipe created successfully 🎉",
        recipe=RecipeResponse.model_validate(recipe),
    )


@router.put("/{recipe_id}", response_model=RecipeMutationResponse)
async def update_recipe(recipe_id: int, recipe_data: RecipeUpdate, current_user: CurrentUser, db: DbSession):
    """
    Owner-only partial update (JSON body)

    `images` may only reorder or drop the recipe's current images; dropped
    files are removed from storage once the change is committed.
    """
    previous_images = list((await recipe_service.get_recipe(recipe_id, db)).images or [])
    recipe = await recipe_service.update_recipe(
        recipe_id, current_user.id, recipe_data.model_dump(exclude_unset=True), db
    )

    dropped = [path for path in previous_images if path not in (recipe.images or [])]
    if dropped:
        await db.commit()
        storage_service.delete_files(dropped)
    log_user_activity("recipe_updated", {"recipe_id": recipe_id})
    return RecipeMutationResponse(
        message="Recipe updated successfully",
        recipe=RecipeResponse.model_validate(recipe),
    )


@router.delete("/{recipe_id}", response_model=MessageResponse)
async def delete_recipe(recipe_id: int, current_user: CurrentUser, db: DbSession):
    """Owner-only delete; likes and favorites go with it"""
    recipe = await recipe_service.delete_recipe(recipe_id, current_user.id, db)
    # files go only once the rows are gone for good
    await db.commit()
    storage_service.delete_files(recipe.images or [])

    log_business_event("recipe_deleted", {"recipe_id": recipe_id})
    return MessageResponse(message="Recipe deleted successfully")


@router.post("/{recipe_id}/like", response_model=LikeResponse)
async def toggle_like(recipe_id: int, current_user: CurrentUser, db: DbSession):
    liked, likes = await recipe_service.toggle_like(recipe_id, current_user.id, db)
    return LikeResponse(message="Recipe liked" if liked else "Like removed", liked=liked, likes=likes)


@router.post("/{recipe_id}/favorite", response_model=FavoriteResponse)
async def toggle_favorite(recipe_id: int, current_user: CurrentUser, db: DbSession):
    added = await recipe_service.toggle_favorite(current_user.id, recipe_id, db)
    logger.debug("Favorite toggled", recipe_id=recipe_id, added=added)
    return FavoriteResponse(
        message="Recipe added to favorites" if added else "Recipe removed from favorites",
        favorited=added,
    )
