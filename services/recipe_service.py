"""
PantryPal Recipe Service
Recipe CRUD, catalog search and the like/favorite toggles
"""

from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from models.recipe_models import Recipe, RecipeLike
from models.users import User, UserFavorite
from schemas.recipe_schemas import join_text
from services.query_builder import RecipeQuery

logger = structlog.get_logger()

REQUIRED_FIELDS_MESSAGE = "Title, ingredients, and steps are required"

UPDATABLE_FIELDS = ("title", "ingredients", "steps", "cuisine", "diet_type", "cooking_time", "images")


def parse_cooking_time(value: Any) -> int:
    """Non-negative whole minutes; blank means 0"""
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Cooking time must be a non-negative whole number of minutes")
    if minutes < 0 or not minutes.is_integer():
        raise ValidationError("Cooking time must be a non-negative whole number of minutes")
    return int(minutes)


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


class RecipeService:
    """Recipe operations; every method runs inside the caller's session"""

    async def _select_recipe(self, recipe_id: int, db: AsyncSession, lock: bool = False) -> Optional[Recipe]:
        stmt = (
            select(Recipe)
            .where(Recipe.id == recipe_id)
            .execution_options(populate_existing=True)
        )
        if lock:
            stmt = stmt.with_for_update(of=Recipe)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_recipe(self, recipe_id: int, db: AsyncSession, lock: bool = False) -> Recipe:
        """Fetch one recipe with its owner loaded"""
        recipe = await self._select_recipe(recipe_id, db, lock=lock)
        if recipe is None:
            raise NotFoundError("Recipe not found")
        return recipe

    async def _recipe_exists(self, recipe_id: int, db: AsyncSession) -> bool:
        result = await db.execute(select(Recipe.id).where(Recipe.id == recipe_id))
        return result.scalar_one_or_none() is not None

    async def create_recipe(
        self,
        owner_id: int,
        fields: Dict[str, Any],
        image_paths: List[str],
        db: AsyncSession,
    ) -> Recipe:
        """Create a recipe owned by owner_id with likes=0 and no likers"""
        title = _text(fields.get("title"))
        ingredients = join_text(fields.get("ingredients"), ", ") or ""
        steps = join_text(fields.get("steps"), "\n") or ""

        if not title or not ingredients or not steps:
            raise ValidationError(REQUIRED_FIELDS_MESSAGE)

        if await db.get(User, owner_id) is None:
            raise NotFoundError("User not found")

        recipe = Recipe(
            title=title,
            ingredients=ingredients,
            steps=steps,
            cuisine=_text(fields.get("cuisine")),
            diet_type=_text(fields.get("diet_type")),
            cooking_time=parse_cooking_time(fields.get("cooking_time")),
            images=list(image_paths or [])[: settings.MAX_RECIPE_IMAGES],
            likes=0,
            owner_id=owner_id,
        )
        db.add(recipe)
        await db.flush()

        logger.info("Recipe created", recipe_id=recipe.id, owner_id=owner_id, images=len(recipe.images))
        return await self.get_recipe(recipe.id, db)

    async def update_recipe(
        self,
        recipe_id: int,
        requester_id: int,
        fields: Dict[str, Any],
        db: AsyncSession,
    ) -> Recipe:
        """Merge supplied descriptive fields; only the owner may update"""
        recipe = await self.get_recipe(recipe_id, db)
        if recipe.owner_id != requester_id:
            raise ForbiddenError("You are not allowed to update this recipe")

        changes: Dict[str, Any] = {}
        for name in UPDATABLE_FIELDS:
            if name not in fields or fields[name] is None:
                continue
            value = fields[name]
            if name == "ingredients":
                value = join_text(value, ", ")
            elif name == "steps":
                value = join_text(value, "\n")
            elif name == "cooking_time":
                value = parse_cooking_time(value)
            elif name == "images":
                value = list(value)
                if len(value) > settings.MAX_RECIPE_IMAGES:
                    raise ValidationError(f"A recipe can have at most {settings.MAX_RECIPE_IMAGES} images")
                # Only a reorder or subset of files this recipe already owns
                if not set(value) <= set(recipe.images or []):
                    raise ValidationError("Images can only be reordered or removed")
            elif isinstance(value, str):
                value = value.strip()
            changes[name] = value

        for name in ("title", "ingredients", "steps"):
            if name in changes and not changes[name]:
                raise ValidationError(REQUIRED_FIELDS_MESSAGE)

        for name, value in changes.items():
            setattr(recipe, name, value)

        await db.flush()
        logger.info("Recipe updated", recipe_id=recipe_id, fields=sorted(changes))
        return await self.get_recipe(recipe_id, db)

    async def delete_recipe(self, recipe_id: int, requester_id: int, db: AsyncSession) -> Recipe:
        """Delete a recipe; likes and favorites rows go with it"""
        recipe = await self.get_recipe(recipe_id, db)
        if recipe.owner_id != requester_id:
            raise ForbiddenError("You are not allowed to delete this recipe")

        await db.delete(recipe)
        await db.flush()

        logger.info("Recipe deleted", recipe_id=recipe_id, owner_id=requester_id)
        return recipe

    async def recount_likes(self, recipe_ids: List[int], db: AsyncSession) -> None:
        """Set likes to the number of like rows, in one UPDATE"""
        if not recipe_ids:
            return
        like_count = (
            select(func.count())
            .select_from(RecipeLike)
            .where(RecipeLike.recipe_id == Recipe.id)
            .scalar_subquery()
        )
        await db.execute(
            update(Recipe)
            .where(Recipe.id.in_(recipe_ids))
            .values(likes=like_count, updated_at=Recipe.updated_at)
            .execution_options(synchronize_session=False)
        )

    async def toggle_like(self, recipe_id: int, user_id: int, db: AsyncSession) -> Tuple[bool, int]:
        """
        Add or remove user_id from the recipe's likers

        The recipe row is locked for the duration of the transaction, only the
        caller's association row is touched, and the counter is recomputed
        from the association table in one statement.

        Returns (liked, likes)
        """
        await self.get_recipe(recipe_id, db, lock=True)

        removed = await db.execute(
            delete(RecipeLike).where(
                RecipeLike.recipe_id == recipe_id,
                RecipeLike.user_id == user_id,
            )
        )
        liked = removed.rowcount == 0
        if liked:
            await db.execute(insert(RecipeLike).values(recipe_id=recipe_id, user_id=user_id))

        await self.recount_likes([recipe_id], db)

        likes = (await db.execute(select(Recipe.likes).where(Recipe.id == recipe_id))).scalar_one()
        logger.info("Recipe like toggled", recipe_id=recipe_id, user_id=user_id, liked=liked, likes=likes)
        return liked, likes

    async def toggle_favorite(self, user_id: int, recipe_id: int, db: AsyncSession) -> bool:
        """Add or remove the recipe from the user's favorites; True when added"""
        if not await self._recipe_exists(recipe_id, db):
            raise NotFoundError("Recipe not found")

        removed = await db.execute(
            delete(UserFavorite).where(
                UserFavorite.user_id == user_id,
                UserFavorite.recipe_id == recipe_id,
            )
        )
        added = removed.rowcount == 0
        if added:
            await db.execute(insert(UserFavorite).values(user_id=user_id, recipe_id=recipe_id))

        logger.info("Recipe favorite toggled", recipe_id=recipe_id, user_id=user_id, added=added)
        return added

    async def list_recipes(self, query: RecipeQuery, db: AsyncSession) -> Tuple[List[Recipe], int]:
        """One page of the catalog plus the total match count"""
        total = (
            await db.execute(select(func.count()).select_from(Recipe).where(query.where_clause))
        ).scalar_one()

        result = await db.execute(
            select(Recipe)
            .where(query.where_clause)
            .order_by(*query.order_by)
            .offset(query.offset)
            .limit(query.limit)
        )
        return list(result.scalars().all()), total

    async def list_by_owner(self, owner_id: int, db: AsyncSession) -> List[Recipe]:
        result = await db.execute(
            select(Recipe)
            .where(Recipe.owner_id == owner_id)
            .order_by(Recipe.created_at.desc(), Recipe.id.desc())
        )
        return list(result.scalars().all())

    async def list_favorites(self, user_id: int, db: AsyncSession) -> List[Recipe]:
        result = await db.execute(
            select(Recipe)
            .join(UserFavorite, UserFavorite.recipe_id == Recipe.id)
            .where(UserFavorite.user_id == user_id)
            .order_by(Recipe.created_at.desc(), Recipe.id.desc())
        )
        return list(result.scalars().all())

    async def list_liked(self, user_id: int, db: AsyncSession) -> List[Recipe]:
        result = await db.execute(
            select(Recipe)
            .join(RecipeLike, RecipeLike.recipe_id == Recipe.id)
            .where(RecipeLike.user_id == user_id)
            .order_by(Recipe.created_at.desc(), Recipe.id.desc())
        )
        return list(result.scalars().all())


# Global recipe service instance
recipe_service = RecipeService()
