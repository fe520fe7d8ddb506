"""
PantryPal User Service
Profiles, per-user counters, profile updates and account deletion
"""

from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError, NotFoundError
from models.recipe_models import Recipe, RecipeLike
from models.users import User, UserFavorite
from services.recipe_service import recipe_service

logger = structlog.get_logger()


class UserService:
    """Account-level operations; authentication lives in auth_service"""

    async def get_user(self, user_id: int, db: AsyncSession) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def get_stats(self, user_id: int, db: AsyncSession) -> Dict[str, int]:
        """
        Counters over the user's own recipes

        totalFavorites counts favorite rows from any user that point at one of
        this user's recipes.
        """
        recipe_counts = await db.execute(
            select(func.count(Recipe.id), func.coalesce(func.sum(Recipe.likes), 0))
            .where(Recipe.owner_id == user_id)
        )
        total_recipes, total_likes = recipe_counts.one()

        total_favorites = (
            await db.execute(
                select(func.count())
                .select_from(UserFavorite)
                .join(Recipe, Recipe.id == UserFavorite.recipe_id)
                .where(Recipe.owner_id == user_id)
            )
        ).scalar_one()

        return {
            "total_recipes": int(total_recipes),
            "total_likes": int(total_likes),
            "total_favorites": int(total_favorites),
        }

    async def get_profile(self, user_id: int, db: AsyncSession) -> Dict[str, Any]:
        """Public fields plus stats"""
        user = await self.get_user(user_id, db)
        stats = await self.get_stats(user_id, db)
        return {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "profile_image": user.profile_image,
            "created_at": user.created_at,
            "stats": {
                "recipes_created": stats["total_recipes"],
                "total_likes": stats["total_likes"],
                "total_favorites": stats["total_favorites"],
            },
        }

    async def update_profile(
        self,
        user_id: int,
        fields: Dict[str, Any],
        db: AsyncSession,
        profile_image: Optional[str] = None,
    ) -> User:
        """Partial update; blank values keep what is stored"""
        user = await self.get_user(user_id, db)

        name = (fields.get("name") or "").strip()
        email = (fields.get("email") or "").strip().lower()

        if email and email != user.email:
            taken = await db.execute(select(User.id).where(User.email == email, User.id != user_id))
            if taken.scalar_one_or_none() is not None:
                raise ConflictError("Email is already in use")
            user.email = email

        if name:
            user.name = name
        if profile_image:
            user.profile_image = profile_image

        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError("Email is already in use")

        logger.info("Profile updated", user_id=user_id)
        return user

    async def delete_account(self, user_id: int, db: AsyncSession) -> List[str]:
        """
        Delete the user's recipes, then the user

        Returns the image paths that belonged to the removed data so the caller
        can clean up storage after commit.
        """
        user = await self.get_user(user_id, db)

        owned = await recipe_service.list_by_owner(user_id, db)
        image_paths = [path for recipe in owned for path in (recipe.images or [])]
        if user.profile_image:
            image_paths.append(user.profile_image)

        liked_elsewhere = await db.execute(
            select(RecipeLike.recipe_id)
            .join(Recipe, Recipe.id == RecipeLike.recipe_id)
            .where(RecipeLike.user_id == user_id, Recipe.owner_id != user_id)
        )
        liked_ids = list(liked_elsewhere.scalars().all())

        await db.execute(
            delete(Recipe)
            .where(Recipe.owner_id == user_id)
            .execution_options(synchronize_session=False)
        )
        for recipe in owned:
            db.expunge(recipe)

        await db.delete(user)
        await db.flush()
        # like rows went with the user; bring the counters back in line
        await recipe_service.recount_likes(liked_ids, db)

        logger.info("Account deleted", user_id=user_id, recipes_removed=len(owned))
        return image_paths

    async def list_user_recipes(self, user_id: int, db: AsyncSession) -> Dict[str, Any]:
        """A user's public recipe listing"""
        user = await self.get_user(user_id, db)
        recipes = await recipe_service.list_by_owner(user_id, db)
        return {
            "username": user.name,
            "total_recipes": len(recipes),
            "recipes": recipes,
        }


# Global user service instance
user_service = UserService()
