"""
PantryPal Recipe Models
Database models for recipes and the users who liked them
"""

from sqlalchemy import Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from typing import List

from core.database import Base
from models.users import User, utcnow


class RecipeLike(Base):
    """Like set: one row per (recipe, user)"""
    __tablename__ = "recipe_likes"

    recipe_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Recipe(Base):
    """Recipe model for storing recipe information"""
    __tablename__ = "recipes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    ingredients: Mapped[str] = mapped_column(Text, nullable=False)
    steps: Mapped[str] = mapped_column(Text, nullable=False)
    cuisine: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    diet_type: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    cooking_time: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # in minutes

    # Upload paths, in display order
    images: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    # Always equal to the number of recipe_likes rows; recomputed on every toggle
    likes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    owner: Mapped[User] = relationship(User, lazy="selectin")
    likers: Mapped[List[RecipeLike]] = relationship(
        RecipeLike,
        lazy="selectin",
        order_by=RecipeLike.created_at,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def liked_by(self) -> List[int]:
        return [like.user_id for like in self.likers]

    def __repr__(self):
        return f"<Recipe(id={self.id}, title={self.title!r}, owner_id={self.owner_id})>"
