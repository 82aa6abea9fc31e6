"""
RecipeBox Backend — Recipe, Favorite and Rating Schemas
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class RecipeResponse(BaseModel):
    recipe_id: int
    user_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    cuisine: Optional[str] = None
    servings: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FavoriteResponse(BaseModel):
    recipe_id: int
    title: Optional[str] = None
    cuisine: Optional[str] = None
    created_at: Optional[datetime] = None


class RatingResponse(BaseModel):
    rating_id: int
    recipe_id: int
    title: Optional[str] = None
    rating: int
    review: Optional[str] = None
    created_at: Optional[datetime] = None
