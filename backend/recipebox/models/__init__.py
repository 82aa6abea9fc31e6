"""
RecipeBox Backend — Table Definitions
=======================================

Importing this package registers every table on Base.metadata so that
Database.create_tables() and the test fixtures see the full schema.
"""

from recipebox.models.recipe import Favorite, Rating, Recipe
from recipebox.models.user import User

__all__ = ["User", "Recipe", "Favorite", "Rating"]
