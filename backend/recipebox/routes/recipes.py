"""
RecipeBox Backend — Recipe Route Handlers
===========================================

What:  Read-only recipe browsing under /api/recipes.

Route Inventory:
    GET /api/recipes                    public   all recipes
    GET /api/recipes/my-profile         private  recipes owned by the caller
    GET /api/recipes/user/{user_id}     public   recipes owned by a given user
    GET /api/recipes/{recipe_id}        public   one recipe

/my-profile and /user/... are declared before /{recipe_id}; the id segment
is typed as int as well, so neither literal path can be captured by it.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from recipebox.auth import get_current_user_id
from recipebox.database import QueryExecutor, get_executor
from recipebox.exceptions import NotFoundError
from recipebox.queries import RECIPES_GET_BY_ID, RECIPES_LIST_ALL, RECIPES_LIST_BY_OWNER
from recipebox.schemas.envelope import ErrorEnvelope, SuccessEnvelope, success, success_list
from recipebox.schemas.recipe import RecipeResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recipes", tags=["Recipes"])

NO_OWN_RECIPES_MESSAGE = "You have not created any recipes yet"


@router.get(
    "",
    response_model=SuccessEnvelope,
    responses={500: {"description": "Database error", "model": ErrorEnvelope}},
    summary="List all recipes",
)
async def list_recipes(db: QueryExecutor = Depends(get_executor)) -> JSONResponse:
    rows = await db.fetch_all(RECIPES_LIST_ALL)
    return success_list([RecipeResponse.model_validate(r) for r in rows])


@router.get(
    "/my-profile",
    response_model=SuccessEnvelope,
    responses={
        401: {"description": "Not authenticated", "model": ErrorEnvelope},
        500: {"description": "Database error", "model": ErrorEnvelope},
    },
    summary="List recipes created by the logged-in user",
)
async def list_my_recipes(
    user_id: int = Depends(get_current_user_id),
    db: QueryExecutor = Depends(get_executor),
) -> JSONResponse:
    rows = await db.fetch_all(RECIPES_LIST_BY_OWNER, user_id)
    return success_list(
        [RecipeResponse.model_validate(r) for r in rows],
        message=NO_OWN_RECIPES_MESSAGE if not rows else None,
    )


@router.get(
    "/user/{user_id}",
    response_model=SuccessEnvelope,
    responses={
        400: {"description": "Malformed user id", "model": ErrorEnvelope},
        500: {"description": "Database error", "model": ErrorEnvelope},
    },
    summary="List recipes created by a user",
)
async def list_user_recipes(
    user_id: int,
    db: QueryExecutor = Depends(get_executor),
) -> JSONResponse:
    rows = await db.fetch_all(RECIPES_LIST_BY_OWNER, user_id)
    return success_list([RecipeResponse.model_validate(r) for r in rows])


@router.get(
    "/{recipe_id}",
    response_model=SuccessEnvelope,
    responses={
        400: {"description": "Malformed recipe id", "model": ErrorEnvelope},
        404: {"description": "Recipe not found", "model": ErrorEnvelope},
        500: {"description": "Database error", "model": ErrorEnvelope},
    },
    summary="Get one recipe by id",
)
async def get_recipe(
    recipe_id: int,
    db: QueryExecutor = Depends(get_executor),
) -> JSONResponse:
    recipe = await db.fetch_one(RECIPES_GET_BY_ID, recipe_id)
    if recipe is None:
        raise NotFoundError("Recipe", recipe_id)
    return success(RecipeResponse.model_validate(recipe))
