"""
RecipeBox Backend — User Route Handlers
=========================================

What:  Registration, login/logout, profile management, favorites and ratings
       under /api/users.
How:   Each handler validates its input, runs one Query Catalog statement
       through the request's QueryExecutor and renders the envelope.
       Failures are raised as RecipeBoxError subclasses and rendered by the
       handlers registered in main.py.

Route Inventory:
    Public:   POST /register, POST /login, GET /
    Private:  POST /logout, GET|PUT|DELETE /profile, PUT /password,
              GET /favorites, POST|DELETE /favorites/{recipe_id}, GET /ratings

PUT /password is the one handler with two statements: it reads the stored
hash, verifies it, then writes the new one.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from recipebox.auth import end_session, get_current_user_id, start_session
from recipebox.config import Settings, get_settings
from recipebox.database import QueryExecutor, get_executor
from recipebox.exceptions import AuthError, ConflictError, NotFoundError, ValidationError
from recipebox.queries import (
    FAVORITES_CREATE,
    FAVORITES_DELETE,
    FAVORITES_LIST_BY_USER,
    PROFILE_FIELDS,
    RATINGS_LIST_BY_USER,
    USERS_CREATE,
    USERS_DELETE,
    USERS_GET_BY_ID,
    USERS_GET_CREDENTIALS_BY_EMAIL,
    USERS_GET_PASSWORD_BY_ID,
    USERS_LIST_ALL,
    USERS_UPDATE_PASSWORD,
    build_profile_update,
)
from recipebox.schemas.envelope import ErrorEnvelope, SuccessEnvelope, success, success_list
from recipebox.schemas.recipe import FavoriteResponse, RatingResponse
from recipebox.schemas.user import (
    LoginRequest,
    PasswordUpdateRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserResponse,
)
from recipebox.security import hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])

_ERRORS = {
    400: {"description": "Missing or malformed input", "model": ErrorEnvelope},
    401: {"description": "Not authenticated", "model": ErrorEnvelope},
    404: {"description": "Not found", "model": ErrorEnvelope},
    409: {"description": "Conflict", "model": ErrorEnvelope},
    500: {"description": "Database error", "model": ErrorEnvelope},
}


def _errors(*codes: int) -> dict:
    return {code: _ERRORS[code] for code in codes}


# ══════════════════════════════════════════════════════════════════════════
# Public Routes
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "/register",
    status_code=201,
    response_model=SuccessEnvelope,
    responses=_errors(400, 409, 500),
    summary="Register a new user",
)
async def register(
    body: RegisterRequest,
    db: QueryExecutor = Depends(get_executor),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    hashed = await hash_password(body.password, rounds=settings.bcrypt_rounds)
    try:
        user = await db.fetch_one(
            USERS_CREATE,
            body.username,
            body.email,
            hashed,
            body.first_name,
            body.last_name,
        )
    except ConflictError as e:
        raise ConflictError("Username or email already exists", context=e.context) from e

    logger.info("User registered: user_id=%s", user["user_id"])
    return success(
        UserResponse.model_validate(user),
        status_code=201,
        message="User registered successfully",
    )


@router.post(
    "/login",
    response_model=SuccessEnvelope,
    responses=_errors(400, 401, 500),
    summary="Log in and start a session",
)
async def login(
    body: LoginRequest,
    request: Request,
    db: QueryExecutor = Depends(get_executor),
) -> JSONResponse:
    row = await db.fetch_one(USERS_GET_CREDENTIALS_BY_EMAIL, body.email)
    if row is None:
        raise AuthError("Invalid email or password")

    stored_hash = row.pop("password")
    if not await verify_password(body.password, stored_hash):
        raise AuthError("Invalid email or password")

    start_session(request, row["user_id"])
    logger.info("User logged in: user_id=%s", row["user_id"])
    return success(UserResponse.model_validate(row), message="Login successful")


@router.get(
    "",
    response_model=SuccessEnvelope,
    responses=_errors(500),
    summary="List all users",
)
async def list_users(db: QueryExecutor = Depends(get_executor)) -> JSONResponse:
    rows = await db.fetch_all(USERS_LIST_ALL)
    return success_list([UserResponse.model_validate(r) for r in rows])


# ══════════════════════════════════════════════════════════════════════════
# Protected Routes
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "/logout",
    response_model=SuccessEnvelope,
    responses=_errors(401),
    summary="Log out and clear the session",
)
async def logout(
    request: Request,
    user_id: int = Depends(get_current_user_id),
) -> JSONResponse:
    end_session(request)
    logger.info("User logged out: user_id=%s", user_id)
    return success(message="Logged out successfully")


@router.get(
    "/profile",
    response_model=SuccessEnvelope,
    responses=_errors(401, 404, 500),
    summary="Get the current user's profile",
)
async def get_profile(
    user_id: int = Depends(get_current_user_id),
    db: QueryExecutor = Depends(get_executor),
) -> JSONResponse:
    user = await db.fetch_one(USERS_GET_BY_ID, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return success(UserResponse.model_validate(user))


@router.put(
    "/profile",
    response_model=SuccessEnvelope,
    responses=_errors(400, 401, 404, 409, 500),
    summary="Update the current user's profile",
)
async def update_profile(
    body: ProfileUpdateRequest,
    user_id: int = Depends(get_current_user_id),
    db: QueryExecutor = Depends(get_executor),
) -> JSONResponse:
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError(
            "No fields to update. Provide at least one of: " + ", ".join(PROFILE_FIELDS)
        )

    statement = build_profile_update(changes)
    values = [changes[name] for name in statement.params[:-1]]
    try:
        user = await db.fetch_one(statement, *values, user_id)
    except ConflictError as e:
        raise ConflictError("Username or email already in use", context=e.context) from e

    if user is None:
        raise NotFoundError("User", user_id)

    logger.info("Profile updated: user_id=%s fields=%s", user_id, sorted(changes))
    return success(UserResponse.model_validate(user), message="Profile updated successfully")


@router.delete(
    "/profile",
    response_model=SuccessEnvelope,
    responses=_errors(401, 404, 500),
    summary="Delete the current user's account",
)
async def delete_account(
    user_id: int = Depends(get_current_user_id),
    db: QueryExecutor = Depends(get_executor),
) -> JSONResponse:
    deleted = await db.execute(USERS_DELETE, user_id)
    if not deleted:
        raise NotFoundError("User", user_id)

    logger.info("Account deleted: user_id=%s", user_id)
    return success(message="Account deleted successfully")


@router.put(
    "/password",
    response_model=SuccessEnvelope,
    responses=_errors(400, 401, 404, 500),
    summary="Change the current user's password",
)
async def update_password(
    body: PasswordUpdateRequest,
    user_id: int = Depends(get_current_user_id),
    db: QueryExecutor = Depends(get_executor),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    row = await db.fetch_one(USERS_GET_PASSWORD_BY_ID, user_id)
    if row is None:
        raise NotFoundError("User", user_id)

    if not await verify_password(body.current_password, row["password"]):
        raise AuthError("Current password is incorrect")

    hashed = await hash_password(body.new_password, rounds=settings.bcrypt_rounds)
    updated = await db.execute(USERS_UPDATE_PASSWORD, hashed, user_id)
    if not updated:
        raise NotFoundError("User", user_id)

    logger.info("Password updated: user_id=%s", user_id)
    return success(message="Password updated successfully")


# ── Favorites ─────────────────────────────────────────────────────────────


@router.get(
    "/favorites",
    response_model=SuccessEnvelope,
    responses=_errors(401, 500),
    summary="List the current user's favorite recipes",
)
async def get_favorites(
    user_id: int = Depends(get_current_user_id),
    db: QueryExecutor = Depends(get_executor),
) -> JSONResponse:
    rows = await db.fetch_all(FAVORITES_LIST_BY_USER, user_id)
    return success_list([FavoriteResponse.model_validate(r) for r in rows])


@router.post(
    "/favorites/{recipe_id}",
    status_code=201,
    response_model=SuccessEnvelope,
    responses=_errors(400, 401, 404, 409, 500),
    summary="Add a recipe to favorites",
)
async def add_favorite(
    recipe_id: int,
    user_id: int = Depends(get_current_user_id),
    db: QueryExecutor = Depends(get_executor),
) -> JSONResponse:
    try:
        inserted = await db.execute(FAVORITES_CREATE, user_id, recipe_id)
    except ConflictError as e:
        raise ConflictError("Recipe is already in favorites", context=e.context) from e

    if not inserted:
        raise NotFoundError("Recipe", recipe_id)

    return success(
        {"recipe_id": recipe_id},
        status_code=201,
        message="Recipe added to favorites",
    )


@router.delete(
    "/favorites/{recipe_id}",
    response_model=SuccessEnvelope,
    responses=_errors(400, 401, 404, 500),
    summary="Remove a recipe from favorites",
)
async def remove_favorite(
    recipe_id: int,
    user_id: int = Depends(get_current_user_id),
    db: QueryExecutor = Depends(get_executor),
) -> JSONResponse:
    deleted = await db.execute(FAVORITES_DELETE, user_id, recipe_id)
    if not deleted:
        raise NotFoundError("Favorite", recipe_id, message="Favorite not found")
    return success(message="Recipe removed from favorites")


# ── Ratings ───────────────────────────────────────────────────────────────


@router.get(
    "/ratings",
    response_model=SuccessEnvelope,
    responses=_errors(401, 500),
    summary="List the current user's ratings",
)
async def get_ratings(
    user_id: int = Depends(get_current_user_id),
    db: QueryExecutor = Depends(get_executor),
) -> JSONResponse:
    rows = await db.fetch_all(RATINGS_LIST_BY_USER, user_id)
    return success_list([RatingResponse.model_validate(r) for r in rows])
