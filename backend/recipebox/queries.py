"""
RecipeBox Backend — Query Catalog
===================================

What:  Every SQL statement the service runs, as named, parameterized text.
How:   Each Statement declares its placeholders in order. Callers pass
       positional arguments in that order; QueryExecutor binds them by name.
       No statement is ever built by concatenating request data. The one
       composed statement (build_profile_update) only joins column names
       drawn from a fixed allow-list; the values remain bound parameters.

Column sets:
    USER_PUBLIC_COLUMNS is the only projection used for user rows that are
    returned to clients. The password hash is selected exclusively by the
    two credential statements used for verification.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Tuple

from sqlalchemy import text
from sqlalchemy.sql.elements import TextClause


@dataclass(frozen=True)
class Statement:
    """A named SQL statement with an ordered list of bound parameter names."""

    name: str
    sql: str
    params: Tuple[str, ...] = ()

    @property
    def clause(self) -> TextClause:
        return text(self.sql)

    def bind(self, args: Tuple) -> Dict[str, object]:
        """Map positional arguments onto the statement's placeholder names."""
        if len(args) != len(self.params):
            raise TypeError(
                f"{self.name} expects {len(self.params)} argument(s) "
                f"{self.params}, got {len(args)}"
            )
        return dict(zip(self.params, args))


USER_PUBLIC_COLUMNS = (
    "user_id",
    "username",
    "email",
    "first_name",
    "last_name",
    "is_admin",
    "created_at",
    "updated_at",
)

_USER_SELECT = ", ".join(f"u.{c}" for c in USER_PUBLIC_COLUMNS)
_USER_RETURNING = ", ".join(USER_PUBLIC_COLUMNS)

# Columns PUT /profile may change, in SET-clause order
PROFILE_FIELDS = ("username", "email", "first_name", "last_name")

_RECIPE_SELECT = """
    r.recipe_id,
    r.user_id,
    r.title,
    r.description,
    r.cuisine,
    r.servings,
    r.created_at,
    r.updated_at
"""


def _update_field(field: str) -> Statement:
    return Statement(
        name=f"users.update_{field}",
        sql=f"""
            UPDATE users
            SET {field} = :value, updated_at = CURRENT_TIMESTAMP
            WHERE user_id = :user_id
        """,
        params=("value", "user_id"),
    )


# ── Users ─────────────────────────────────────────────────────────────────
USERS_LIST_ALL = Statement(
    name="users.list_all",
    sql=f"SELECT {_USER_SELECT} FROM users u ORDER BY u.user_id",
)

USERS_GET_BY_ID = Statement(
    name="users.get_by_id",
    sql=f"SELECT {_USER_SELECT} FROM users u WHERE u.user_id = :user_id",
    params=("user_id",),
)

USERS_GET_CREDENTIALS_BY_EMAIL = Statement(
    name="users.get_credentials_by_email",
    sql=f"SELECT {_USER_SELECT}, u.password FROM users u WHERE u.email = :email",
    params=("email",),
)

USERS_GET_PASSWORD_BY_ID = Statement(
    name="users.get_password_by_id",
    sql="SELECT u.user_id, u.password FROM users u WHERE u.user_id = :user_id",
    params=("user_id",),
)

USERS_CREATE = Statement(
    name="users.create",
    sql=f"""
        INSERT INTO users (username, email, password, first_name, last_name)
        VALUES (:username, :email, :password, :first_name, :last_name)
        RETURNING {_USER_RETURNING}
    """,
    params=("username", "email", "password", "first_name", "last_name"),
)

USERS_UPDATE_USERNAME = _update_field("username")
USERS_UPDATE_EMAIL = _update_field("email")
USERS_UPDATE_FIRST_NAME = _update_field("first_name")
USERS_UPDATE_LAST_NAME = _update_field("last_name")
USERS_UPDATE_PASSWORD = _update_field("password")

USERS_DELETE = Statement(
    name="users.delete",
    sql="DELETE FROM users WHERE user_id = :user_id",
    params=("user_id",),
)


def build_profile_update(fields: Iterable[str]) -> Statement:
    """
    Compose one UPDATE for the given profile columns.

    Only names in PROFILE_FIELDS are accepted; the SET clause follows
    PROFILE_FIELDS order so the same field set always yields the same text.
    The returned statement takes the new values (in that order) followed by
    the user_id, and returns the updated public row.

    Raises:
        ValueError: empty field set or a name outside the allow-list.
    """
    requested = set(fields)
    unknown = requested - set(PROFILE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
    ordered = [f for f in PROFILE_FIELDS if f in requested]
    if not ordered:
        raise ValueError("At least one field is required")

    assignments = ", ".join(f"{f} = :{f}" for f in ordered)
    return Statement(
        name="users.update_profile[" + ",".join(ordered) + "]",
        sql=f"""
            UPDATE users
            SET {assignments}, updated_at = CURRENT_TIMESTAMP
            WHERE user_id = :user_id
            RETURNING {_USER_RETURNING}
        """,
        params=tuple(ordered) + ("user_id",),
    )


# ── Favorites ─────────────────────────────────────────────────────────────
FAVORITES_LIST_BY_USER = Statement(
    name="favorites.list_by_user",
    sql="""
        SELECT
            f.recipe_id,
            r.title,
            r.cuisine,
            f.created_at
        FROM favorites f
        JOIN recipes r ON r.recipe_id = f.recipe_id
        WHERE f.user_id = :user_id
        ORDER BY f.created_at DESC, f.recipe_id
    """,
    params=("user_id",),
)

# Inserts nothing (rowcount 0) when the recipe does not exist
FAVORITES_CREATE = Statement(
    name="favorites.create",
    sql="""
        INSERT INTO favorites (user_id, recipe_id)
        SELECT :user_id, r.recipe_id FROM recipes r WHERE r.recipe_id = :recipe_id
    """,
    params=("user_id", "recipe_id"),
)

FAVORITES_DELETE = Statement(
    name="favorites.delete",
    sql="DELETE FROM favorites WHERE user_id = :user_id AND recipe_id = :recipe_id",
    params=("user_id", "recipe_id"),
)


# ── Ratings ───────────────────────────────────────────────────────────────
RATINGS_LIST_BY_USER = Statement(
    name="ratings.list_by_user",
    sql="""
        SELECT
            rt.rating_id,
            rt.recipe_id,
            r.title,
            rt.rating,
            rt.review,
            rt.created_at
        FROM ratings rt
        JOIN recipes r ON r.recipe_id = rt.recipe_id
        WHERE rt.user_id = :user_id
        ORDER BY rt.created_at DESC, rt.rating_id
    """,
    params=("user_id",),
)


# ── Recipes ───────────────────────────────────────────────────────────────
RECIPES_LIST_ALL = Statement(
    name="recipes.list_all",
    sql=f"SELECT {_RECIPE_SELECT} FROM recipes r ORDER BY r.recipe_id",
)

RECIPES_GET_BY_ID = Statement(
    name="recipes.get_by_id",
    sql=f"SELECT {_RECIPE_SELECT} FROM recipes r WHERE r.recipe_id = :recipe_id",
    params=("recipe_id",),
)

RECIPES_LIST_BY_OWNER = Statement(
    name="recipes.list_by_owner",
    sql=f"SELECT {_RECIPE_SELECT} FROM recipes r WHERE r.user_id = :user_id ORDER BY r.recipe_id",
    params=("user_id",),
)


CATALOG: Dict[str, Statement] = {
    s.name: s
    for s in (
        USERS_LIST_ALL,
        USERS_GET_BY_ID,
        USERS_GET_CREDENTIALS_BY_EMAIL,
        USERS_GET_PASSWORD_BY_ID,
        USERS_CREATE,
        USERS_UPDATE_USERNAME,
        USERS_UPDATE_EMAIL,
        USERS_UPDATE_FIRST_NAME,
        USERS_UPDATE_LAST_NAME,
        USERS_UPDATE_PASSWORD,
        USERS_DELETE,
        FAVORITES_LIST_BY_USER,
        FAVORITES_CREATE,
        FAVORITES_DELETE,
        RATINGS_LIST_BY_USER,
        RECIPES_LIST_ALL,
        RECIPES_GET_BY_ID,
        RECIPES_LIST_BY_OWNER,
    )
}
