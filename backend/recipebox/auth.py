"""
RecipeBox Backend — Auth Gate
===============================

What:  Resolves the caller's identity from the signed session cookie.
How:   Starlette's SessionMiddleware decodes the cookie into request.session;
       login stores `user_id` there, logout clears it. Protected routes
       declare `user_id: int = Depends(get_current_user_id)`.
"""

from fastapi import Request

from recipebox.exceptions import AuthError

SESSION_USER_KEY = "user_id"


def get_current_user_id(request: Request) -> int:
    """Return the authenticated user id, or raise AuthError (401)."""
    raw = request.session.get(SESSION_USER_KEY)
    if raw is None:
        raise AuthError("Authentication required. Please log in.")
    try:
        return int(raw)
    except (TypeError, ValueError):
        request.session.clear()
        raise AuthError("Invalid session. Please log in again.")


def start_session(request: Request, user_id: int) -> None:
    request.session.clear()
    request.session[SESSION_USER_KEY] = user_id


def end_session(request: Request) -> None:
    request.session.clear()
