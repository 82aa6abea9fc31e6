"""
RecipeBox Backend — Request Logging Middleware
================================================

What:  One access-log line per request: method, path, status, duration,
       request id, client IP and, once a session exists, the user id.
How:   Measures from middleware entry to response return. The level follows
       the status class: 5xx → ERROR, 4xx → WARNING, otherwise INFO.

SessionMiddleware runs outside this one, so scope["session"] is decoded on
entry. The id is read again after the inner app has run: a login is
attributed to the user it logged in, a logout to the user it logged out.
Anonymous requests log "-".

Not logged: request bodies and cookies (passwords and session tokens).
"""

import logging
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from recipebox.auth import SESSION_USER_KEY
from recipebox.middleware.request_id import request_id_var

logger = logging.getLogger("recipebox.access")

QUIET_PATHS = {"/health"}


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


def _session_user(request: Request) -> Optional[int]:
    session = request.scope.get("session") or {}
    return session.get(SESSION_USER_KEY)


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        user_before = _session_user(request)
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        user_id = _session_user(request)
        if user_id is None:
            user_id = user_before
        entry = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": elapsed_ms,
            "client_ip": request.client.host if request.client else "unknown",
            "user_id": user_id,
        }
        logger.log(
            _level_for(response.status_code),
            "%(method)s %(path)s %(status)d %(duration_ms).1fms [%(request_id)s] user=%(user)s from %(client_ip)s",
            {**entry, "user": user_id if user_id is not None else "-"},
            extra=entry,
        )
        return response
