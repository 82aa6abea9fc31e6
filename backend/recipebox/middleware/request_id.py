"""
RecipeBox Backend — Request ID Middleware
===========================================

What:  Assigns a short correlation id to each request and echoes it back in
       the X-Request-ID response header.
How:   Uses the client's X-Request-ID when it is 1-64 characters from
       [A-Za-z0-9_-], otherwise an 8-char UUID prefix. The id lives in a
       ContextVar so loggers, the QueryExecutor and exception handlers can
       read it without passing the request around.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one thread each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Echoed in a header and written to logs verbatim
_VALID_REQUEST_ID = re.compile(r"[A-Za-z0-9_-]{1,64}")


def resolve_request_id(supplied: Optional[str]) -> str:
    if supplied and _VALID_REQUEST_ID.fullmatch(supplied):
        return supplied
    return str(uuid.uuid4())[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request.headers.get("X-Request-ID"))

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
