"""
RecipeBox Backend — Response Envelope
=======================================

What:  The fixed JSON wrapper every /api route returns.

    success:  {"success": true, "data": ...}
              {"success": true, "count": n, "data": [...], "message"?: "..."}
    failure:  {"success": false, "message": "...", "error"?: "..."}

Keys whose value is None are left out, so `message` only appears on a list
response when the handler supplies one, and `error` only on 500s when
detail exposure is enabled.
"""

from typing import Any, List, Optional, Sequence

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field


class SuccessEnvelope(BaseModel):
    success: bool = Field(default=True)
    count: Optional[int] = Field(default=None, description="Number of items in data (lists only)")
    data: Any = Field(default=None)
    message: Optional[str] = Field(default=None)


class ErrorEnvelope(BaseModel):
    success: bool = Field(default=False)
    message: str = Field(description="Human-readable error description")
    error: Optional[str] = Field(default=None, description="Raw error text (development only)")


def success(
    data: Any = None,
    *,
    status_code: int = 200,
    message: Optional[str] = None,
) -> JSONResponse:
    body = {"success": True}
    if data is not None:
        body["data"] = jsonable_encoder(data)
    if message is not None:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=body)


def success_list(
    items: Sequence[Any],
    *,
    message: Optional[str] = None,
) -> JSONResponse:
    data: List[Any] = jsonable_encoder(list(items))
    body = {"success": True, "count": len(data), "data": data}
    if message is not None:
        body["message"] = message
    return JSONResponse(status_code=200, content=body)


def failure(
    message: str,
    *,
    status_code: int,
    error: Optional[str] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    body = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    return JSONResponse(status_code=status_code, content=body, headers=headers)
