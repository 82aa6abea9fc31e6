"""
RecipeBox Backend — Health Check Route
========================================

What:  Liveness/readiness probe for Docker and load balancers.
How:   Runs `SELECT 1` on a pooled connection. The service can only answer
       API calls when the database answers, so a failed probe is reported
       as unhealthy with HTTP 503.
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from recipebox import __version__
from recipebox.database import Database, get_database

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


class HealthResponse(BaseModel):
    status: str = Field(description="healthy or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="connected or disconnected")
    uptime_seconds: float = Field(description="Seconds since the process started")


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(database: Database = Depends(get_database)) -> JSONResponse:
    db_status = "connected"
    overall = "healthy"
    try:
        await database.ping()
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    return JSONResponse(
        status_code=200 if overall == "healthy" else 503,
        content=body.model_dump(),
    )
