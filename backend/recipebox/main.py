"""
RecipeBox Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app(settings, database) returns a configured
       FastAPI instance. The Database (engine + pool) is built here once and
       stored on app.state; handlers reach it through dependencies.
Who:   uvicorn (`uvicorn recipebox.main:app`) and the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌────────┐ ┌─────────┐ ┌─────────┐ ┌────────────┐  │
    │  │ Req ID │→│ Session │→│ Logging │→│ GZip/CORS  │  │
    │  └────────┘ └─────────┘ └─────────┘ └────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌────────────┐ ┌──────────────┐ ┌──────────────┐   │
    │  │ /api/users │ │ /api/recipes │ │ GET /health  │   │
    │  └────────────┘ └──────────────┘ └──────────────┘   │
    │                                                     │
    │  Exception Handlers → {success: false, message}     │
    │   400 Validation │ 401 Auth │ 404 │ 409 │ 500 DB    │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → settings validation → create missing tables (optional)
    Shutdown: dispose the engine (close pooled connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from recipebox import __version__
from recipebox.config import Settings, settings as default_settings
from recipebox.database import Database
from recipebox.exceptions import (
    AuthError,
    ConflictError,
    DatabaseError,
    NotFoundError,
    RecipeBoxError,
    ValidationError,
)
from recipebox.middleware.logging import RequestLoggingMiddleware
from recipebox.middleware.request_id import RequestIDMiddleware, request_id_var
from recipebox.routes import health, recipes, users
from recipebox.schemas.envelope import failure

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Third-party loggers that report every operation are lowered to WARNING.
    """
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    database: Database = app.state.database

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings.log_level)
    logger.info("RecipeBox Backend %s starting up (%s)...", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        raise

    if settings.db_create_tables:
        await database.create_tables()
        logger.info("Database schema ready")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("RecipeBox Backend shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    return request_id_var.get("") or getattr(request.state, "request_id", "")


def _describe_validation_errors(exc: RequestValidationError) -> str:
    """Turn pydantic's error list into one readable sentence."""
    missing = []
    problems = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        field = ".".join(loc)
        if err.get("type") == "missing":
            if field:
                missing.append(field)
            else:
                problems.append("Request body is required")
        elif err.get("type") == "json_invalid":
            problems.append("Request body is not valid JSON")
        elif field:
            msg = str(err.get("msg", "is invalid")).removeprefix("Value error, ")
            problems.append(f"{field}: {msg}")
        else:
            problems.append(str(err.get("msg", "Invalid request")))

    parts = []
    if missing:
        parts.append("Missing required field(s): " + ", ".join(missing))
    parts.extend(problems)
    return "; ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes and the error envelope.

    Handler hierarchy:
        ValidationError / RequestValidationError → 400
        AuthError                                → 401
        NotFoundError                            → 404
        ConflictError                            → 409
        DatabaseError                            → 500 (+ error text when exposed)
        RecipeBoxError (base)                    → its status_code
        StarletteHTTPException                   → its status_code (unknown route, 405)
        Exception (fallback)                     → 500, stack trace logged only
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", _request_id(request), exc.message)
        return failure(exc.message, status_code=400)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        message = _describe_validation_errors(exc)
        logger.warning("[%s] Invalid request: %s", _request_id(request), message)
        return failure(message, status_code=400)

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        return failure(exc.message, status_code=401)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return failure(exc.message, status_code=404)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        logger.info("[%s] Conflict: %s | Context: %s", _request_id(request), exc.message, exc.context)
        return failure(exc.message, status_code=409)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", _request_id(request), exc.message, exc.context)
        expose = request.app.state.settings.expose_error_details
        return failure(
            exc.message,
            status_code=500,
            error=exc.error if expose else None,
        )

    @app.exception_handler(RecipeBoxError)
    async def handle_app_error(request: Request, exc: RecipeBoxError):
        logger.error("[%s] %s: %s", _request_id(request), type(exc).__name__, exc.message)
        return failure(exc.message, status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return failure(str(exc.detail), status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            _request_id(request),
            str(exc),
            exc_info=True,
        )
        return failure("An unexpected error occurred", status_code=500)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Configuration; defaults to the environment-loaded settings.
        database: Pre-built Database (tests pass one bound to a temp file);
                  otherwise one is built from settings.

    No connection is opened here; the pool connects lazily on first use.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="RecipeBox API",
        description="User accounts, favorites, ratings and recipe browsing.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database or Database(settings)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Session → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age,
        same_site="lax",
        https_only=settings.session_https_only,
    )
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(users.router)
    app.include_router(recipes.router)
    app.include_router(health.router)

    return app


app = create_app()
