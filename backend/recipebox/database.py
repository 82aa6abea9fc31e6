"""
RecipeBox Backend — Database Engine, Sessions and Query Execution
==================================================================

What:  Async SQLAlchemy engine + session factory (Database), the per-request
       session dependency, and QueryExecutor: the adapter that runs Query
       Catalog statements with bound parameters.
How:   create_app() builds one Database from Settings and stores it on
       app.state. Each request borrows a pooled connection through its own
       AsyncSession, commits on success and rolls back on error.
Who:   Route handlers receive a QueryExecutor via Depends(get_executor).

Connection Pooling Strategy:
    Server databases (PostgreSQL/asyncpg):
        pool_size / max_overflow from settings, pool_pre_ping, pool_recycle=3600
    SQLite (aiosqlite):
        SQLAlchemy picks the pool class itself; pool sizing is not passed.
        Foreign keys are switched on for every new connection.

Error Mapping (QueryExecutor):
    IntegrityError          → ConflictError (409)
    other SQLAlchemyError   → DatabaseError (500)
    statement timeout       → DatabaseError (500)
"""

import asyncio
import logging
from typing import Any, AsyncGenerator, Dict, List, Optional, Union

from fastapi import Depends, Request
from sqlalchemy import event, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from recipebox.config import Settings
from recipebox.exceptions import ConflictError, DatabaseError
from recipebox.middleware.request_id import request_id_var
from recipebox.queries import CATALOG, Statement

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for the table definitions in recipebox.models.

    The models are used to create the schema and to seed test data;
    request handling goes through the Query Catalog only.
    """
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured database URL."""
    kwargs: Dict[str, Any] = {
        "pool_pre_ping": settings.db_pool_pre_ping,
        "echo": settings.log_level == "DEBUG",
    }
    if not settings.is_sqlite:
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=3600,
        )

    engine = create_async_engine(settings.database_url, **kwargs)

    if settings.is_sqlite:
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    return engine


class Database:
    """
    Owns the engine (connection pool) and the session factory.

    One instance per application, created by create_app() and disposed in
    the lifespan shutdown. Never shared through a module-level global.
    """

    def __init__(self, settings: Settings, engine: Optional[AsyncEngine] = None):
        self.settings = settings
        self.engine = engine or build_engine(settings)
        # expire_on_commit=False: rows stay readable after the commit in get_db_session
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_tables(self) -> None:
        """Create any missing tables from the models' metadata."""
        import recipebox.models  # noqa: F401  (registers tables on Base.metadata)

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()


def get_database(request: Request) -> Database:
    return request.app.state.database


async def get_db_session(
    database: Database = Depends(get_database),
) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Declared with scope="function" by get_executor, so the exit code runs
    when the handler returns and before the response is sent. A client
    never receives a success envelope for an uncommitted write.

    How it works:
        1. Creates a new session from the application's factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back, then re-raises for the exception handlers
        5. Always: closes the session (returns connection to pool)
    """
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


Row = Dict[str, Any]


class QueryExecutor:
    """
    Runs Query Catalog statements against one AsyncSession.

    Statements are passed either as Statement objects or by catalog name;
    arguments are positional, in the order the statement declares.

        rows = await executor.fetch_all(RECIPES_LIST_ALL)
        user = await executor.fetch_one("users.get_by_id", user_id)
        count = await executor.execute(USERS_DELETE, user_id)
    """

    def __init__(self, session: AsyncSession, timeout: Optional[float] = None):
        self._session = session
        self._timeout = timeout

    @staticmethod
    def _resolve(statement: Union[Statement, str]) -> Statement:
        if isinstance(statement, Statement):
            return statement
        try:
            return CATALOG[statement]
        except KeyError:
            raise KeyError(f"Unknown statement '{statement}'") from None

    async def fetch_all(self, statement: Union[Statement, str], *args: Any) -> List[Row]:
        """Run a multi-row statement; returns a (possibly empty) list of dicts."""
        stmt = self._resolve(statement)

        async def run():
            result = await self._session.execute(stmt.clause, stmt.bind(args))
            return [dict(row) for row in result.mappings().all()]

        return await self._guarded(stmt, run())

    async def fetch_one(self, statement: Union[Statement, str], *args: Any) -> Optional[Row]:
        """Run a single-row statement; returns a dict or None when nothing matched."""
        stmt = self._resolve(statement)

        async def run():
            result = await self._session.execute(stmt.clause, stmt.bind(args))
            row = result.mappings().first()
            return dict(row) if row is not None else None

        return await self._guarded(stmt, run())

    async def execute(self, statement: Union[Statement, str], *args: Any) -> int:
        """Run a write statement without RETURNING; returns the affected row count."""
        stmt = self._resolve(statement)

        async def run():
            result = await self._session.execute(stmt.clause, stmt.bind(args))
            return result.rowcount

        return await self._guarded(stmt, run())

    async def _guarded(self, stmt: Statement, coro):
        rid = request_id_var.get("")
        try:
            if self._timeout:
                return await asyncio.wait_for(coro, timeout=self._timeout)
            return await coro
        except IntegrityError as e:
            logger.info("[%s] %s violated a constraint: %s", rid, stmt.name, e.orig)
            raise ConflictError(
                context={"statement": stmt.name, "error": str(e.orig)},
            ) from e
        except asyncio.TimeoutError as e:
            logger.error("[%s] %s timed out after %ss", rid, stmt.name, self._timeout)
            raise DatabaseError(
                context={
                    "statement": stmt.name,
                    "error": f"Query timed out after {self._timeout} seconds",
                },
            ) from e
        except SQLAlchemyError as e:
            detail = str(getattr(e, "orig", None) or e)
            logger.error("[%s] %s failed: %s", rid, stmt.name, detail)
            raise DatabaseError(
                context={"statement": stmt.name, "error": detail},
            ) from e


async def get_executor(
    session: AsyncSession = Depends(get_db_session, scope="function"),
    database: Database = Depends(get_database),
) -> QueryExecutor:
    """FastAPI dependency: a QueryExecutor bound to this request's session."""
    return QueryExecutor(session, timeout=database.settings.query_timeout_seconds)
