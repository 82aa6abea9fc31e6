"""
RecipeBox Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Each test gets its own SQLite file (aiosqlite) under tmp_path, its
       own Database and its own app built by create_app(). Nothing is shared
       between tests, so session cookies and rows never leak across them.

Fixture Hierarchy (all function-scoped):
    test_settings  → Settings pointing at tmp_path/test.db, bcrypt_rounds=4
    database       → Database with tables created
    seeded_recipes → a "chef" user owning three recipes
    test_client    → httpx AsyncClient over ASGITransport (keeps cookies)
    auth_client    → test_client after registering and logging in as "ana"
    mock_db_session → AsyncMock standing in for AsyncSession

call_asgi() drives the app without httpx, to observe the database at the
moment the response body is sent.
"""

import asyncio
import json
import os
import tempfile
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Override settings for the module-level app BEFORE any recipebox import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.mkdtemp(prefix="recipebox_test_"), "import.db"
)
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["SESSION_SECRET"] = "test-session-secret"

from recipebox.config import Settings  # noqa: E402
from recipebox.database import Database  # noqa: E402
from recipebox.main import create_app  # noqa: E402
from recipebox.models import Recipe, User  # noqa: E402
from recipebox.security import hash_password_sync  # noqa: E402

ANA = {"username": "ana", "email": "a@x.com", "password": "secret1"}


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        environment="test",
        session_secret="test-session-secret",
        bcrypt_rounds=4,
        log_level="WARNING",
        query_timeout_seconds=5,
    )


@pytest_asyncio.fixture
async def database(test_settings):
    db = Database(test_settings)
    await db.create_tables()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def seeded_recipes(database):
    """
    Inserts a "chef" user and three recipes they own.

    Returns a dict with the chef's user_id and the recipe ids in insert order.
    """
    async with database.session_factory() as session:
        chef = User(
            username="chef",
            email="chef@example.com",
            password=hash_password_sync("chefpass", rounds=4),
            first_name="Julia",
            last_name="Child",
        )
        session.add(chef)
        await session.flush()

        recipes = [
            Recipe(user_id=chef.user_id, title="Pancakes", cuisine="American", servings=4),
            Recipe(user_id=chef.user_id, title="Ratatouille", cuisine="French", servings=6),
            Recipe(user_id=chef.user_id, title="Pad Thai", cuisine="Thai", servings=2),
        ]
        session.add_all(recipes)
        await session.flush()

        seeded = {
            "chef_id": chef.user_id,
            "recipe_ids": [r.recipe_id for r in recipes],
        }
        await session.commit()
    return seeded


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(test_settings, database, seeded_recipes):
    return create_app(test_settings, database=database)


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient talking to the app in-process.

    The client keeps cookies, so a login carries over to later requests
    made with the same client.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def register(client, **overrides):
    payload = {**ANA, **overrides}
    return await client.post("/api/users/register", json=payload)


async def login(client, email=ANA["email"], password=ANA["password"]):
    return await client.post("/api/users/login", json={"email": email, "password": password})


@pytest_asyncio.fixture
async def auth_client(test_client):
    """test_client with "ana" registered and logged in."""
    response = await register(test_client)
    assert response.status_code == 201
    assert (await login(test_client)).status_code == 200
    return test_client


# ══════════════════════════════════════════════════════════════════════════
# Unit-Test Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    A mock async database session (no real DB).

    Usage:
        mock_db_session.execute.return_value = make_result(rows=[...])
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


def make_result(rows=None, rowcount=0):
    """Build a MagicMock shaped like a SQLAlchemy Result."""
    rows = rows or []
    result = MagicMock()
    result.mappings.return_value.all.return_value = rows
    result.mappings.return_value.first.return_value = rows[0] if rows else None
    result.rowcount = rowcount
    return result


async def call_asgi(app, method, path, *, json_body=None, cookies=None, on_response_end):
    """
    Drive the app with one raw ASGI call, bypassing httpx.

    `on_response_end` is awaited at the moment the final body chunk is
    sent, i.e. while the app is still inside the call. ASGITransport only
    returns after the whole call finishes, so it cannot observe this point.

    Returns (status, result of on_response_end).
    """
    body = json.dumps(json_body).encode() if json_body is not None else b""
    headers = [(b"host", b"test"), (b"content-type", b"application/json")]
    if cookies:
        cookie = "; ".join(f"{k}={v}" for k, v in cookies.items())
        headers.append((b"cookie", cookie.encode()))

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "query_string": b"",
        "root_path": "",
        "headers": headers,
        "client": ("127.0.0.1", 50000),
        "server": ("test", 80),
    }

    request_sent = False
    response_done = asyncio.Event()
    observed = {}

    async def receive():
        nonlocal request_sent
        if not request_sent:
            request_sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        await response_done.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        if message["type"] == "http.response.start":
            observed["status"] = message["status"]
        elif message["type"] == "http.response.body" and not message.get("more_body", False):
            observed["at_end"] = await on_response_end()
            response_done.set()

    await app(scope, receive, send)
    return observed["status"], observed["at_end"]
