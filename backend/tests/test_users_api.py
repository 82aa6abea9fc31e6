"""
RecipeBox Backend — /api/users Endpoint Tests
===============================================

What:  End-to-end tests through the FastAPI app against a temporary SQLite
       database, using httpx AsyncClient (cookies carry the session).

What we test:
    ✅ Registration, duplicates and missing fields
    ✅ Login success/failure, logout
    ✅ Profile read/update/delete, password change
    ✅ Favorites add/list/remove with 404/409 paths
    ✅ Ratings listing
    ✅ No response body ever contains a password
"""

import pytest
from sqlalchemy import select, text

from conftest import ANA, call_asgi, login, register
from recipebox.models import Rating, User


def assert_no_password(body):
    """No key anywhere in the response is a password field."""
    if isinstance(body, dict):
        assert "password" not in body
        for value in body.values():
            assert_no_password(value)
    elif isinstance(body, list):
        for item in body:
            assert_no_password(item)


# ══════════════════════════════════════════════════════════════════════════
# Registration
# ══════════════════════════════════════════════════════════════════════════


class TestRegister:

    @pytest.mark.asyncio
    async def test_register_returns_created_user(self, test_client):
        response = await register(test_client)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["username"] == "ana"
        assert body["data"]["email"] == "a@x.com"
        assert body["data"]["is_admin"] is False
        assert "password" not in body["data"]

    @pytest.mark.asyncio
    async def test_register_stores_a_hash(self, test_client, database):
        await register(test_client)

        async with database.session_factory() as session:
            stored = (await session.execute(select(User).where(User.username == "ana"))).scalar_one()
        assert stored.password != ANA["password"]
        assert stored.password.startswith("$2")

    @pytest.mark.asyncio
    async def test_register_with_names(self, test_client):
        response = await register(test_client, first_name="  Ana ", last_name="Lee")

        assert response.status_code == 201
        assert response.json()["data"]["first_name"] == "Ana"
        assert response.json()["data"]["last_name"] == "Lee"

    @pytest.mark.asyncio
    async def test_register_missing_fields(self, test_client):
        response = await test_client.post("/api/users/register", json={"username": "ana"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "email" in body["message"]
        assert "password" in body["message"]

    @pytest.mark.asyncio
    async def test_register_blank_username(self, test_client):
        response = await register(test_client, username="   ")

        assert response.status_code == 400
        assert "username" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_register_invalid_email(self, test_client):
        response = await register(test_client, email="not-an-email")

        assert response.status_code == 400
        assert "email" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_register_short_password(self, test_client):
        response = await register(test_client, password="abc")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_register_duplicate_username(self, test_client):
        await register(test_client)
        response = await register(test_client, email="other@x.com")

        assert response.status_code == 409
        assert response.json() == {
            "success": False,
            "message": "Username or email already exists",
        }

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, test_client):
        await register(test_client)
        response = await register(test_client, username="ana2", email="A@X.com")

        assert response.status_code == 409


# ══════════════════════════════════════════════════════════════════════════
# Login / Logout
# ══════════════════════════════════════════════════════════════════════════


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_success(self, test_client):
        await register(test_client)
        response = await login(test_client)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["email"] == "a@x.com"
        assert_no_password(body)

    @pytest.mark.asyncio
    async def test_login_wrong_password_is_401_every_time(self, test_client):
        await register(test_client)

        for _ in range(3):
            response = await login(test_client, password="wrong")
            assert response.status_code == 401
            assert response.json()["success"] is False
            assert response.json()["message"]

        assert (await login(test_client)).status_code == 200

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, test_client):
        response = await login(test_client, email="nobody@x.com")

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_login_missing_password(self, test_client):
        response = await test_client.post("/api/users/login", json={"email": "a@x.com"})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_failed_login_does_not_open_session(self, test_client):
        await register(test_client)
        await login(test_client, password="wrong")

        assert (await test_client.get("/api/users/profile")).status_code == 401

    @pytest.mark.asyncio
    async def test_logout_ends_session(self, auth_client):
        response = await auth_client.post("/api/users/logout")

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert (await auth_client.get("/api/users/profile")).status_code == 401

    @pytest.mark.asyncio
    async def test_logout_requires_session(self, test_client):
        response = await test_client.post("/api/users/logout")

        assert response.status_code == 401
        assert response.json()["success"] is False


class TestListUsers:

    @pytest.mark.asyncio
    async def test_list_users(self, test_client):
        await register(test_client)
        response = await test_client.get("/api/users")

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert [u["username"] for u in body["data"]] == ["chef", "ana"]
        assert_no_password(body)


# ══════════════════════════════════════════════════════════════════════════
# Profile
# ══════════════════════════════════════════════════════════════════════════


class TestProfile:

    @pytest.mark.asyncio
    async def test_profile_requires_login(self, test_client):
        response = await test_client.get("/api/users/profile")

        assert response.status_code == 401
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_get_profile(self, auth_client):
        response = await auth_client.get("/api/users/profile")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["username"] == "ana"
        assert data["email"] == "a@x.com"
        assert "password" not in data

    @pytest.mark.asyncio
    async def test_update_profile(self, auth_client):
        response = await auth_client.put(
            "/api/users/profile",
            json={"first_name": "Ana", "email": "ana@x.com"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["first_name"] == "Ana"
        assert data["email"] == "ana@x.com"
        assert data["username"] == "ana"
        assert "password" not in data

        profile = (await auth_client.get("/api/users/profile")).json()["data"]
        assert profile["email"] == "ana@x.com"

    @pytest.mark.asyncio
    async def test_update_profile_clears_optional_name(self, auth_client):
        await auth_client.put("/api/users/profile", json={"last_name": "Lee"})
        response = await auth_client.put("/api/users/profile", json={"last_name": None})

        assert response.status_code == 200
        assert response.json()["data"]["last_name"] is None

    @pytest.mark.asyncio
    async def test_update_profile_empty_body(self, auth_client):
        before = (await auth_client.get("/api/users/profile")).json()["data"]
        response = await auth_client.put("/api/users/profile", json={})

        assert response.status_code == 400
        assert response.json()["success"] is False
        after = (await auth_client.get("/api/users/profile")).json()["data"]
        assert after == before

    @pytest.mark.asyncio
    async def test_update_profile_rejects_password_field(self, auth_client):
        response = await auth_client.put("/api/users/profile", json={"password": "hacked1"})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_profile_null_username(self, auth_client):
        response = await auth_client.put("/api/users/profile", json={"username": None})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_profile_conflict(self, auth_client):
        response = await auth_client.put("/api/users/profile", json={"username": "chef"})

        assert response.status_code == 409
        assert response.json()["message"] == "Username or email already in use"

    @pytest.mark.asyncio
    async def test_delete_then_get_profile_is_404(self, auth_client):
        response = await auth_client.delete("/api/users/profile")
        assert response.status_code == 200
        assert response.json()["success"] is True

        response = await auth_client.get("/api/users/profile")
        assert response.status_code == 404
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_delete_twice_is_404(self, auth_client):
        await auth_client.delete("/api/users/profile")
        response = await auth_client.delete("/api/users/profile")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_deleted_user_cannot_log_in(self, auth_client):
        await auth_client.delete("/api/users/profile")

        assert (await login(auth_client)).status_code == 401


class TestPassword:

    @pytest.mark.asyncio
    async def test_change_password(self, auth_client):
        response = await auth_client.put(
            "/api/users/password",
            json={"currentPassword": "secret1", "newPassword": "secret2"},
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert (await login(auth_client, password="secret1")).status_code == 401
        assert (await login(auth_client, password="secret2")).status_code == 200

    @pytest.mark.asyncio
    async def test_change_password_wrong_current(self, auth_client):
        response = await auth_client.put(
            "/api/users/password",
            json={"currentPassword": "nope123", "newPassword": "secret2"},
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Current password is incorrect"
        assert (await login(auth_client)).status_code == 200

    @pytest.mark.asyncio
    async def test_change_password_missing_fields(self, auth_client):
        response = await auth_client.put("/api/users/password", json={"currentPassword": "secret1"})

        assert response.status_code == 400
        assert "newPassword" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_change_password_requires_login(self, test_client):
        response = await test_client.put(
            "/api/users/password",
            json={"currentPassword": "secret1", "newPassword": "secret2"},
        )

        assert response.status_code == 401


# ══════════════════════════════════════════════════════════════════════════
# Favorites & Ratings
# ══════════════════════════════════════════════════════════════════════════


class TestFavorites:

    @pytest.mark.asyncio
    async def test_add_and_list_favorites(self, auth_client, seeded_recipes):
        recipe_id = seeded_recipes["recipe_ids"][1]
        response = await auth_client.post(f"/api/users/favorites/{recipe_id}")

        assert response.status_code == 201
        assert response.json()["data"] == {"recipe_id": recipe_id}

        listing = (await auth_client.get("/api/users/favorites")).json()
        assert listing["success"] is True
        assert listing["count"] == 1
        assert listing["data"][0]["recipe_id"] == recipe_id
        assert listing["data"][0]["title"] == "Ratatouille"

    @pytest.mark.asyncio
    async def test_favorites_empty(self, auth_client):
        body = (await auth_client.get("/api/users/favorites")).json()

        assert body == {"success": True, "count": 0, "data": []}

    @pytest.mark.asyncio
    async def test_duplicate_favorite_is_409(self, auth_client, seeded_recipes):
        recipe_id = seeded_recipes["recipe_ids"][0]
        await auth_client.post(f"/api/users/favorites/{recipe_id}")
        response = await auth_client.post(f"/api/users/favorites/{recipe_id}")

        assert response.status_code == 409
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_favorite_unknown_recipe_is_404(self, auth_client):
        response = await auth_client.post("/api/users/favorites/9999")

        assert response.status_code == 404
        assert response.json()["message"] == "Recipe not found"

    @pytest.mark.asyncio
    async def test_remove_favorite(self, auth_client, seeded_recipes):
        recipe_id = seeded_recipes["recipe_ids"][0]
        await auth_client.post(f"/api/users/favorites/{recipe_id}")

        response = await auth_client.delete(f"/api/users/favorites/{recipe_id}")
        assert response.status_code == 200
        assert (await auth_client.get("/api/users/favorites")).json()["count"] == 0

    @pytest.mark.asyncio
    async def test_remove_missing_favorite_is_404(self, auth_client, seeded_recipes):
        recipe_id = seeded_recipes["recipe_ids"][0]
        response = await auth_client.delete(f"/api/users/favorites/{recipe_id}")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Favorite not found"}

    @pytest.mark.asyncio
    async def test_non_numeric_recipe_id_is_400(self, auth_client):
        response = await auth_client.post("/api/users/favorites/abc")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_favorites_require_login(self, test_client):
        assert (await test_client.get("/api/users/favorites")).status_code == 401
        assert (await test_client.post("/api/users/favorites/1")).status_code == 401


class TestRatings:

    @pytest.mark.asyncio
    async def test_list_ratings(self, auth_client, database, seeded_recipes):
        user_id = (await auth_client.get("/api/users/profile")).json()["data"]["user_id"]
        async with database.session_factory() as session:
            session.add(
                Rating(
                    user_id=user_id,
                    recipe_id=seeded_recipes["recipe_ids"][2],
                    rating=5,
                    review="Great",
                )
            )
            session.add(Rating(user_id=seeded_recipes["chef_id"], recipe_id=seeded_recipes["recipe_ids"][2], rating=3))
            await session.commit()

        body = (await auth_client.get("/api/users/ratings")).json()

        assert body["success"] is True
        assert body["count"] == 1
        assert body["data"][0]["rating"] == 5
        assert body["data"][0]["title"] == "Pad Thai"
        assert body["data"][0]["review"] == "Great"

    @pytest.mark.asyncio
    async def test_ratings_require_login(self, test_client):
        assert (await test_client.get("/api/users/ratings")).status_code == 401


# ══════════════════════════════════════════════════════════════════════════
# Walkthrough
# ══════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_login_profile_walkthrough(test_client):
    created = await test_client.post(
        "/api/users/register",
        json={"username": "ana", "email": "a@x.com", "password": "secret1"},
    )
    assert created.status_code == 201
    assert created.json()["success"] is True
    assert "password" not in created.json()["data"]

    bad = await test_client.post("/api/users/login", json={"email": "a@x.com", "password": "wrong"})
    assert bad.status_code == 401
    assert bad.json()["success"] is False
    assert bad.json()["message"]

    assert (await login(test_client)).status_code == 200
    profile = await test_client.get("/api/users/profile")
    assert profile.json()["data"]["username"] == "ana"
    assert profile.json()["data"]["email"] == "a@x.com"
    for response in (created, bad, profile):
        assert_no_password(response.json())


# ══════════════════════════════════════════════════════════════════════════
# Commit Ordering
# ══════════════════════════════════════════════════════════════════════════


async def _scalar(database, sql, **params):
    async with database.session_factory() as session:
        return (await session.execute(text(sql), params)).scalar_one()


class TestWritesCommittedBeforeResponse:
    """A second connection already sees the write when the last body chunk goes out."""

    @pytest.mark.asyncio
    async def test_register(self, app, database):
        status, visible = await call_asgi(
            app,
            "POST",
            "/api/users/register",
            json_body={"username": "early", "email": "early@x.com", "password": "secret1"},
            on_response_end=lambda: _scalar(
                database, "SELECT count(*) FROM users WHERE username = :u", u="early"
            ),
        )

        assert status == 201
        assert visible == 1

    @pytest.mark.asyncio
    async def test_delete_profile(self, app, auth_client, database):
        user_id = (await auth_client.get("/api/users/profile")).json()["data"]["user_id"]

        status, remaining = await call_asgi(
            app,
            "DELETE",
            "/api/users/profile",
            cookies=dict(auth_client.cookies),
            on_response_end=lambda: _scalar(
                database, "SELECT count(*) FROM users WHERE user_id = :id", id=user_id
            ),
        )

        assert status == 200
        assert remaining == 0

    @pytest.mark.asyncio
    async def test_add_favorite(self, app, auth_client, database, seeded_recipes):
        recipe_id = seeded_recipes["recipe_ids"][0]

        status, stored = await call_asgi(
            app,
            "POST",
            f"/api/users/favorites/{recipe_id}",
            cookies=dict(auth_client.cookies),
            on_response_end=lambda: _scalar(
                database, "SELECT count(*) FROM favorites WHERE recipe_id = :r", r=recipe_id
            ),
        )

        assert status == 201
        assert stored == 1

    @pytest.mark.asyncio
    async def test_failed_write_is_rolled_back(self, app, auth_client, database):
        status, visible = await call_asgi(
            app,
            "PUT",
            "/api/users/profile",
            json_body={"username": "chef"},
            cookies=dict(auth_client.cookies),
            on_response_end=lambda: _scalar(
                database, "SELECT count(*) FROM users WHERE username = :u", u="ana"
            ),
        )

        assert status == 409
        assert visible == 1
