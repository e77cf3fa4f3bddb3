"""
User endpoint tests: registration, login, the current-user account and
the request validation messages those endpoints produce.
"""
import re

import pytest
from httpx import AsyncClient

TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+$")


def _register_payload(username="alice", email="a@x.io", password="password1"):
    return {"user": {"username": username, "email": email, "password": password}}


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_register_returns_user_with_token(async_client: AsyncClient):
    resp = await async_client.post("/api/users", json=_register_payload())
    assert resp.status_code == 201
    user = resp.json()["user"]
    assert user["username"] == "alice"
    assert user["email"] == "a@x.io"
    assert user["bio"] is None
    assert user["image"] is None
    assert TOKEN_RE.match(user["token"])
    assert "password" not in user
    assert "password_hash" not in user


@pytest.mark.asyncio
async def test_register_duplicate_username(async_client: AsyncClient):
    """Repeating a registration is a 422 naming the username conflict."""
    await async_client.post("/api/users", json=_register_payload())
    resp = await async_client.post("/api/users", json=_register_payload())
    assert resp.status_code == 422
    assert resp.json() == {"errors": {"body": ["Username already taken"]}}


@pytest.mark.asyncio
async def test_register_duplicate_email(async_client: AsyncClient):
    await async_client.post("/api/users", json=_register_payload())
    resp = await async_client.post("/api/users", json=_register_payload(username="alice2"))
    assert resp.status_code == 422
    assert resp.json() == {"errors": {"body": ["Email already registered"]}}


@pytest.mark.asyncio
async def test_register_missing_field(async_client: AsyncClient):
    resp = await async_client.post("/api/users", json={"user": {
        "email": "a@x.io", "password": "password1",
    }})
    assert resp.status_code == 422
    assert resp.json()["errors"]["body"] == ["Username is required"]


@pytest.mark.asyncio
async def test_register_empty_username_is_required(async_client: AsyncClient):
    resp = await async_client.post("/api/users", json=_register_payload(username=""))
    assert resp.status_code == 422
    assert resp.json()["errors"]["body"] == ["Username is required"]


@pytest.mark.asyncio
async def test_register_invalid_email(async_client: AsyncClient):
    resp = await async_client.post("/api/users", json=_register_payload(email="not-an-email"))
    assert resp.status_code == 422
    assert resp.json()["errors"]["body"] == ["not-an-email is not a valid email"]


@pytest.mark.asyncio
async def test_register_short_password(async_client: AsyncClient):
    resp = await async_client.post("/api/users", json=_register_payload(password="short"))
    assert resp.status_code == 422
    assert resp.json()["errors"]["body"] == ["Password must be at least 8 characters long"]


@pytest.mark.asyncio
async def test_register_without_envelope_is_bad_request(async_client: AsyncClient):
    resp = await async_client.post("/api/users", json={
        "username": "alice", "email": "a@x.io", "password": "password1",
    })
    assert resp.status_code == 400
    assert resp.json() == {"errors": {"body": ["Invalid request body"]}}


@pytest.mark.asyncio
async def test_register_malformed_json_is_bad_request(async_client: AsyncClient):
    resp = await async_client.post(
        "/api/users",
        content=b'{"user": {"username": ',
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json() == {"errors": {"body": ["Invalid request body"]}}


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_login_after_register(async_client: AsyncClient):
    await async_client.post("/api/users", json=_register_payload())
    resp = await async_client.post("/api/users/login", json={"user": {
        "email": "a@x.io", "password": "password1",
    }})
    assert resp.status_code == 200
    user = resp.json()["user"]
    assert user["username"] == "alice"
    assert TOKEN_RE.match(user["token"])

    me = await async_client.get("/api/user", headers={"Authorization": f"Token {user['token']}"})
    assert me.status_code == 200
    assert me.json()["user"]["username"] == "alice"


@pytest.mark.asyncio
async def test_login_wrong_password(async_client: AsyncClient):
    await async_client.post("/api/users", json=_register_payload())
    resp = await async_client.post("/api/users/login", json={"user": {
        "email": "a@x.io", "password": "wrong-password",
    }})
    assert resp.status_code == 401
    assert resp.json() == {"errors": {"body": ["Invalid credentials"]}}


@pytest.mark.asyncio
async def test_login_unknown_email_looks_like_wrong_password(async_client: AsyncClient):
    resp = await async_client.post("/api/users/login", json={"user": {
        "email": "nobody@x.io", "password": "password1",
    }})
    assert resp.status_code == 401
    assert resp.json() == {"errors": {"body": ["Invalid credentials"]}}


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_current_user_requires_token(async_client: AsyncClient):
    resp = await async_client.get("/api/user")
    assert resp.status_code == 401
    assert resp.json() == {"errors": {"body": ["Unauthorized"]}}


@pytest.mark.asyncio
async def test_current_user_rejects_bearer_scheme(async_client: AsyncClient, make_user):
    alice = await make_user("alice")
    resp = await async_client.get("/api/user", headers={"Authorization": f"Bearer {alice['token']}"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_current_user_rejects_garbage_token(async_client: AsyncClient):
    resp = await async_client.get("/api/user", headers={"Authorization": "Token not.a.jwt"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_update_user_partial(async_client: AsyncClient, make_user):
    """Only the fields present in the payload change."""
    alice = await make_user("alice")
    resp = await async_client.put(
        "/api/user",
        json={"user": {"bio": "I like tea", "image": "https://img.example.com/a.png"}},
        headers=alice["headers"],
    )
    assert resp.status_code == 200
    user = resp.json()["user"]
    assert user["bio"] == "I like tea"
    assert user["image"] == "https://img.example.com/a.png"
    assert user["username"] == "alice"
    assert user["email"] == "alice@example.com"


@pytest.mark.asyncio
async def test_update_user_password_changes_login(async_client: AsyncClient, make_user):
    alice = await make_user("alice")
    resp = await async_client.put(
        "/api/user", json={"user": {"password": "new-password"}}, headers=alice["headers"],
    )
    assert resp.status_code == 200

    old = await async_client.post("/api/users/login", json={"user": {
        "email": "alice@example.com", "password": "password123",
    }})
    assert old.status_code == 401
    new = await async_client.post("/api/users/login", json={"user": {
        "email": "alice@example.com", "password": "new-password",
    }})
    assert new.status_code == 200


@pytest.mark.asyncio
async def test_update_user_to_taken_username(async_client: AsyncClient, make_user):
    alice = await make_user("alice")
    await make_user("bob")
    resp = await async_client.put(
        "/api/user", json={"user": {"username": "bob"}}, headers=alice["headers"],
    )
    assert resp.status_code == 422
    assert resp.json() == {"errors": {"body": ["Username already taken"]}}


@pytest.mark.asyncio
async def test_update_user_keeping_own_username(async_client: AsyncClient, make_user):
    alice = await make_user("alice")
    resp = await async_client.put(
        "/api/user", json={"user": {"username": "alice", "bio": "same name"}}, headers=alice["headers"],
    )
    assert resp.status_code == 200
    assert resp.json()["user"]["bio"] == "same name"
