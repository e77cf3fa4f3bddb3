"""
Profile and follow-graph tests.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.models import follows


async def _follow_rows(db: AsyncSession) -> int:
    return (await db.execute(select(func.count()).select_from(follows))).scalar_one()


@pytest.mark.asyncio
async def test_get_profile_anonymous(async_client: AsyncClient, make_user):
    await make_user("bob")
    resp = await async_client.get("/api/profiles/bob")
    assert resp.status_code == 200
    assert resp.json() == {"profile": {
        "username": "bob", "bio": None, "image": None, "following": False,
    }}


@pytest.mark.asyncio
async def test_get_unknown_profile(async_client: AsyncClient):
    resp = await async_client.get("/api/profiles/ghost")
    assert resp.status_code == 404
    assert resp.json() == {"errors": {"body": ["User not found"]}}


@pytest.mark.asyncio
async def test_get_profile_with_bad_token_is_anonymous(async_client: AsyncClient, make_user):
    """Optional-auth endpoints treat an invalid token as no viewer."""
    await make_user("bob")
    resp = await async_client.get("/api/profiles/bob", headers={"Authorization": "Token nope"})
    assert resp.status_code == 200
    assert resp.json()["profile"]["following"] is False


@pytest.mark.asyncio
async def test_follow_is_idempotent(async_client: AsyncClient, make_user, db_session: AsyncSession):
    alice = await make_user("alice")
    await make_user("bob")

    for _ in range(2):
        resp = await async_client.post("/api/profiles/bob/follow", headers=alice["headers"])
        assert resp.status_code == 200
        assert resp.json()["profile"]["following"] is True
    assert await _follow_rows(db_session) == 1

    resp = await async_client.get("/api/profiles/bob", headers=alice["headers"])
    assert resp.json()["profile"]["following"] is True
    # Someone else's view is unaffected.
    resp = await async_client.get("/api/profiles/bob")
    assert resp.json()["profile"]["following"] is False


@pytest.mark.asyncio
async def test_unfollow_is_idempotent(async_client: AsyncClient, make_user, db_session: AsyncSession):
    alice = await make_user("alice")
    await make_user("bob")
    await async_client.post("/api/profiles/bob/follow", headers=alice["headers"])

    for _ in range(2):
        resp = await async_client.delete("/api/profiles/bob/follow", headers=alice["headers"])
        assert resp.status_code == 200
        assert resp.json()["profile"]["following"] is False
    assert await _follow_rows(db_session) == 0


@pytest.mark.asyncio
async def test_cannot_follow_self(async_client: AsyncClient, make_user, db_session: AsyncSession):
    alice = await make_user("alice")
    resp = await async_client.post("/api/profiles/alice/follow", headers=alice["headers"])
    assert resp.status_code == 400
    assert resp.json() == {"errors": {"body": ["Cannot follow yourself"]}}

    resp = await async_client.delete("/api/profiles/alice/follow", headers=alice["headers"])
    assert resp.status_code == 400
    assert await _follow_rows(db_session) == 0


@pytest.mark.asyncio
async def test_follow_unknown_user(async_client: AsyncClient, make_user):
    alice = await make_user("alice")
    resp = await async_client.post("/api/profiles/ghost/follow", headers=alice["headers"])
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_follow_requires_auth(async_client: AsyncClient, make_user):
    await make_user("bob")
    resp = await async_client.post("/api/profiles/bob/follow")
    assert resp.status_code == 401
