"""
Profile service: public user profiles and the follow graph.

Follow rows are written with a conditional insert and removed with a
plain DELETE, so both operations are idempotent without a prior
existence check.
"""
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.errors import ErrorKind, ServiceError
from conduit.models import User, follows
from conduit.projections import profile_to_dict
from conduit.queries import fetch_profile, insert_ignore


async def _get_target(db: AsyncSession, viewer_id: int, username: str) -> User:
    result = await db.execute(select(User).where(User.username == username))
    target = result.scalar_one_or_none()
    if target is None:
        raise ServiceError(ErrorKind.USER_NOT_FOUND)
    if target.id == viewer_id:
        raise ServiceError(ErrorKind.CANNOT_FOLLOW_SELF)
    return target


async def get_profile(db: AsyncSession, username: str, viewer_id: int | None = None) -> dict:
    profile = await fetch_profile(db, viewer_id, User.username == username)
    if profile is None:
        raise ServiceError(ErrorKind.USER_NOT_FOUND)
    return profile


async def follow_user(db: AsyncSession, viewer_id: int, username: str) -> dict:
    target = await _get_target(db, viewer_id, username)
    await insert_ignore(db, follows, [{"follower_id": viewer_id, "followee_id": target.id}])
    return profile_to_dict(target, following=True)


async def unfollow_user(db: AsyncSession, viewer_id: int, username: str) -> dict:
    target = await _get_target(db, viewer_id, username)
    await db.execute(
        delete(follows).where(
            follows.c.follower_id == viewer_id, follows.c.followee_id == target.id
        )
    )
    return profile_to_dict(target, following=False)
