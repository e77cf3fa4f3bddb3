from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from conduit.database import get_db
from conduit.dependencies import get_current_user_id, get_optional_user_id
from conduit.services import profile_service

router = APIRouter(prefix="/api/profiles", tags=["profiles"])

@router.get("/{username}")
async def get_profile(
    username: str,
    viewer_id: int | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"profile": await profile_service.get_profile(db, username, viewer_id)}

@router.post("/{username}/follow")
async def follow_user(
    username: str,
    viewer_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"profile": await profile_service.follow_user(db, viewer_id, username)}

@router.delete("/{username}/follow")
async def unfollow_user(
    username: str,
    viewer_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"profile": await profile_service.unfollow_user(db, viewer_id, username)}
