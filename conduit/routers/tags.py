from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from conduit.database import get_db
from conduit.services import tag_service

router = APIRouter(prefix="/api/tags", tags=["tags"])

@router.get("")
async def get_tags(db: AsyncSession = Depends(get_db)):
    return {"tags": await tag_service.get_tags(db)}
