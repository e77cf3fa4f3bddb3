from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from conduit.database import get_db
from conduit.dependencies import get_current_user_id
from conduit.schemas import LoginRequest, RegisterRequest, UpdateUserRequest
from conduit.services import user_service

router = APIRouter(prefix="/api", tags=["users"])

@router.post("/users", status_code=201)
async def register(data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    return {"user": await user_service.register(db, data.user)}

@router.post("/users/login")
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    return {"user": await user_service.login(db, data.user.email, data.user.password)}

@router.get("/user")
async def get_current_user(
    viewer_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"user": await user_service.get_current_user(db, viewer_id)}

@router.put("/user")
async def update_current_user(
    data: UpdateUserRequest,
    viewer_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"user": await user_service.update_user(db, viewer_id, data.user)}
