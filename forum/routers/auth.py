from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from forum.database import get_db
from forum.schemas import LoginRequest, UserResponse
from forum.services import user_service

router = APIRouter(tags=["auth"])

@router.post("/login", response_model=UserResponse)
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    return await user_service.resolve_or_create(db, data.username)
