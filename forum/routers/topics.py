from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from forum.database import get_db
from forum.schemas import TopicResponse
from forum.services import topic_service

router = APIRouter(prefix="/topics", tags=["topics"])

@router.get("", response_model=list[TopicResponse])
async def list_topics(db: AsyncSession = Depends(get_db)):
    return await topic_service.list_topics(db)
