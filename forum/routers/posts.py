from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
from forum.database import get_db
from forum.schemas import PostCreate, PostDelete, PostResponse, PostUpdate
from forum.services import post_service

router = APIRouter(prefix="/posts", tags=["posts"])

@router.get("", response_model=list[PostResponse])
async def list_posts(
    topic_id: int | None = Query(None, alias="topicId"),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.list_posts(db, topic_id)

@router.post("", status_code=201, response_model=PostResponse)
async def create_post(data: PostCreate, db: AsyncSession = Depends(get_db)):
    return await post_service.create_post(db, data.topic_id, data.user_id, data.title, data.content)

@router.put("", response_model=PostResponse)
async def update_post(data: PostUpdate, db: AsyncSession = Depends(get_db)):
    return await post_service.update_post(db, data.id, data.user_id, data.title, data.content)

@router.delete("", status_code=204, response_class=Response)
async def delete_post(data: PostDelete, db: AsyncSession = Depends(get_db)):
    await post_service.delete_post(db, data.id, data.user_id)
