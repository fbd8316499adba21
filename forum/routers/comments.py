from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
from forum.database import get_db
from forum.schemas import CommentCreate, CommentDelete, CommentResponse, CommentUpdate
from forum.services import comment_service

router = APIRouter(prefix="/comments", tags=["comments"])

@router.get("", response_model=list[CommentResponse])
async def list_comments(
    post_id: int | None = Query(None, alias="postId"),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.list_comments(db, post_id)

@router.post("", status_code=201, response_model=CommentResponse)
async def create_comment(data: CommentCreate, db: AsyncSession = Depends(get_db)):
    return await comment_service.create_comment(db, data.post_id, data.user_id, data.content)

@router.put("", response_model=CommentResponse)
async def update_comment(data: CommentUpdate, db: AsyncSession = Depends(get_db)):
    return await comment_service.update_comment(db, data.id, data.user_id, data.content)

@router.delete("", status_code=204, response_class=Response)
async def delete_comment(data: CommentDelete, db: AsyncSession = Depends(get_db)):
    await comment_service.delete_comment(db, data.id, data.user_id)
