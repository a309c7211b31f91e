"""
Messaging between a client and a performer about an enquiry.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user
from app.db.session import get_db
from app.models.user import User
from app.schemas.message import (
    MessageCreate,
    MessageResponse,
    ThreadDetailResponse,
    ThreadListResponse,
    ThreadResponse,
    ThreadSummary,
)
from app.services.message_service import get_or_create_thread, get_thread, list_threads, mark_message_read, send_message

router = APIRouter(prefix="/messages", tags=["Messages"])


@router.post("/threads/{enquiry_id}", response_model=ThreadDetailResponse)
async def open_thread(
    enquiry_id: int,
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Return the enquiry's thread, creating it (201) on first use."""
    thread, messages, created = await get_or_create_thread(db, enquiry_id, user)
    if created:
        response.status_code = status.HTTP_201_CREATED
    return {"thread": thread, "messages": messages}


@router.get("/threads", response_model=ThreadListResponse)
async def list_threads_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    is_archived: Optional[bool] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await list_threads(db, user, page, limit, is_archived)
    threads = [
        ThreadSummary(
            **ThreadResponse.model_validate(item["thread"]).model_dump(),
            event_type=item["event_type"],
            last_message=MessageResponse.model_validate(item["last_message"]) if item["last_message"] else None,
            unread_count=item["unread_count"],
        )
        for item in result["threads"]
    ]
    return {"threads": threads, "pagination": result["pagination"]}


@router.get("/threads/{thread_id}", response_model=ThreadDetailResponse)
async def get_thread_endpoint(
    thread_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    thread, messages = await get_thread(db, thread_id, user)
    return {"thread": thread, "messages": messages}


@router.post("/threads/{thread_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message_endpoint(
    thread_id: int,
    data: MessageCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await send_message(db, thread_id, user, data)


@router.patch("/messages/{message_id}/read", response_model=MessageResponse)
async def mark_read_endpoint(
    message_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await mark_message_read(db, message_id, user)
