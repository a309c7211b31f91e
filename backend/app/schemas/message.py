"""
Pydantic schemas for message threads.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.common import Pagination


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)
    file_url: Optional[str] = Field(default=None, max_length=500)


class MessageResponse(BaseModel):
    id: int
    thread_id: int
    sender_id: int
    content: str
    file_url: Optional[str] = None
    is_read: bool
    sent_at: datetime

    model_config = {"from_attributes": True}


class ThreadResponse(BaseModel):
    id: int
    enquiry_id: int
    booking_id: Optional[int] = None
    client_user_id: int
    performer_user_id: int
    is_archived: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ThreadSummary(ThreadResponse):
    event_type: Optional[str] = None
    last_message: Optional[MessageResponse] = None
    unread_count: int = 0


class ThreadListResponse(BaseModel):
    threads: list[ThreadSummary]
    pagination: Pagination


class ThreadDetailResponse(BaseModel):
    thread: ThreadResponse
    messages: list[MessageResponse]
