"""
Client/performer messaging. One thread per enquiry; only the two
participants can read or write it.
"""

from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import bad_request, forbidden, not_found
from app.core.logging import get_logger
from app.db.base import utcnow
from app.models.booking import Booking
from app.models.message import Message, MessageThread
from app.models.user import User
from app.schemas.common import Pagination
from app.schemas.message import MessageCreate
from app.services.enquiry_service import load_enquiry
from app.services.notification_service import notify

logger = get_logger(__name__)


async def _thread_messages(db: AsyncSession, thread_id: int) -> list[Message]:
    result = await db.execute(
        select(Message).where(Message.thread_id == thread_id).order_by(Message.sent_at.asc(), Message.id.asc())
    )
    return list(result.scalars().all())


async def get_or_create_thread(db: AsyncSession, enquiry_id: int, user: User) -> tuple[MessageThread, list[Message], bool]:
    """Return (thread, messages, created)."""
    enquiry = await load_enquiry(db, enquiry_id)
    performer_user_id = enquiry.performer.user_id
    if user.id not in (enquiry.client_id, performer_user_id):
        raise forbidden("Not authorized to access this thread")

    result = await db.execute(select(MessageThread).where(MessageThread.enquiry_id == enquiry.id))
    thread = result.scalar_one_or_none()
    if thread:
        return thread, await _thread_messages(db, thread.id), False

    booking_id = await db.scalar(select(Booking.id).where(Booking.enquiry_id == enquiry.id))
    thread = MessageThread(
        enquiry_id=enquiry.id,
        booking_id=booking_id,
        client_user_id=enquiry.client_id,
        performer_user_id=performer_user_id,
    )
    db.add(thread)
    await db.flush()
    await db.refresh(thread)

    logger.info("message_thread_created", thread_id=thread.id, enquiry_id=enquiry.id, by=user.id)
    return thread, [], True


async def _load_thread_for(db: AsyncSession, thread_id: int, user: User) -> MessageThread:
    result = await db.execute(select(MessageThread).where(MessageThread.id == thread_id))
    thread = result.scalar_one_or_none()
    if not thread:
        raise not_found("Thread", "THREAD_NOT_FOUND")
    if not thread.has_participant(user.id):
        raise forbidden("Not authorized to access this thread")
    return thread


async def get_thread(db: AsyncSession, thread_id: int, user: User) -> tuple[MessageThread, list[Message]]:
    thread = await _load_thread_for(db, thread_id, user)
    return thread, await _thread_messages(db, thread.id)


async def list_threads(
    db: AsyncSession,
    user: User,
    page: int = 1,
    limit: int = 20,
    is_archived: Optional[bool] = None,
) -> dict:
    conditions = [or_(MessageThread.client_user_id == user.id, MessageThread.performer_user_id == user.id)]
    if is_archived is not None:
        conditions.append(MessageThread.is_archived.is_(is_archived))

    total = await db.scalar(select(func.count(MessageThread.id)).where(*conditions))
    result = await db.execute(
        select(MessageThread)
        .where(*conditions)
        .order_by(MessageThread.updated_at.desc(), MessageThread.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    threads = list(result.scalars().all())

    summaries = []
    for thread in threads:
        last = await db.execute(
            select(Message)
            .where(Message.thread_id == thread.id)
            .order_by(Message.sent_at.desc(), Message.id.desc())
            .limit(1)
        )
        unread = await db.scalar(
            select(func.count(Message.id)).where(
                Message.thread_id == thread.id,
                Message.sender_id != user.id,
                Message.is_read.is_(False),
            )
        )
        summaries.append({
            "thread": thread,
            "event_type": thread.enquiry.event_type,
            "last_message": last.scalar_one_or_none(),
            "unread_count": unread or 0,
        })

    return {"threads": summaries, "pagination": Pagination.build(page, limit, total or 0)}


async def send_message(db: AsyncSession, thread_id: int, user: User, data: MessageCreate) -> Message:
    thread = await _load_thread_for(db, thread_id, user)

    message = Message(
        thread_id=thread.id,
        sender_id=user.id,
        content=data.content,
        file_url=data.file_url,
    )
    db.add(message)
    thread.updated_at = utcnow()
    await db.flush()
    await db.refresh(message)

    recipient_id = thread.performer_user_id if user.id == thread.client_user_id else thread.client_user_id
    recipient = await db.get(User, recipient_id)
    logger.info("message_sent", thread_id=thread.id, message_id=message.id, sender_id=user.id)
    if recipient:
        notify(recipient.email, "new_message", thread_id=thread.id, sender_name=user.full_name)
    return message


async def mark_message_read(db: AsyncSession, message_id: int, user: User) -> Message:
    message = await db.get(Message, message_id)
    if not message:
        raise not_found("Message", "MESSAGE_NOT_FOUND")

    thread = await db.get(MessageThread, message.thread_id)
    if not thread.has_participant(user.id):
        raise forbidden("Not authorized to mark this message as read")
    if message.sender_id == user.id:
        raise bad_request("Cannot mark your own message as read", "OWN_MESSAGE")

    message.is_read = True
    await db.flush()
    logger.info("message_read", message_id=message.id, by=user.id)
    return message
