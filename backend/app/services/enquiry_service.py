"""
Enquiry lifecycle.

    PENDING --performer responds--> ACCEPTED | DECLINED
    PENDING --ENQUIRY_EXPIRY_DAYS pass--> EXPIRED

An accepted enquiry is what the booking service confirms into a booking.
"""

from datetime import timedelta
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import bad_request, forbidden, not_found
from app.core.logging import get_logger
from app.core.metrics import record_enquiry_transition
from app.db.base import utcnow
from app.models.enquiry import Enquiry, EnquiryStatus
from app.models.performer import Performer
from app.models.user import User, UserStatus, UserType
from app.schemas.common import Pagination
from app.schemas.enquiry import EnquiryCreate, EnquiryRespond
from app.services.notification_service import notify
from app.services.performer_service import get_performer_for_user

logger = get_logger(__name__)
settings = get_settings()


async def load_enquiry(db: AsyncSession, enquiry_id: int) -> Enquiry:
    result = await db.execute(
        select(Enquiry)
        .where(Enquiry.id == enquiry_id)
        .execution_options(populate_existing=True)
    )
    enquiry = result.scalar_one_or_none()
    if not enquiry:
        raise not_found("Enquiry", "ENQUIRY_NOT_FOUND")
    return enquiry


async def create_enquiry(db: AsyncSession, client: User, data: EnquiryCreate) -> Enquiry:
    result = await db.execute(
        select(Performer)
        .join(User, User.id == Performer.user_id)
        .where(Performer.id == data.performer_id, User.status == UserStatus.ACTIVE)
    )
    performer = result.scalar_one_or_none()
    if not performer:
        raise not_found("Performer", "PERFORMER_NOT_FOUND")

    enquiry = Enquiry(
        client_id=client.id,
        status=EnquiryStatus.PENDING,
        expires_at=utcnow() + timedelta(days=settings.ENQUIRY_EXPIRY_DAYS),
        **data.model_dump(),
    )
    db.add(enquiry)
    await db.flush()

    record_enquiry_transition(EnquiryStatus.PENDING)
    logger.info(
        "enquiry_created",
        enquiry_id=enquiry.id,
        client_id=client.id,
        performer_id=performer.id,
        event_date=str(data.event_date),
    )
    notify(
        performer.user.email,
        "enquiry_received",
        enquiry_id=enquiry.id,
        client_name=client.full_name,
        event_type=data.event_type,
    )
    return await load_enquiry(db, enquiry.id)


async def get_enquiry(db: AsyncSession, enquiry_id: int, user: User) -> Enquiry:
    enquiry = await load_enquiry(db, enquiry_id)
    if user.user_type == UserType.ADMIN or enquiry.client_id == user.id:
        return enquiry
    if enquiry.performer.user_id == user.id:
        return enquiry
    raise forbidden("You do not have access to this enquiry")


async def scope_for_user(db: AsyncSession, user: User, model) -> list:
    """
    Row filter limiting `model` (Enquiry or Booking) to what the caller may see.
    Raises 404 for a performer user with no profile yet.
    """
    if user.user_type == UserType.CLIENT:
        return [model.client_id == user.id]
    if user.user_type == UserType.PERFORMER:
        performer = await get_performer_for_user(db, user.id)
        if not performer:
            raise not_found("Performer profile", "PERFORMER_NOT_FOUND")
        return [model.performer_id == performer.id]
    return []


async def list_enquiries(
    db: AsyncSession,
    user: User,
    page: int = 1,
    limit: int = 20,
    status_filter: Optional[str] = None,
    performer_id: Optional[int] = None,
    client_id: Optional[int] = None,
) -> dict:
    conditions = await scope_for_user(db, user, Enquiry)
    if status_filter:
        conditions.append(Enquiry.status == status_filter)
    if performer_id is not None:
        conditions.append(Enquiry.performer_id == performer_id)
    if client_id is not None:
        conditions.append(Enquiry.client_id == client_id)

    total = await db.scalar(select(func.count(Enquiry.id)).where(*conditions))
    result = await db.execute(
        select(Enquiry)
        .where(*conditions)
        .order_by(Enquiry.created_at.desc(), Enquiry.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return {
        "enquiries": list(result.scalars().all()),
        "pagination": Pagination.build(page, limit, total or 0),
    }


async def respond_to_enquiry(db: AsyncSession, enquiry_id: int, user: User, data: EnquiryRespond) -> Enquiry:
    enquiry = await load_enquiry(db, enquiry_id)
    if enquiry.performer.user_id != user.id:
        raise forbidden("You can only respond to your own enquiries")

    if enquiry.status != EnquiryStatus.PENDING:
        raise bad_request(f"Enquiry has already been {enquiry.status.lower()}", "ENQUIRY_NOT_PENDING")

    if enquiry.expires_at and enquiry.expires_at < utcnow():
        enquiry.status = EnquiryStatus.EXPIRED
        # Keep the expiry even though the request fails
        await db.commit()
        record_enquiry_transition(EnquiryStatus.EXPIRED)
        logger.info("enquiry_expired", enquiry_id=enquiry.id)
        raise bad_request("Enquiry has expired", "ENQUIRY_EXPIRED")

    enquiry.status = data.status
    enquiry.performer_response = data.performer_response
    enquiry.quoted_price = data.quoted_price
    enquiry.response_date = utcnow()
    await db.flush()

    record_enquiry_transition(data.status)
    logger.info(
        "enquiry_responded",
        enquiry_id=enquiry.id,
        status=data.status,
        quoted_price=str(data.quoted_price) if data.quoted_price is not None else None,
    )
    notify(
        enquiry.client.email,
        "enquiry_" + data.status.lower(),
        enquiry_id=enquiry.id,
        performer_name=enquiry.performer.display_name,
    )
    return await load_enquiry(db, enquiry.id)


async def expire_stale_enquiries(db: AsyncSession) -> int:
    """Mark PENDING enquiries past expires_at as EXPIRED. Returns the number updated."""
    result = await db.execute(
        update(Enquiry)
        .where(Enquiry.status == EnquiryStatus.PENDING, Enquiry.expires_at < utcnow())
        .values(status=EnquiryStatus.EXPIRED, updated_at=utcnow())
    )
    count = result.rowcount or 0
    for _ in range(count):
        record_enquiry_transition(EnquiryStatus.EXPIRED)
    logger.info("enquiries_expired", count=count)
    return count
