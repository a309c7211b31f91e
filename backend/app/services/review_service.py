"""
Client reviews of completed bookings.

A performer's average_rating is the mean of their three per-dimension
averages (overall, quality, communication) across all reviews.
"""

from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import bad_request, forbidden, not_found
from app.core.logging import get_logger
from app.models.booking import BookingStatus
from app.models.performer import Performer
from app.models.review import Review
from app.models.user import User
from app.schemas.common import Pagination
from app.schemas.review import ReviewCreate
from app.services.booking_service import load_booking
from app.services.cache_service import invalidate_performer_cache
from app.services.notification_service import notify

logger = get_logger(__name__)


async def recalculate_performer_rating(db: AsyncSession, performer_id: int) -> None:
    row = (await db.execute(
        select(
            func.count(Review.id),
            func.avg(Review.rating_overall),
            func.avg(Review.rating_quality),
            func.avg(Review.rating_communication),
        ).where(Review.performer_id == performer_id)
    )).one()
    total, overall, quality, communication = row
    average = 0.0
    if total:
        average = round((float(overall) + float(quality) + float(communication)) / 3, 2)

    await db.execute(
        update(Performer)
        .where(Performer.id == performer_id)
        .values(average_rating=average, total_reviews=total)
    )
    logger.info("performer_rating_updated", performer_id=performer_id, average_rating=average, total_reviews=total)


async def create_review(db: AsyncSession, booking_id: int, user: User, data: ReviewCreate) -> Review:
    booking = await load_booking(db, booking_id)
    if booking.client_id != user.id:
        raise forbidden("Only the booking client can leave a review")
    if booking.status != BookingStatus.COMPLETED:
        raise bad_request("Reviews can only be left for completed bookings", "BOOKING_NOT_COMPLETED")
    if booking.review is not None:
        raise bad_request("Review already exists for this booking", "REVIEW_EXISTS")

    review = Review(
        booking_id=booking.id,
        client_id=user.id,
        performer_id=booking.performer_id,
        is_verified=True,
        **data.model_dump(),
    )
    db.add(review)
    await db.flush()
    await db.refresh(review)

    await recalculate_performer_rating(db, booking.performer_id)
    await invalidate_performer_cache()

    logger.info(
        "review_created",
        review_id=review.id,
        booking_id=booking.id,
        performer_id=booking.performer_id,
        rating=data.rating_overall,
    )
    notify(booking.performer.user.email, "review_received", booking_id=booking.id, rating=data.rating_overall)
    return review


async def list_reviews(
    db: AsyncSession,
    performer_id: int,
    page: int = 1,
    limit: int = 10,
    event_type: Optional[str] = None,
    min_rating: Optional[int] = None,
    is_verified: Optional[bool] = None,
) -> dict:
    if not await db.get(Performer, performer_id):
        raise not_found("Performer", "PERFORMER_NOT_FOUND")

    conditions = [Review.performer_id == performer_id]
    if event_type:
        conditions.append(Review.event_type == event_type)
    if min_rating is not None:
        conditions.append(Review.rating_overall >= min_rating)
    if is_verified is not None:
        conditions.append(Review.is_verified.is_(is_verified))

    result = await db.execute(
        select(Review)
        .where(*conditions)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    reviews = list(result.scalars().all())

    total, overall, quality, communication = (await db.execute(
        select(
            func.count(Review.id),
            func.avg(Review.rating_overall),
            func.avg(Review.rating_quality),
            func.avg(Review.rating_communication),
        ).where(*conditions)
    )).one()

    distribution = {rating: 0 for rating in range(1, 6)}
    counts = await db.execute(
        select(Review.rating_overall, func.count(Review.id)).where(*conditions).group_by(Review.rating_overall)
    )
    for rating, count in counts.all():
        distribution[rating] = count

    return {
        "reviews": reviews,
        "statistics": {
            "average_overall": round(float(overall or 0), 2),
            "average_quality": round(float(quality or 0), 2),
            "average_communication": round(float(communication or 0), 2),
            "total_reviews": total,
            "rating_distribution": distribution,
        },
        "pagination": Pagination.build(page, limit, total),
    }
