"""
Admin-curated testimonials. A performer has at most one featured testimonial.
"""

from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import not_found
from app.core.logging import get_logger
from app.models.performer import Performer
from app.models.review import Testimonial
from app.models.user import User
from app.schemas.common import Pagination
from app.schemas.review import TestimonialCreate

logger = get_logger(__name__)


async def _unfeature_others(db: AsyncSession, performer_id: int, keep_id: Optional[int] = None) -> None:
    stmt = (
        update(Testimonial)
        .where(Testimonial.performer_id == performer_id, Testimonial.is_featured.is_(True))
        .values(is_featured=False)
        .execution_options(synchronize_session="fetch")
    )
    if keep_id is not None:
        stmt = stmt.where(Testimonial.id != keep_id)
    await db.execute(stmt)


async def create_testimonial(db: AsyncSession, admin: User, data: TestimonialCreate) -> Testimonial:
    if not await db.get(Performer, data.performer_id):
        raise not_found("Performer", "PERFORMER_NOT_FOUND")

    if data.is_featured:
        await _unfeature_others(db, data.performer_id)

    testimonial = Testimonial(submitted_by=admin.id, **data.model_dump())
    db.add(testimonial)
    await db.flush()
    await db.refresh(testimonial)

    logger.info(
        "testimonial_created",
        testimonial_id=testimonial.id,
        performer_id=data.performer_id,
        featured=data.is_featured,
    )
    return testimonial


async def list_testimonials(
    db: AsyncSession,
    performer_id: int,
    page: int = 1,
    limit: int = 10,
    event_type: Optional[str] = None,
    is_featured: Optional[bool] = None,
) -> dict:
    if not await db.get(Performer, performer_id):
        raise not_found("Performer", "PERFORMER_NOT_FOUND")

    conditions = [Testimonial.performer_id == performer_id]
    if event_type:
        conditions.append(Testimonial.event_type == event_type)
    if is_featured is not None:
        conditions.append(Testimonial.is_featured.is_(is_featured))

    total = await db.scalar(select(func.count(Testimonial.id)).where(*conditions))
    result = await db.execute(
        select(Testimonial)
        .where(*conditions)
        .order_by(Testimonial.is_featured.desc(), Testimonial.created_at.desc(), Testimonial.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    by_type = await db.execute(
        select(Testimonial.event_type, func.count(Testimonial.id))
        .where(Testimonial.performer_id == performer_id)
        .group_by(Testimonial.event_type)
    )
    all_total = await db.scalar(select(func.count(Testimonial.id)).where(Testimonial.performer_id == performer_id))
    featured = await db.scalar(
        select(func.count(Testimonial.id)).where(
            Testimonial.performer_id == performer_id, Testimonial.is_featured.is_(True)
        )
    )

    return {
        "testimonials": list(result.scalars().all()),
        "statistics": {
            "total": all_total or 0,
            "featured": featured or 0,
            "by_event_type": {event_type: count for event_type, count in by_type.all()},
        },
        "pagination": Pagination.build(page, limit, total or 0),
    }


async def toggle_featured(db: AsyncSession, testimonial_id: int) -> Testimonial:
    testimonial = await db.get(Testimonial, testimonial_id)
    if not testimonial:
        raise not_found("Testimonial", "TESTIMONIAL_NOT_FOUND")

    featured = not testimonial.is_featured
    if featured:
        await _unfeature_others(db, testimonial.performer_id, keep_id=testimonial.id)
    testimonial.is_featured = featured
    await db.flush()

    logger.info("testimonial_featured_toggled", testimonial_id=testimonial.id, featured=featured)
    return testimonial
