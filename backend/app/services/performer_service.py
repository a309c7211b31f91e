"""
Performer profiles: create, update, fetch and search.

Search responses are cached per filter set; any profile change or new
review drops every cached search page (see cache_service).
"""

from typing import Optional

from sqlalchemy import and_, exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import status

from app.core.exceptions import AppError, forbidden, not_found
from app.core.logging import get_logger
from app.models.category import Category, PerformerCategory
from app.models.performer import Performer
from app.models.review import Review, Testimonial
from app.models.user import User, UserStatus, UserType
from app.schemas.common import Pagination
from app.schemas.performer import (
    PerformerCategoryIn,
    PerformerCreate,
    PerformerListItem,
    PerformerSearchParams,
    PerformerSearchResponse,
    PerformerUpdate,
)
from app.services.cache_service import (
    get_cached,
    invalidate_performer_cache,
    make_performer_search_key,
    set_cached,
)

logger = get_logger(__name__)

SORT_COLUMNS = {
    "price": Performer.base_price,
    "rating": Performer.average_rating,
    "popularity": Performer.total_bookings,
    "newest": Performer.created_at,
}

DETAIL_TESTIMONIAL_LIMIT = 5
DETAIL_REVIEW_LIMIT = 10


async def load_performer(db: AsyncSession, performer_id: int) -> Performer:
    """Fetch a performer with user and categories loaded, replacing any stale identity-map copy."""
    result = await db.execute(
        select(Performer)
        .where(Performer.id == performer_id)
        .execution_options(populate_existing=True)
    )
    performer = result.scalar_one_or_none()
    if not performer:
        raise not_found("Performer", "PERFORMER_NOT_FOUND")
    return performer


async def get_performer_for_user(db: AsyncSession, user_id: int) -> Performer | None:
    result = await db.execute(select(Performer).where(Performer.user_id == user_id))
    return result.scalar_one_or_none()


async def _validate_categories(db: AsyncSession, categories: list[PerformerCategoryIn]) -> None:
    if sum(1 for c in categories if c.is_primary) > 1:
        raise AppError(
            status.HTTP_400_BAD_REQUEST,
            "Only one category can be marked as primary",
            "MULTIPLE_PRIMARY_CATEGORIES",
        )

    ids = {c.category_id for c in categories}
    found = await db.scalar(select(func.count(Category.id)).where(Category.id.in_(ids)))
    if found != len(ids):
        raise AppError(
            status.HTTP_400_BAD_REQUEST,
            "One or more categories do not exist",
            "INVALID_CATEGORIES",
        )


async def create_performer(db: AsyncSession, user: User, data: PerformerCreate) -> Performer:
    if await get_performer_for_user(db, user.id):
        raise AppError(status.HTTP_409_CONFLICT, "Performer profile already exists", "PROFILE_EXISTS")

    await _validate_categories(db, data.categories)

    performer = Performer(
        user_id=user.id,
        **data.model_dump(exclude={"categories"}),
    )
    performer.categories = [
        PerformerCategory(category_id=c.category_id, is_primary=c.is_primary)
        for c in data.categories
    ]
    db.add(performer)
    await db.flush()

    logger.info(
        "performer_created",
        performer_id=performer.id,
        user_id=user.id,
        categories=[c.category_id for c in data.categories],
    )
    await invalidate_performer_cache()
    return await load_performer(db, performer.id)


async def update_performer(db: AsyncSession, performer_id: int, user: User, data: PerformerUpdate) -> Performer:
    performer = await load_performer(db, performer_id)
    if performer.user_id != user.id and user.user_type != UserType.ADMIN:
        raise forbidden("You can only update your own profile")

    changes = data.model_dump(exclude_unset=True, exclude={"categories"})
    for field, value in changes.items():
        setattr(performer, field, value)

    if data.categories is not None:
        await _validate_categories(db, data.categories)
        # delete-orphan cascade removes the old links
        performer.categories.clear()
        await db.flush()
        performer.categories.extend(
            PerformerCategory(category_id=c.category_id, is_primary=c.is_primary)
            for c in data.categories
        )

    await db.flush()
    logger.info("performer_updated", performer_id=performer.id, fields=sorted(changes), by=user.id)
    await invalidate_performer_cache()
    return await load_performer(db, performer.id)


async def get_performer_detail(db: AsyncSession, performer_id: int, viewer: Optional[User] = None) -> dict:
    """Public profile. Profiles of inactive or suspended accounts are visible to admins only."""
    performer = await load_performer(db, performer_id)
    if performer.user.status != UserStatus.ACTIVE and not (viewer and viewer.user_type == UserType.ADMIN):
        raise not_found("Performer", "PERFORMER_NOT_FOUND")

    testimonials = await db.execute(
        select(Testimonial)
        .where(Testimonial.performer_id == performer.id, Testimonial.is_featured.is_(True))
        .order_by(Testimonial.created_at.desc())
        .limit(DETAIL_TESTIMONIAL_LIMIT)
    )
    reviews = await db.execute(
        select(Review)
        .where(Review.performer_id == performer.id)
        .order_by(Review.created_at.desc())
        .limit(DETAIL_REVIEW_LIMIT)
    )
    return {
        "performer": performer,
        "testimonials": list(testimonials.scalars().all()),
        "reviews": list(reviews.scalars().all()),
    }


def _search_conditions(params: PerformerSearchParams) -> list:
    conditions = [User.status == UserStatus.ACTIVE]

    if params.query:
        pattern = f"%{params.query.strip()}%"
        conditions.append(
            or_(
                Performer.business_name.ilike(pattern),
                Performer.bio.ilike(pattern),
                Performer.location.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
            )
        )
    if params.category:
        conditions.append(
            exists().where(
                and_(
                    PerformerCategory.performer_id == Performer.id,
                    PerformerCategory.category_id == Category.id,
                    Category.slug == params.category,
                )
            )
        )
    if params.location:
        conditions.append(Performer.location.ilike(f"%{params.location.strip()}%"))
    if params.min_price is not None:
        conditions.append(Performer.base_price >= params.min_price)
    if params.max_price is not None:
        conditions.append(Performer.base_price <= params.max_price)
    if params.min_rating is not None:
        conditions.append(Performer.average_rating >= params.min_rating)
    if params.is_verified is not None:
        conditions.append(Performer.is_verified.is_(params.is_verified))
    if params.is_featured is not None:
        conditions.append(Performer.is_featured.is_(params.is_featured))
    return conditions


async def search_performers(db: AsyncSession, params: PerformerSearchParams) -> dict:
    cache_key = make_performer_search_key(params.model_dump(mode="json"))
    cached = await get_cached(cache_key)
    if cached:
        return cached

    conditions = _search_conditions(params)

    total = await db.scalar(
        select(func.count(Performer.id))
        .join(User, User.id == Performer.user_id)
        .where(*conditions)
    )

    sort_column = SORT_COLUMNS[params.sort_by]
    ordering = sort_column.asc() if params.sort_order == "asc" else sort_column.desc()

    result = await db.execute(
        select(Performer)
        .join(User, User.id == Performer.user_id)
        .where(*conditions)
        .order_by(ordering, Performer.id.asc())
        .offset((params.page - 1) * params.limit)
        .limit(params.limit)
    )

    response = PerformerSearchResponse(
        performers=[PerformerListItem.model_validate(p) for p in result.scalars().all()],
        pagination=Pagination.build(params.page, params.limit, total or 0),
    ).model_dump(mode="json")

    await set_cached(cache_key, response)
    return response
