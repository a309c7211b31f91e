"""
Category browsing. Listing responses are cached in Redis.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import not_found
from app.core.logging import get_logger
from app.models.category import Category, PerformerCategory
from app.models.performer import Performer
from app.schemas.category import CategoryListResponse, CategoryResponse
from app.schemas.common import Pagination
from app.schemas.performer import PerformerListItem
from app.services.cache_service import get_cached, make_category_list_key, set_cached

logger = get_logger(__name__)

CATEGORY_PERFORMER_LIMIT = 10


def _performer_count_subquery():
    return (
        select(func.count(PerformerCategory.id))
        .where(PerformerCategory.category_id == Category.id)
        .correlate(Category)
        .scalar_subquery()
    )


async def list_categories(db: AsyncSession, page: int = 1, limit: int = 50) -> dict:
    """Active categories ordered by sort_order then name, with performer counts."""
    cache_key = make_category_list_key(page, limit)
    cached = await get_cached(cache_key)
    if cached:
        return cached

    total = await db.scalar(select(func.count(Category.id)).where(Category.is_active.is_(True)))

    performer_count = _performer_count_subquery().label("performer_count")
    result = await db.execute(
        select(Category, performer_count)
        .where(Category.is_active.is_(True))
        .order_by(Category.sort_order.asc(), Category.name.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    categories = []
    for category, count in result.all():
        item = CategoryResponse.model_validate(category)
        item.performer_count = count
        categories.append(item)

    response = CategoryListResponse(
        categories=categories,
        pagination=Pagination.build(page, limit, total or 0),
    ).model_dump(mode="json")

    await set_cached(cache_key, response)
    return response


async def get_category_by_slug(db: AsyncSession, slug: str) -> dict:
    result = await db.execute(
        select(Category).where(Category.slug == slug, Category.is_active.is_(True))
    )
    category = result.scalar_one_or_none()
    if not category:
        raise not_found("Category", "CATEGORY_NOT_FOUND")

    count = await db.scalar(
        select(func.count(PerformerCategory.id)).where(PerformerCategory.category_id == category.id)
    )

    performers = await db.execute(
        select(Performer)
        .join(PerformerCategory, PerformerCategory.performer_id == Performer.id)
        .where(PerformerCategory.category_id == category.id)
        .order_by(Performer.is_featured.desc(), Performer.average_rating.desc(), Performer.id.asc())
        .limit(CATEGORY_PERFORMER_LIMIT)
    )

    item = CategoryResponse.model_validate(category)
    item.performer_count = count or 0
    return {
        "category": item,
        "performers": [PerformerListItem.model_validate(p) for p in performers.scalars().all()],
    }
