"""
Category browsing. The listing is cached in Redis.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.category import CategoryDetailResponse, CategoryListResponse
from app.services.category_service import get_category_by_slug, list_categories

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=CategoryListResponse)
async def list_categories_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await list_categories(db, page, limit)


@router.get("/{slug}", response_model=CategoryDetailResponse)
async def get_category_endpoint(slug: str, db: AsyncSession = Depends(get_db)):
    """Category with its top performers (featured first, then by rating)."""
    return await get_category_by_slug(db, slug)
