"""
Review endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import require_roles
from app.db.session import get_db
from app.models.user import User, UserType
from app.schemas.review import ReviewCreate, ReviewEventType, ReviewListResponse, ReviewResponse
from app.services.review_service import create_review, list_reviews

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post("/{booking_id}", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review_endpoint(
    booking_id: int,
    data: ReviewCreate,
    user: User = Depends(require_roles(UserType.CLIENT)),
    db: AsyncSession = Depends(get_db),
):
    """Review a completed booking. One review per booking."""
    return await create_review(db, booking_id, user, data)


@router.get("/{performer_id}", response_model=ReviewListResponse)
async def list_reviews_endpoint(
    performer_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    event_type: Optional[ReviewEventType] = None,
    min_rating: Optional[int] = Query(None, ge=1, le=5),
    is_verified: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
):
    return await list_reviews(db, performer_id, page, limit, event_type, min_rating, is_verified)
