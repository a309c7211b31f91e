"""
Testimonial endpoints. Writes are admin only.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import require_roles
from app.db.session import get_db
from app.models.user import User, UserType
from app.schemas.review import ReviewEventType, TestimonialCreate, TestimonialListResponse, TestimonialResponse
from app.services.testimonial_service import create_testimonial, list_testimonials, toggle_featured

router = APIRouter(prefix="/testimonials", tags=["Testimonials"])


@router.post("", response_model=TestimonialResponse, status_code=status.HTTP_201_CREATED)
async def create_testimonial_endpoint(
    data: TestimonialCreate,
    user: User = Depends(require_roles(UserType.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await create_testimonial(db, user, data)


@router.get("/{performer_id}", response_model=TestimonialListResponse)
async def list_testimonials_endpoint(
    performer_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    event_type: Optional[ReviewEventType] = None,
    is_featured: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
):
    """Featured testimonial first, then newest."""
    return await list_testimonials(db, performer_id, page, limit, event_type, is_featured)


@router.patch("/{testimonial_id}/featured", response_model=TestimonialResponse)
async def toggle_featured_endpoint(
    testimonial_id: int,
    user: User = Depends(require_roles(UserType.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await toggle_featured(db, testimonial_id)
