"""
Performer profile endpoints and public search.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_optional_user, require_roles
from app.db.session import get_db
from app.models.user import User, UserType
from app.schemas.performer import (
    PerformerCreate,
    PerformerDetailResponse,
    PerformerResponse,
    PerformerSearchParams,
    PerformerSearchResponse,
    PerformerUpdate,
)
from app.services.performer_service import (
    create_performer,
    get_performer_detail,
    search_performers,
    update_performer,
)

router = APIRouter(prefix="/performers", tags=["Performers"])


@router.post("", response_model=PerformerResponse, status_code=status.HTTP_201_CREATED)
async def create_performer_endpoint(
    data: PerformerCreate,
    user: User = Depends(require_roles(UserType.PERFORMER)),
    db: AsyncSession = Depends(get_db),
):
    """Create the caller's performer profile. One profile per user."""
    return await create_performer(db, user, data)


@router.get("", response_model=PerformerSearchResponse)
async def search_performers_endpoint(
    params: Annotated[PerformerSearchParams, Query()],
    db: AsyncSession = Depends(get_db),
):
    """
    Search performers by text, category, location, price and rating.
    Results are cached in Redis; profile changes and new reviews invalidate them.
    """
    return await search_performers(db, params)


@router.get("/{performer_id}", response_model=PerformerDetailResponse)
async def get_performer_endpoint(
    performer_id: int,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_performer_detail(db, performer_id, viewer)


@router.put("/{performer_id}", response_model=PerformerResponse)
async def update_performer_endpoint(
    performer_id: int,
    data: PerformerUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Partial profile update by the owner or an admin; categories are replaced when given."""
    return await update_performer(db, performer_id, user, data)
