"""
Enquiry endpoints: clients ask, performers accept or decline.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, require_roles
from app.db.session import get_db
from app.models.user import User, UserType
from app.schemas.enquiry import EnquiryCreate, EnquiryListResponse, EnquiryRespond, EnquiryResponse
from app.services.enquiry_service import create_enquiry, get_enquiry, list_enquiries, respond_to_enquiry

router = APIRouter(prefix="/enquiries", tags=["Enquiries"])

EnquiryStatusFilter = Literal["PENDING", "RESPONDED", "ACCEPTED", "DECLINED", "EXPIRED"]


@router.post("", response_model=EnquiryResponse, status_code=status.HTTP_201_CREATED)
async def create_enquiry_endpoint(
    data: EnquiryCreate,
    user: User = Depends(require_roles(UserType.CLIENT)),
    db: AsyncSession = Depends(get_db),
):
    """Send an enquiry to a performer. Expires if not answered within 7 days."""
    return await create_enquiry(db, user, data)


@router.get("", response_model=EnquiryListResponse)
async def list_enquiries_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[EnquiryStatusFilter] = Query(None, alias="status"),
    performer_id: Optional[int] = None,
    client_id: Optional[int] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Clients see their own enquiries, performers those sent to them, admins everything."""
    return await list_enquiries(db, user, page, limit, status_filter, performer_id, client_id)


@router.get("/{enquiry_id}", response_model=EnquiryResponse)
async def get_enquiry_endpoint(
    enquiry_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_enquiry(db, enquiry_id, user)


@router.patch("/{enquiry_id}", response_model=EnquiryResponse)
async def respond_to_enquiry_endpoint(
    enquiry_id: int,
    data: EnquiryRespond,
    user: User = Depends(require_roles(UserType.PERFORMER)),
    db: AsyncSession = Depends(get_db),
):
    """Accept or decline a pending enquiry, optionally with a quote."""
    return await respond_to_enquiry(db, enquiry_id, user, data)
