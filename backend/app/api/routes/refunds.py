"""
Admin refund endpoints.
"""

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import require_roles
from app.db.session import get_db
from app.models.user import User, UserType
from app.schemas.refund import ManualRefundRequest, ManualRefundResponse, RefundListResponse
from app.services.gateway_factory import get_payment_gateway
from app.services.interfaces.payment_gateway import PaymentGateway
from app.services.refund_service import list_refunds, process_manual_refund

router = APIRouter(prefix="/refunds", tags=["Refunds"])

RefundStatusFilter = Literal["NONE", "PENDING", "REFUNDED", "FAILED"]


@router.get("", response_model=RefundListResponse)
async def list_refunds_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[RefundStatusFilter] = Query(None, alias="status"),
    performer_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    user: User = Depends(require_roles(UserType.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await list_refunds(db, page, limit, status_filter, performer_id, date_from, date_to)


@router.post("/{booking_id}/manual", response_model=ManualRefundResponse)
async def manual_refund_endpoint(
    booking_id: int,
    data: ManualRefundRequest,
    user: User = Depends(require_roles(UserType.ADMIN)),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Retry a failed or stalled balance refund."""
    return await process_manual_refund(db, booking_id, data.reason, user.id, gateway)
