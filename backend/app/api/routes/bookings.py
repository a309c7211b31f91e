"""
Booking endpoints: confirmation with deposit, balance payment,
cancellation with refund, and completion.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, require_roles
from app.db.session import get_db
from app.models.user import User, UserType
from app.schemas.booking import (
    BookingCancel,
    BookingCancelResponse,
    BookingConfirm,
    BookingDetailResponse,
    BookingListResponse,
    BookingPaymentResponse,
)
from app.services.booking_service import (
    cancel_booking,
    complete_booking,
    confirm_booking,
    get_booking,
    list_bookings,
    pay_balance,
)
from app.services.gateway_factory import get_payment_gateway
from app.services.interfaces.payment_gateway import PaymentGateway

router = APIRouter(prefix="/bookings", tags=["Bookings"])

BookingStatusFilter = Literal["CONFIRMED", "COMPLETED", "CANCELLED", "DISPUTED"]


@router.post(
    "/{enquiry_id}/confirm",
    response_model=BookingPaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def confirm_booking_endpoint(
    enquiry_id: int,
    data: BookingConfirm,
    user: User = Depends(require_roles(UserType.PERFORMER)),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Confirm an accepted enquiry as a booking.

    Creates the deposit PaymentIntent; the returned client_secret is used
    by the client to pay. The booking's payment state updates when Stripe
    reports the payment through the webhook.
    """
    booking, payment = await confirm_booking(db, enquiry_id, user, data, gateway)
    return {"booking": booking, "payment": payment}


@router.post("/{booking_id}/pay-balance", response_model=BookingPaymentResponse)
async def pay_balance_endpoint(
    booking_id: int,
    user: User = Depends(require_roles(UserType.CLIENT)),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    booking, payment = await pay_balance(db, booking_id, user, gateway)
    return {"booking": booking, "payment": payment}


@router.get("", response_model=BookingListResponse)
async def list_bookings_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[BookingStatusFilter] = Query(None, alias="status"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await list_bookings(db, user, page, limit, status_filter)


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_booking_endpoint(
    booking_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_booking(db, booking_id, user)


@router.post("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    data: BookingCancel,
    user: User = Depends(require_roles(UserType.CLIENT)),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Cancel a booking at least 21 days before the event.
    The deposit is kept; a paid balance is refunded.
    """
    booking, refund = await cancel_booking(db, booking_id, user, data.reason, gateway)
    return {"booking": booking, "refund": refund}


@router.post("/{booking_id}/complete", response_model=BookingDetailResponse)
async def complete_booking_endpoint(
    booking_id: int,
    user: User = Depends(require_roles(UserType.PERFORMER, UserType.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await complete_booking(db, booking_id, user)
