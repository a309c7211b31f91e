"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.common import Pagination
from app.schemas.enquiry import EnquiryParty, EnquiryPerformer
from app.schemas.review import ReviewResponse


class BookingConfirm(BaseModel):
    confirmed_price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    event_time: str = Field(..., min_length=1, max_length=10)
    event_duration: int = Field(..., ge=1, le=24)


class BookingCancel(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class TransactionResponse(BaseModel):
    id: int
    booking_id: int
    type: str
    amount: float
    currency: str
    status: str
    stripe_payment_intent_id: Optional[str] = None
    stripe_refund_id: Optional[str] = None
    stripe_transfer_id: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    id: int
    enquiry_id: int
    client_id: int
    performer_id: int
    event_type: str
    event_date: date
    event_time: Optional[str] = None
    event_duration: int
    event_location: str
    guest_count: Optional[int] = None
    special_requests: Optional[str] = None
    confirmed_price: float
    deposit_amount: float
    platform_fee: float
    performer_amount: float
    deposit_paid: bool
    status: str
    payment_status: str
    stripe_payment_intent_id: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    completed_at: Optional[datetime] = None
    refund_status: str
    refund_reason: Optional[str] = None
    payout_status: str
    payout_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingDetailResponse(BookingResponse):
    client: Optional[EnquiryParty] = None
    performer: Optional[EnquiryPerformer] = None
    transactions: list[TransactionResponse] = []
    review: Optional[ReviewResponse] = None


class PaymentInstructions(BaseModel):
    client_secret: Optional[str] = None
    payment_intent_id: str
    amount: int  # pence
    currency: str
    requires_payment: bool = True


class BookingPaymentResponse(BaseModel):
    booking: BookingDetailResponse
    payment: PaymentInstructions


class RefundSummary(BaseModel):
    amount: float
    status: str
    stripe_refund_id: Optional[str] = None
    message: str


class BookingCancelResponse(BaseModel):
    booking: BookingDetailResponse
    refund: RefundSummary


class BookingListResponse(BaseModel):
    bookings: list[BookingDetailResponse]
    pagination: Pagination
