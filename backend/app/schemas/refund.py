"""
Pydantic schemas for admin refund management.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.common import Pagination


class ManualRefundRequest(BaseModel):
    reason: str = Field(..., min_length=10, max_length=500)


class RefundItem(BaseModel):
    booking_id: int
    client_id: int
    performer_id: int
    event_date: date
    confirmed_price: float
    deposit_amount: float
    refund_amount: float
    refund_status: str
    refund_reason: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    stripe_refund_id: Optional[str] = None


class RefundListResponse(BaseModel):
    refunds: list[RefundItem]
    pagination: Pagination


class ManualRefundResponse(BaseModel):
    booking_id: int
    refund_status: str
    amount: float
    stripe_refund_id: Optional[str] = None
    message: str
