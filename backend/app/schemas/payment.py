"""
Pydantic schemas for Stripe Connect onboarding and payouts.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel


class OnboardingLinkResponse(BaseModel):
    url: str
    account_id: str
    expires_at: datetime


class AccountStatusResponse(BaseModel):
    has_account: bool
    account_id: Optional[str] = None
    onboarding_complete: bool
    payout_enabled: bool
    charges_enabled: bool = False
    details_submitted: bool = False
    requirements: list[str] = []
    message: Optional[str] = None


class PayoutItem(BaseModel):
    booking_id: int
    performer_id: int
    event_type: str
    event_date: date
    confirmed_price: float
    platform_fee: float
    payout_amount: float
    payout_status: str
    payout_at: Optional[datetime] = None
    stripe_transfer_id: Optional[str] = None


class PayoutListResponse(BaseModel):
    payouts: list[PayoutItem]


class PayoutResult(BaseModel):
    booking_id: int
    status: str
    amount: Optional[float] = None
    stripe_transfer_id: Optional[str] = None
    error: Optional[str] = None
