"""
Stripe Connect onboarding and payout endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import require_roles
from app.db.session import get_db
from app.models.user import User, UserType
from app.schemas.payment import AccountStatusResponse, OnboardingLinkResponse, PayoutListResponse, PayoutResult
from app.services.gateway_factory import get_payment_gateway
from app.services.interfaces.payment_gateway import PaymentGateway
from app.services.payment_service import (
    create_onboarding_link,
    get_account_status,
    handle_onboarding_return,
    list_payouts,
    trigger_manual_payout,
)

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.get("/onboard", response_model=OnboardingLinkResponse)
async def onboard(
    user: User = Depends(require_roles(UserType.PERFORMER)),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Create the performer's Stripe Express account if needed and return an onboarding link."""
    return await create_onboarding_link(db, user, gateway)


@router.get("/account-status", response_model=AccountStatusResponse)
async def account_status(
    user: User = Depends(require_roles(UserType.PERFORMER)),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    return await get_account_status(db, user, gateway)


@router.get("/onboard-return", response_model=AccountStatusResponse)
async def onboard_return(
    user: User = Depends(require_roles(UserType.PERFORMER)),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    return await handle_onboarding_return(db, user, gateway)


@router.get("/payouts", response_model=PayoutListResponse)
async def payouts(
    user: User = Depends(require_roles(UserType.PERFORMER, UserType.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Recent payouts (paid or failed). Performers see their own, admins everyone's."""
    return {"payouts": await list_payouts(db, user)}


@router.post("/manual-payout/{booking_id}", response_model=PayoutResult)
async def manual_payout(
    booking_id: int,
    user: User = Depends(require_roles(UserType.ADMIN)),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    return await trigger_manual_payout(db, booking_id, gateway)
