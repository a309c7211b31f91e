"""
Stripe webhook receiver. Needs the raw request body for signature checks.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.services.gateway_factory import get_payment_gateway
from app.services.interfaces.payment_gateway import PaymentGateway
from app.services.webhook_service import process_stripe_webhook

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    payload = await request.body()
    return await process_stripe_webhook(db, payload, stripe_signature, gateway)
