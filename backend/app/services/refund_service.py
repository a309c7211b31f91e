"""
Admin refund management: listing refund activity and retrying refunds
that failed or stalled during cancellation.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import status

from app.core.config import get_settings
from app.core.exceptions import AppError, bad_request
from app.core.logging import get_logger
from app.core.metrics import record_refund
from app.models.booking import Booking, RefundStatus
from app.models.transaction import Transaction, TransactionStatus, TransactionType
from app.schemas.common import Pagination
from app.services.booking_service import load_booking, succeeded_intent_id
from app.services.interfaces.payment_gateway import PaymentGateway, PaymentGatewayError
from app.services.notification_service import notify
from app.services.pricing import balance_due, to_minor_units

logger = get_logger(__name__)
settings = get_settings()


def _latest_refund_tx(booking: Booking) -> Optional[Transaction]:
    for tx in reversed(booking.transactions):
        if tx.type == TransactionType.REFUND:
            return tx
    return None


def _refund_item(booking: Booking) -> dict:
    tx = _latest_refund_tx(booking)
    return {
        "booking_id": booking.id,
        "client_id": booking.client_id,
        "performer_id": booking.performer_id,
        "event_date": booking.event_date,
        "confirmed_price": booking.confirmed_price,
        "deposit_amount": booking.deposit_amount,
        "refund_amount": tx.amount if tx else balance_due(booking),
        "refund_status": booking.refund_status,
        "refund_reason": booking.refund_reason,
        "cancellation_reason": booking.cancellation_reason,
        "cancelled_at": booking.cancelled_at,
        "stripe_refund_id": tx.stripe_refund_id if tx else None,
    }


async def list_refunds(
    db: AsyncSession,
    page: int = 1,
    limit: int = 20,
    status_filter: Optional[str] = None,
    performer_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> dict:
    if status_filter:
        conditions = [Booking.refund_status == status_filter]
    else:
        conditions = [Booking.refund_status != RefundStatus.NONE]
    if performer_id is not None:
        conditions.append(Booking.performer_id == performer_id)
    if date_from is not None:
        conditions.append(Booking.cancelled_at >= date_from)
    if date_to is not None:
        conditions.append(Booking.cancelled_at <= date_to)

    total = await db.scalar(select(func.count(Booking.id)).where(*conditions))
    result = await db.execute(
        select(Booking)
        .where(*conditions)
        .order_by(Booking.cancelled_at.desc(), Booking.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return {
        "refunds": [_refund_item(b) for b in result.scalars().all()],
        "pagination": Pagination.build(page, limit, total or 0),
    }


async def process_manual_refund(
    db: AsyncSession,
    booking_id: int,
    reason: str,
    admin_id: int,
    gateway: PaymentGateway,
) -> dict:
    booking = await load_booking(db, booking_id)

    if booking.refund_status == RefundStatus.REFUNDED:
        raise bad_request("Booking has already been refunded", "ALREADY_REFUNDED")
    if booking.refund_status not in (RefundStatus.FAILED, RefundStatus.PENDING):
        raise bad_request("Only failed or pending refunds can be processed manually", "REFUND_NOT_RETRYABLE")

    payment_intent_id = succeeded_intent_id(booking, TransactionType.BALANCE)
    if not payment_intent_id:
        raise bad_request("No balance payment found to refund", "NO_PAYMENT_TO_REFUND")

    amount = balance_due(booking)
    if amount <= 0:
        raise bad_request("Nothing to refund for this booking", "NOTHING_TO_REFUND")

    try:
        result = await gateway.create_refund(
            payment_intent_id=payment_intent_id,
            amount=to_minor_units(amount),
            metadata={"booking_id": str(booking.id), "reason": "manual_admin_refund", "admin_id": str(admin_id)},
        )
    except PaymentGatewayError as e:
        booking.refund_status = RefundStatus.FAILED
        booking.refund_reason = f"{reason} (manual retry failed: {e.message})"
        await db.commit()
        record_refund(RefundStatus.FAILED)
        logger.error("manual_refund_failed", booking_id=booking.id, admin_id=admin_id, error=e.message)
        raise AppError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            f"Refund failed: {e.message}",
            "REFUND_FAILED",
        )

    tx = _latest_refund_tx(booking)
    if tx is None or tx.status == TransactionStatus.SUCCEEDED:
        tx = Transaction(
            booking_id=booking.id,
            type=TransactionType.REFUND,
            amount=amount,
            currency=settings.STRIPE_CURRENCY,
            stripe_payment_intent_id=payment_intent_id,
        )
        db.add(tx)
    tx.status = TransactionStatus.SUCCEEDED
    tx.stripe_refund_id = result.id
    tx.description = f"Manual refund: {reason}"

    booking.refund_status = RefundStatus.REFUNDED
    booking.refund_reason = reason
    await db.flush()

    record_refund(RefundStatus.REFUNDED)
    logger.info(
        "manual_refund_processed",
        booking_id=booking.id,
        admin_id=admin_id,
        amount=str(amount),
        refund_id=result.id,
    )
    notify(booking.client.email, "refund_processed", booking_id=booking.id, amount=str(amount))
    return {
        "booking_id": booking.id,
        "refund_status": booking.refund_status,
        "amount": amount,
        "stripe_refund_id": result.id,
        "message": "Refund processed successfully",
    }
