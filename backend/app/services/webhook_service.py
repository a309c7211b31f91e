"""
Stripe webhook processing.

Payment state only moves forward here: the booking service creates
PENDING ledger rows and these handlers settle them from Stripe's events.

Idempotency:
  Every event is recorded in webhook_events keyed by Stripe's event id.
  A redelivered event that was already PROCESSED or IGNORED is acknowledged
  without touching anything. A FAILED event is processed again, which is
  what Stripe's automatic retries rely on.
"""

from typing import Any, Awaitable, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import status

from app.core.config import get_settings
from app.core.exceptions import AppError
from app.core.logging import get_logger
from app.core.metrics import record_refund, record_webhook_event
from app.db.base import utcnow
from app.models.booking import BookingStatus, PaymentStatus, RefundStatus
from app.models.transaction import Transaction, TransactionStatus, TransactionType
from app.models.webhook_event import WebhookEvent, WebhookEventStatus
from app.services.booking_service import load_booking
from app.services.interfaces.payment_gateway import InvalidSignatureError, PaymentGateway
from app.services.notification_service import notify, notify_admin

logger = get_logger(__name__)

Handler = Callable[[AsyncSession, dict[str, Any]], Awaitable[Optional[int]]]


async def _find_payment_tx(db: AsyncSession, payment_intent_id: Optional[str]) -> Optional[Transaction]:
    if not payment_intent_id:
        return None
    result = await db.execute(
        select(Transaction)
        .where(
            Transaction.stripe_payment_intent_id == payment_intent_id,
            Transaction.type.in_([TransactionType.DEPOSIT, TransactionType.BALANCE]),
        )
        .order_by(Transaction.id.desc())
        .limit(1)
    )
    tx = result.scalar_one_or_none()
    if tx is None:
        logger.warning("webhook_unknown_payment_intent", payment_intent_id=payment_intent_id)
    return tx


async def handle_payment_succeeded(db: AsyncSession, intent: dict) -> Optional[int]:
    tx = await _find_payment_tx(db, intent.get("id"))
    if tx is None:
        return None

    booking = await load_booking(db, tx.booking_id)
    duplicate_of = next(
        (
            t for t in booking.transactions
            if t.id != tx.id and t.type == tx.type and t.status == TransactionStatus.SUCCEEDED
        ),
        None,
    )
    tx.status = TransactionStatus.SUCCEEDED

    if duplicate_of is not None:
        # A second charge of the same kind; the extra money is owed back
        tx.description = f"{tx.description or ''} - Duplicate charge, refund required".lstrip(" -")
        booking.refund_status = RefundStatus.FAILED
        booking.refund_reason = f"Duplicate {tx.type.lower()} payment {tx.stripe_payment_intent_id} must be refunded"
        record_refund(RefundStatus.FAILED)
        logger.error(
            "duplicate_payment_captured",
            booking_id=booking.id,
            transaction_type=tx.type,
            payment_intent_id=tx.stripe_payment_intent_id,
            original_payment_intent_id=duplicate_of.stripe_payment_intent_id,
        )
        notify_admin(
            "duplicate_payment",
            booking_id=booking.id,
            payment_intent_id=tx.stripe_payment_intent_id,
            amount=str(tx.amount),
        )
        return booking.id

    if tx.type == TransactionType.DEPOSIT:
        booking.deposit_paid = True
        balance_settled = any(
            t.type == TransactionType.BALANCE and t.status == TransactionStatus.SUCCEEDED
            for t in booking.transactions
        )
        booking.payment_status = PaymentStatus.PAID if balance_settled else PaymentStatus.DEPOSIT_PAID
    else:
        booking.payment_status = PaymentStatus.PAID

    logger.info(
        "payment_succeeded",
        booking_id=booking.id,
        transaction_type=tx.type,
        payment_status=booking.payment_status,
    )
    notify(booking.client.email, f"{tx.type.lower()}_payment_received", booking_id=booking.id)
    notify(booking.performer.user.email, f"{tx.type.lower()}_payment_received", booking_id=booking.id)
    return booking.id


async def handle_payment_failed(db: AsyncSession, intent: dict) -> Optional[int]:
    tx = await _find_payment_tx(db, intent.get("id"))
    if tx is None:
        return None

    reason = (intent.get("last_payment_error") or {}).get("message") or "Unknown payment failure"
    tx.status = TransactionStatus.FAILED
    tx.description = f"{tx.description or ''} - Failed: {reason}".lstrip(" -")
    booking = await load_booking(db, tx.booking_id)
    booking.payment_status = PaymentStatus.FAILED

    logger.warning("payment_failed", booking_id=booking.id, reason=reason)
    notify(booking.client.email, "payment_failed", booking_id=booking.id, reason=reason)
    return booking.id


async def handle_payment_canceled(db: AsyncSession, intent: dict) -> Optional[int]:
    tx = await _find_payment_tx(db, intent.get("id"))
    if tx is None:
        return None

    booking = await load_booking(db, tx.booking_id)
    if tx.status == TransactionStatus.CANCELLED:
        # Superseded balance intent, already cancelled by pay-balance
        logger.info("payment_cancel_acknowledged", booking_id=booking.id, payment_intent_id=intent.get("id"))
        return booking.id

    tx.status = TransactionStatus.CANCELLED
    booking.payment_status = PaymentStatus.CANCELLED

    logger.info("payment_canceled", booking_id=booking.id)
    return booking.id


async def handle_charge_refunded(db: AsyncSession, charge: dict) -> Optional[int]:
    payment_intent_id = charge.get("payment_intent")
    result = await db.execute(
        select(Transaction).where(
            Transaction.stripe_payment_intent_id == payment_intent_id,
            Transaction.type == TransactionType.REFUND,
            Transaction.status == TransactionStatus.PENDING,
        )
    )
    pending = list(result.scalars().all())
    if not pending:
        logger.info("charge_refunded_no_pending_refund", payment_intent_id=payment_intent_id)
        return None

    for tx in pending:
        tx.status = TransactionStatus.SUCCEEDED
    booking = await load_booking(db, pending[0].booking_id)
    booking.refund_status = RefundStatus.REFUNDED

    record_refund(RefundStatus.REFUNDED)
    logger.info(
        "refund_settled",
        booking_id=booking.id,
        amount_refunded=charge.get("amount_refunded"),
    )
    notify(booking.client.email, "refund_processed", booking_id=booking.id)
    return booking.id


async def handle_refund_updated(db: AsyncSession, refund: dict) -> Optional[int]:
    if refund.get("status") != "failed":
        return None

    result = await db.execute(
        select(Transaction).where(
            Transaction.stripe_refund_id == refund.get("id"),
            Transaction.type == TransactionType.REFUND,
        )
    )
    tx = result.scalar_one_or_none()
    if tx is None:
        logger.warning("webhook_unknown_refund", refund_id=refund.get("id"))
        return None

    reason = refund.get("failure_reason") or "unknown"
    tx.status = TransactionStatus.FAILED
    booking = await load_booking(db, tx.booking_id)
    booking.refund_status = RefundStatus.FAILED
    booking.refund_reason = f"Refund failed: {reason}"

    record_refund(RefundStatus.FAILED)
    logger.error("refund_failed", booking_id=booking.id, refund_id=refund.get("id"), reason=reason)
    notify_admin("refund_failed", booking_id=booking.id, reason=reason)
    return booking.id


async def handle_dispute_created(db: AsyncSession, dispute: dict) -> Optional[int]:
    tx = await _find_payment_tx(db, dispute.get("payment_intent"))
    if tx is None:
        return None

    booking = await load_booking(db, tx.booking_id)
    booking.status = BookingStatus.DISPUTED

    logger.warning(
        "charge_disputed",
        booking_id=booking.id,
        dispute_id=dispute.get("id"),
        amount=dispute.get("amount"),
        reason=dispute.get("reason"),
    )
    notify_admin("charge_disputed", booking_id=booking.id, dispute_id=dispute.get("id"))
    return booking.id


HANDLERS: dict[str, Handler] = {
    "payment_intent.succeeded": handle_payment_succeeded,
    "payment_intent.payment_failed": handle_payment_failed,
    "payment_intent.canceled": handle_payment_canceled,
    "charge.refunded": handle_charge_refunded,
    "charge.refund.updated": handle_refund_updated,
    "charge.dispute.created": handle_dispute_created,
}


async def _record_event(
    db: AsyncSession,
    event: dict,
    event_status: str,
    booking_id: Optional[int] = None,
    error: Optional[str] = None,
) -> None:
    result = await db.execute(select(WebhookEvent).where(WebhookEvent.stripe_event_id == event["id"]))
    record = result.scalar_one_or_none()
    if record is None:
        record = WebhookEvent(stripe_event_id=event["id"], event_type=event["type"])
        db.add(record)
    record.status = event_status
    record.booking_id = booking_id
    record.error = error
    record.payload = event
    record.processed_at = utcnow()
    await db.flush()
    record_webhook_event(event["type"], event_status)


async def process_stripe_webhook(
    db: AsyncSession,
    payload: bytes,
    signature: Optional[str],
    gateway: PaymentGateway,
) -> dict:
    secret = get_settings().STRIPE_WEBHOOK_SECRET
    if not secret:
        logger.error("webhook_secret_not_configured")
        raise AppError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Webhook secret not configured",
            "WEBHOOK_NOT_CONFIGURED",
        )

    try:
        event = gateway.construct_event(payload, signature or "", secret)
    except InvalidSignatureError:
        raise AppError(status.HTTP_400_BAD_REQUEST, "Invalid signature", "INVALID_SIGNATURE")

    event_id, event_type = event["id"], event["type"]
    logger.info("webhook_received", event_id=event_id, event_type=event_type)

    existing = await db.scalar(select(WebhookEvent.status).where(WebhookEvent.stripe_event_id == event_id))
    if existing in (WebhookEventStatus.PROCESSED, WebhookEventStatus.IGNORED):
        record_webhook_event(event_type, "DUPLICATE")
        logger.info("webhook_duplicate", event_id=event_id, event_type=event_type)
        return {"received": True, "event_type": event_type, "duplicate": True}

    handler = HANDLERS.get(event_type)
    if handler is None:
        logger.info("webhook_unhandled_event", event_id=event_id, event_type=event_type)
        await _record_event(db, event, WebhookEventStatus.IGNORED)
        return {"received": True, "event_type": event_type}

    try:
        booking_id = await handler(db, event["data"]["object"])
        await db.flush()
    except Exception as e:
        await db.rollback()
        logger.exception("webhook_processing_failed", event_id=event_id, event_type=event_type)
        await _record_event(db, event, WebhookEventStatus.FAILED, error=str(e))
        await db.commit()
        raise AppError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Webhook processing failed",
            "WEBHOOK_PROCESSING_FAILED",
        ) from e

    event_status = WebhookEventStatus.PROCESSED if booking_id is not None else WebhookEventStatus.IGNORED
    await _record_event(db, event, event_status, booking_id=booking_id)
    logger.info("webhook_processed", event_id=event_id, event_type=event_type, booking_id=booking_id)
    return {"received": True, "event_type": event_type}
