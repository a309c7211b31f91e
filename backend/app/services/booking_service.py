"""
Booking lifecycle and client payments.

    ACCEPTED enquiry --confirm--> CONFIRMED (deposit PaymentIntent, DEPOSIT tx PENDING)
    CONFIRMED --pay-balance--> BALANCE PaymentIntent (BALANCE tx PENDING;
                               any earlier unpaid balance intent is cancelled)
    CONFIRMED --complete (event date passed, deposit paid)--> COMPLETED
    CONFIRMED --cancel (>= CANCELLATION_WINDOW_DAYS before event)--> CANCELLED

Payment state itself only advances from Stripe webhooks (webhook_service);
this module creates the intents and the PENDING ledger rows they settle.

Cancellation keeps the deposit. If the balance was already paid it is
refunded against the balance PaymentIntent. A refund the processor
rejects is still recorded (FAILED transaction, refund_status FAILED) so an
admin can retry it from the refunds endpoints.
"""

import math
import time
from datetime import datetime, time as dt_time, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import status

from app.core.config import get_settings
from app.core.exceptions import AppError, bad_request, forbidden, not_found
from app.core.logging import get_logger
from app.core.metrics import booking_confirm_latency, record_booking_transition, record_refund
from app.db.base import utcnow
from app.models.booking import Booking, BookingStatus, PaymentStatus, RefundStatus
from app.models.enquiry import EnquiryStatus
from app.models.performer import Performer
from app.models.transaction import Transaction, TransactionStatus, TransactionType
from app.models.user import User, UserType
from app.schemas.booking import BookingConfirm
from app.schemas.common import Pagination
from app.services.cache_service import invalidate_performer_cache
from app.services.enquiry_service import load_enquiry, scope_for_user
from app.services.interfaces.payment_gateway import PaymentGateway, PaymentGatewayError, PaymentIntentResult
from app.services.notification_service import notify, notify_admin
from app.services.pricing import balance_due, split_price, to_minor_units

logger = get_logger(__name__)
settings = get_settings()

REFUND_STATUS_BY_PROCESSOR = {
    "succeeded": (TransactionStatus.SUCCEEDED, RefundStatus.REFUNDED),
    "pending": (TransactionStatus.PENDING, RefundStatus.PENDING),
    "requires_action": (TransactionStatus.PENDING, RefundStatus.PENDING),
}


async def load_booking(db: AsyncSession, booking_id: int) -> Booking:
    """Fetch a booking with transactions, review and parties loaded, replacing stale copies."""
    result = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise not_found("Booking", "BOOKING_NOT_FOUND")
    return booking


def days_until_event(event_date, now: Optional[datetime] = None) -> int:
    """Whole days from now to the start of the event day, rounded up."""
    now = now or utcnow()
    event_start = datetime.combine(event_date, dt_time.min, tzinfo=timezone.utc)
    return math.ceil((event_start - now).total_seconds() / 86400)


def succeeded_intent_id(booking: Booking, tx_type: str) -> Optional[str]:
    for tx in reversed(booking.transactions):
        if tx.type == tx_type and tx.status == TransactionStatus.SUCCEEDED and tx.stripe_payment_intent_id:
            return tx.stripe_payment_intent_id
    return None


def _payment_block(intent: PaymentIntentResult) -> dict:
    return {
        "client_secret": intent.client_secret,
        "payment_intent_id": intent.id,
        "amount": intent.amount,
        "currency": intent.currency,
        "requires_payment": intent.status not in ("succeeded", "processing"),
    }


async def confirm_booking(
    db: AsyncSession,
    enquiry_id: int,
    user: User,
    data: BookingConfirm,
    gateway: PaymentGateway,
) -> tuple[Booking, dict]:
    """
    Turn an accepted enquiry into a booking and open the deposit PaymentIntent.
    Nothing is written when the processor call fails.
    """
    start = time.perf_counter()
    enquiry = await load_enquiry(db, enquiry_id)
    performer = enquiry.performer

    if performer.user_id != user.id:
        raise forbidden("Not authorized to confirm this booking")
    if enquiry.status != EnquiryStatus.ACCEPTED:
        raise bad_request("Enquiry must be accepted before confirming booking", "ENQUIRY_NOT_ACCEPTED")

    existing = await db.scalar(select(Booking.id).where(Booking.enquiry_id == enquiry.id))
    if existing:
        raise bad_request("Booking already exists for this enquiry", "BOOKING_EXISTS")

    if not performer.stripe_account_id or not performer.stripe_onboarding_complete:
        raise bad_request(
            "Performer must complete Stripe onboarding before accepting payments",
            "STRIPE_ONBOARDING_INCOMPLETE",
        )

    split = split_price(data.confirmed_price)
    metadata = {
        "booking_type": "deposit",
        "enquiry_id": str(enquiry.id),
        "client_id": str(enquiry.client_id),
        "performer_id": str(performer.id),
        "event_type": enquiry.event_type,
        "event_date": enquiry.event_date.isoformat(),
        "confirmed_price": str(split.confirmed_price),
        "deposit_amount": str(split.deposit_amount),
        "platform_fee": str(split.platform_fee),
    }

    try:
        intent = await gateway.create_payment_intent(
            amount=to_minor_units(split.deposit_amount),
            currency=settings.STRIPE_CURRENCY,
            metadata=metadata,
            description=f"Deposit for {enquiry.event_type} booking - {performer.display_name}",
        )
    except PaymentGatewayError as e:
        logger.error("booking_confirm_payment_failed", enquiry_id=enquiry.id, error=e.message)
        raise AppError(
            status.HTTP_502_BAD_GATEWAY,
            "Payment provider error, please try again",
            "PAYMENT_PROVIDER_ERROR",
        )

    booking = Booking(
        enquiry_id=enquiry.id,
        client_id=enquiry.client_id,
        performer_id=performer.id,
        event_type=enquiry.event_type,
        event_date=enquiry.event_date,
        event_time=data.event_time,
        event_duration=data.event_duration,
        event_location=enquiry.event_location,
        guest_count=enquiry.guest_count,
        special_requests=enquiry.special_requests,
        confirmed_price=split.confirmed_price,
        deposit_amount=split.deposit_amount,
        platform_fee=split.platform_fee,
        performer_amount=split.performer_amount,
        status=BookingStatus.CONFIRMED,
        payment_status=PaymentStatus.PENDING,
        stripe_payment_intent_id=intent.id,
    )
    db.add(booking)
    await db.flush()

    db.add(Transaction(
        booking_id=booking.id,
        type=TransactionType.DEPOSIT,
        amount=split.deposit_amount,
        currency=settings.STRIPE_CURRENCY,
        status=TransactionStatus.PENDING,
        stripe_payment_intent_id=intent.id,
        description=f"Deposit for booking {booking.id}",
    ))
    await db.flush()

    booking_confirm_latency.observe(time.perf_counter() - start)
    record_booking_transition(BookingStatus.CONFIRMED)
    logger.info(
        "booking_confirmed",
        booking_id=booking.id,
        enquiry_id=enquiry.id,
        confirmed_price=str(split.confirmed_price),
        deposit=str(split.deposit_amount),
        payment_intent_id=intent.id,
    )
    notify(
        enquiry.client.email,
        "booking_confirmed",
        booking_id=booking.id,
        deposit_amount=str(split.deposit_amount),
    )
    return await load_booking(db, booking.id), _payment_block(intent)


async def pay_balance(db: AsyncSession, booking_id: int, user: User, gateway: PaymentGateway) -> tuple[Booking, dict]:
    booking = await load_booking(db, booking_id)
    if booking.client_id != user.id:
        raise forbidden("Not authorized to pay for this booking")
    if booking.status != BookingStatus.CONFIRMED:
        raise bad_request("Only confirmed bookings can be paid", "BOOKING_NOT_CONFIRMED")
    if not booking.deposit_paid:
        raise bad_request("Deposit must be paid before the balance", "DEPOSIT_NOT_PAID")
    if booking.payment_status == PaymentStatus.PAID:
        raise bad_request("Booking is already paid in full", "ALREADY_PAID")

    # An abandoned earlier attempt is cancelled at the processor before a new
    # intent exists, so the client can only ever pay one of them
    for tx in booking.transactions:
        if tx.type != TransactionType.BALANCE or tx.status != TransactionStatus.PENDING:
            continue
        try:
            await gateway.cancel_payment_intent(tx.stripe_payment_intent_id)
        except PaymentGatewayError as e:
            logger.warning(
                "balance_intent_cancel_failed",
                booking_id=booking.id,
                payment_intent_id=tx.stripe_payment_intent_id,
                error=e.message,
            )
            raise AppError(
                status.HTTP_409_CONFLICT,
                "A previous balance payment is still being processed",
                "BALANCE_PAYMENT_IN_PROGRESS",
            )
        tx.status = TransactionStatus.CANCELLED
        tx.description = f"{tx.description or ''} - Superseded".lstrip(" -")
        logger.info("balance_intent_superseded", booking_id=booking.id, payment_intent_id=tx.stripe_payment_intent_id)

    amount = balance_due(booking)
    try:
        intent = await gateway.create_payment_intent(
            amount=to_minor_units(amount),
            currency=settings.STRIPE_CURRENCY,
            metadata={
                "booking_type": "balance",
                "booking_id": str(booking.id),
                "client_id": str(booking.client_id),
                "performer_id": str(booking.performer_id),
            },
            description=f"Balance for {booking.event_type} booking {booking.id}",
        )
    except PaymentGatewayError as e:
        # Keep the cancellations already made at the processor
        await db.commit()
        logger.error("balance_payment_failed", booking_id=booking.id, error=e.message)
        raise AppError(
            status.HTTP_502_BAD_GATEWAY,
            "Payment provider error, please try again",
            "PAYMENT_PROVIDER_ERROR",
        )

    db.add(Transaction(
        booking_id=booking.id,
        type=TransactionType.BALANCE,
        amount=amount,
        currency=settings.STRIPE_CURRENCY,
        status=TransactionStatus.PENDING,
        stripe_payment_intent_id=intent.id,
        description=f"Balance for booking {booking.id}",
    ))
    await db.flush()

    logger.info("balance_payment_created", booking_id=booking.id, amount=str(amount), payment_intent_id=intent.id)
    return await load_booking(db, booking.id), _payment_block(intent)


async def get_booking(db: AsyncSession, booking_id: int, user: User) -> Booking:
    booking = await load_booking(db, booking_id)
    if user.user_type == UserType.ADMIN or booking.client_id == user.id:
        return booking
    if booking.performer.user_id == user.id:
        return booking
    raise forbidden("You do not have access to this booking")


async def list_bookings(
    db: AsyncSession,
    user: User,
    page: int = 1,
    limit: int = 20,
    status_filter: Optional[str] = None,
) -> dict:
    conditions = await scope_for_user(db, user, Booking)
    if status_filter:
        conditions.append(Booking.status == status_filter)

    total = await db.scalar(select(func.count(Booking.id)).where(*conditions))
    result = await db.execute(
        select(Booking)
        .where(*conditions)
        .order_by(Booking.event_date.desc(), Booking.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return {
        "bookings": list(result.scalars().all()),
        "pagination": Pagination.build(page, limit, total or 0),
    }


async def cancel_booking(
    db: AsyncSession,
    booking_id: int,
    user: User,
    reason: str,
    gateway: PaymentGateway,
) -> tuple[Booking, dict]:
    booking = await load_booking(db, booking_id)
    if booking.client_id != user.id:
        raise forbidden("Only the client can cancel this booking")
    if booking.status == BookingStatus.CANCELLED:
        raise bad_request("Booking is already cancelled", "ALREADY_CANCELLED")
    if booking.status == BookingStatus.COMPLETED:
        raise bad_request("Completed bookings cannot be cancelled", "BOOKING_COMPLETED")

    days = days_until_event(booking.event_date)
    if days < settings.CANCELLATION_WINDOW_DAYS:
        raise bad_request(
            f"Bookings can only be cancelled at least {settings.CANCELLATION_WINDOW_DAYS} days "
            f"before the event ({days} days remaining)",
            "CANCELLATION_WINDOW_PASSED",
        )

    booking.status = BookingStatus.CANCELLED
    booking.cancellation_reason = reason
    booking.cancelled_at = utcnow()
    booking.cancelled_by = user.id
    record_booking_transition(BookingStatus.CANCELLED)

    refund_amount = balance_due(booking) if booking.payment_status == PaymentStatus.PAID else Decimal("0.00")
    balance_intent = succeeded_intent_id(booking, TransactionType.BALANCE)
    refund = {"amount": 0.0, "status": RefundStatus.NONE, "stripe_refund_id": None}

    if refund_amount > 0 and balance_intent:
        try:
            result = await gateway.create_refund(
                payment_intent_id=balance_intent,
                amount=to_minor_units(refund_amount),
                metadata={"booking_id": str(booking.id), "reason": "client_cancellation"},
            )
        except PaymentGatewayError as e:
            db.add(Transaction(
                booking_id=booking.id,
                type=TransactionType.REFUND,
                amount=refund_amount,
                currency=settings.STRIPE_CURRENCY,
                status=TransactionStatus.FAILED,
                stripe_payment_intent_id=balance_intent,
                description=f"Refund failed: {e.message}",
            ))
            booking.refund_status = RefundStatus.FAILED
            booking.refund_reason = e.message
            # The cancellation stands; an admin retries the refund manually
            await db.commit()
            record_refund(RefundStatus.FAILED)
            logger.error("refund_failed", booking_id=booking.id, amount=str(refund_amount), error=e.message)
            notify_admin("refund_failed", booking_id=booking.id, amount=str(refund_amount), error=e.message)
            raise AppError(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Booking cancelled but the refund failed; our team will process it manually",
                "REFUND_FAILED",
            )

        tx_status, refund_status = REFUND_STATUS_BY_PROCESSOR.get(
            result.status, (TransactionStatus.FAILED, RefundStatus.FAILED)
        )
        db.add(Transaction(
            booking_id=booking.id,
            type=TransactionType.REFUND,
            amount=refund_amount,
            currency=settings.STRIPE_CURRENCY,
            status=tx_status,
            stripe_payment_intent_id=balance_intent,
            stripe_refund_id=result.id,
            description=f"Cancellation refund for booking {booking.id}",
        ))
        booking.refund_status = refund_status
        booking.refund_reason = reason
        record_refund(refund_status)
        logger.info(
            "refund_processed",
            booking_id=booking.id,
            amount=str(refund_amount),
            refund_id=result.id,
            status=result.status,
        )
        refund = {"amount": float(refund_amount), "status": refund_status, "stripe_refund_id": result.id}
    elif refund_amount > 0:
        # Marked paid but no settled balance charge to refund against
        booking.refund_status = RefundStatus.FAILED
        booking.refund_reason = "No settled balance payment found to refund against"
        record_refund(RefundStatus.FAILED)
        logger.warning("refund_missing_balance_payment", booking_id=booking.id, amount=str(refund_amount))
        notify_admin(
            "refund_failed",
            booking_id=booking.id,
            amount=str(refund_amount),
            error=booking.refund_reason,
        )
        refund = {"amount": float(refund_amount), "status": RefundStatus.FAILED, "stripe_refund_id": None}
    else:
        booking.refund_status = RefundStatus.NONE

    await db.flush()
    logger.info("booking_cancelled", booking_id=booking.id, by=user.id, days_before_event=days)

    context = {"booking_id": booking.id, "refund_amount": str(refund_amount), "reason": reason}
    notify(booking.client.email, "booking_cancelled_client", **context)
    notify(booking.performer.user.email, "booking_cancelled_performer", **context)
    notify_admin("booking_cancelled", **context)

    if refund["status"] == RefundStatus.NONE:
        refund["message"] = "Booking cancelled. The deposit is non-refundable."
    elif refund["status"] == RefundStatus.REFUNDED:
        refund["message"] = "Booking cancelled. The balance has been refunded; the deposit is non-refundable."
    else:
        refund["message"] = "Booking cancelled. The balance refund is being processed."

    return await load_booking(db, booking.id), refund


async def complete_booking(db: AsyncSession, booking_id: int, user: User) -> Booking:
    booking = await load_booking(db, booking_id)
    if user.user_type != UserType.ADMIN and booking.performer.user_id != user.id:
        raise forbidden("Not authorized to complete this booking")
    if booking.status != BookingStatus.CONFIRMED:
        raise bad_request("Only confirmed bookings can be completed", "BOOKING_NOT_CONFIRMED")
    if booking.event_date > utcnow().date():
        raise bad_request("Booking cannot be completed before the event date", "EVENT_NOT_PASSED")
    if not booking.deposit_paid:
        raise bad_request("Deposit has not been paid", "DEPOSIT_NOT_PAID")

    booking.status = BookingStatus.COMPLETED
    booking.completed_at = utcnow()
    await db.execute(
        update(Performer)
        .where(Performer.id == booking.performer_id)
        .values(total_bookings=Performer.total_bookings + 1)
    )
    await db.flush()

    record_booking_transition(BookingStatus.COMPLETED)
    logger.info("booking_completed", booking_id=booking.id, by=user.id)
    notify(booking.client.email, "booking_completed", booking_id=booking.id)
    await invalidate_performer_cache()
    return await load_booking(db, booking.id)
