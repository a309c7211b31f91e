"""
Stripe Connect onboarding for performers and performer payouts.

PAYOUT MODEL
============

Client charges land on the platform account. Once a booking is finished
with (COMPLETED, or CANCELLED with the deposit kept) and has been quiet
for PAYOUT_SETTLE_MINUTES, the performer's share of what was actually
captured is moved to their connected account with a Transfer:

    captured = succeeded DEPOSIT + BALANCE - succeeded REFUND
    payout   = captured x (1 - PLATFORM_FEE_RATE)

The settle delay keeps the job from racing a webhook on a booking that
was just updated. A booking whose refund is still PENDING or FAILED owes
the client money, so it is held back until the refund resolves.
"""

from datetime import timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import status

from app.core.config import get_settings
from app.core.exceptions import AppError, bad_request, not_found
from app.core.logging import get_logger
from app.core.metrics import record_payout
from app.db.base import utcnow
from app.models.booking import Booking, BookingStatus, PayoutStatus, RefundStatus
from app.models.performer import Performer
from app.models.transaction import Transaction, TransactionStatus, TransactionType
from app.models.user import User, UserType
from app.services.booking_service import load_booking
from app.services.interfaces.payment_gateway import ConnectedAccount, PaymentGateway, PaymentGatewayError
from app.services.notification_service import notify
from app.services.performer_service import get_performer_for_user
from app.services.pricing import captured_amount, payout_amount, to_minor_units, to_pennies

logger = get_logger(__name__)
settings = get_settings()

UNRESOLVED_REFUND_STATUSES = (RefundStatus.PENDING, RefundStatus.FAILED)

PAYOUT_HISTORY_LIMIT = 50


async def _require_performer(db: AsyncSession, user: User) -> Performer:
    performer = await get_performer_for_user(db, user.id)
    if not performer:
        raise not_found("Performer profile", "PERFORMER_NOT_FOUND")
    return performer


def _gateway_error(message: str) -> AppError:
    return AppError(status.HTTP_502_BAD_GATEWAY, message, "PAYMENT_PROVIDER_ERROR")


async def create_onboarding_link(db: AsyncSession, user: User, gateway: PaymentGateway) -> dict:
    performer = await _require_performer(db, user)

    try:
        if not performer.stripe_account_id:
            account = await gateway.create_connected_account(
                email=user.email,
                metadata={"performer_id": str(performer.id), "user_id": str(user.id)},
            )
            performer.stripe_account_id = account.id
            # Keep the account id even if the link call below fails
            await db.commit()
            logger.info("stripe_account_created", performer_id=performer.id, account_id=account.id)

        link = await gateway.create_account_link(
            account_id=performer.stripe_account_id,
            refresh_url=f"{settings.FRONTEND_URL}/dashboard/payments/onboard",
            return_url=f"{settings.FRONTEND_URL}/dashboard/payments/success",
        )
    except PaymentGatewayError as e:
        raise _gateway_error(f"Failed to create onboarding link: {e.message}")

    logger.info("onboarding_link_created", performer_id=performer.id)
    return {"url": link.url, "account_id": performer.stripe_account_id, "expires_at": link.expires_at}


async def _sync_account(db: AsyncSession, performer: Performer, gateway: PaymentGateway) -> ConnectedAccount:
    try:
        account = await gateway.retrieve_account(performer.stripe_account_id)
    except PaymentGatewayError as e:
        raise _gateway_error(f"Failed to retrieve account status: {e.message}")

    if (
        performer.stripe_onboarding_complete != account.onboarding_complete
        or performer.payout_enabled != account.payouts_enabled
    ):
        performer.stripe_onboarding_complete = account.onboarding_complete
        performer.payout_enabled = account.payouts_enabled
        await db.flush()
        logger.info(
            "stripe_account_synced",
            performer_id=performer.id,
            onboarding_complete=account.onboarding_complete,
            payout_enabled=account.payouts_enabled,
        )
    return account


def _status_payload(performer: Performer, account: ConnectedAccount) -> dict:
    return {
        "has_account": True,
        "account_id": performer.stripe_account_id,
        "onboarding_complete": account.onboarding_complete,
        "payout_enabled": account.payouts_enabled,
        "charges_enabled": account.charges_enabled,
        "details_submitted": account.details_submitted,
        "requirements": account.currently_due,
    }


async def get_account_status(db: AsyncSession, user: User, gateway: PaymentGateway) -> dict:
    performer = await _require_performer(db, user)
    if not performer.stripe_account_id:
        return {"has_account": False, "onboarding_complete": False, "payout_enabled": False}

    account = await _sync_account(db, performer, gateway)
    return _status_payload(performer, account)


async def handle_onboarding_return(db: AsyncSession, user: User, gateway: PaymentGateway) -> dict:
    performer = await _require_performer(db, user)
    if not performer.stripe_account_id:
        raise not_found("Stripe account", "STRIPE_ACCOUNT_NOT_FOUND")

    account = await _sync_account(db, performer, gateway)
    payload = _status_payload(performer, account)
    payload["message"] = (
        "Onboarding completed successfully! You can now receive payments."
        if account.onboarding_complete
        else "Onboarding in progress. Please complete any remaining requirements."
    )
    return payload


def _payout_item(booking: Booking) -> dict:
    captured = captured_amount(booking.transactions)
    amount = payout_amount(captured)
    return {
        "booking_id": booking.id,
        "performer_id": booking.performer_id,
        "event_type": booking.event_type,
        "event_date": booking.event_date,
        "confirmed_price": booking.confirmed_price,
        "platform_fee": to_pennies(captured) - amount,
        "payout_amount": amount,
        "payout_status": booking.payout_status,
        "payout_at": booking.payout_at,
        "stripe_transfer_id": booking.stripe_transfer_id,
    }


async def list_payouts(db: AsyncSession, user: User) -> list[dict]:
    conditions = [Booking.payout_status.in_([PayoutStatus.PAID, PayoutStatus.FAILED])]
    if user.user_type == UserType.PERFORMER:
        performer = await _require_performer(db, user)
        conditions.append(Booking.performer_id == performer.id)

    result = await db.execute(
        select(Booking)
        .where(*conditions)
        .order_by(Booking.payout_at.desc(), Booking.id.desc())
        .limit(PAYOUT_HISTORY_LIMIT)
    )
    return [_payout_item(b) for b in result.scalars().all()]


async def _fail_payout(db: AsyncSession, booking: Booking, amount, error: str) -> dict:
    booking.payout_status = PayoutStatus.FAILED
    db.add(Transaction(
        booking_id=booking.id,
        type=TransactionType.PAYOUT,
        amount=amount,
        currency=settings.STRIPE_CURRENCY,
        status=TransactionStatus.FAILED,
        description=f"Payout failed: {error}",
    ))
    await db.flush()
    record_payout(PayoutStatus.FAILED)
    logger.error("payout_failed", booking_id=booking.id, error=error)
    return {"booking_id": booking.id, "status": PayoutStatus.FAILED, "amount": float(amount), "error": error}


async def process_booking_payout(db: AsyncSession, booking: Booking, gateway: PaymentGateway) -> dict:
    """
    Transfer the performer's share for one booking.
    Failures are recorded on the booking (payout_status failed) rather than raised.
    """
    performer = booking.performer
    amount = payout_amount(captured_amount(booking.transactions))

    if not performer.stripe_account_id:
        return await _fail_payout(db, booking, amount, "Performer has no Stripe account")
    if not performer.stripe_onboarding_complete or not performer.payout_enabled:
        return await _fail_payout(db, booking, amount, "Performer payouts are not enabled")

    try:
        account = await gateway.retrieve_account(performer.stripe_account_id)
    except PaymentGatewayError as e:
        return await _fail_payout(db, booking, amount, e.message)
    if not account.charges_enabled or not account.payouts_enabled:
        return await _fail_payout(db, booking, amount, "Stripe account cannot receive payouts")

    if amount <= 0:
        return await _fail_payout(db, booking, amount, "Nothing captured to pay out")

    try:
        transfer = await gateway.create_transfer(
            amount=to_minor_units(amount),
            currency=settings.STRIPE_CURRENCY,
            destination=performer.stripe_account_id,
            transfer_group=f"booking_{booking.id}",
            metadata={"booking_id": str(booking.id), "performer_id": str(performer.id)},
        )
    except PaymentGatewayError as e:
        return await _fail_payout(db, booking, amount, e.message)

    booking.payout_status = PayoutStatus.PAID
    booking.payout_at = utcnow()
    booking.stripe_transfer_id = transfer.id
    db.add(Transaction(
        booking_id=booking.id,
        type=TransactionType.PAYOUT,
        amount=amount,
        currency=settings.STRIPE_CURRENCY,
        status=TransactionStatus.SUCCEEDED,
        stripe_transfer_id=transfer.id,
        description=f"Payout for booking {booking.id}",
    ))
    await db.flush()

    record_payout(PayoutStatus.PAID)
    logger.info("payout_processed", booking_id=booking.id, amount=str(amount), transfer_id=transfer.id)
    notify(performer.user.email, "payout_sent", booking_id=booking.id, amount=str(amount))
    return {
        "booking_id": booking.id,
        "status": PayoutStatus.PAID,
        "amount": float(amount),
        "stripe_transfer_id": transfer.id,
    }


async def trigger_manual_payout(db: AsyncSession, booking_id: int, gateway: PaymentGateway) -> dict:
    booking = await load_booking(db, booking_id)
    if not booking.deposit_paid:
        raise bad_request("Deposit has not been paid for this booking", "DEPOSIT_NOT_PAID")
    if booking.payout_status == PayoutStatus.PAID:
        raise bad_request("Payout has already been processed", "PAYOUT_ALREADY_PAID")
    if booking.refund_status in UNRESOLVED_REFUND_STATUSES:
        raise bad_request("Resolve the client's refund before paying out", "REFUND_UNRESOLVED")

    logger.info("manual_payout_triggered", booking_id=booking.id)
    return await process_booking_payout(db, booking, gateway)


async def find_payable_bookings(db: AsyncSession, now=None) -> list[Booking]:
    cutoff = (now or utcnow()) - timedelta(minutes=settings.PAYOUT_SETTLE_MINUTES)
    result = await db.execute(
        select(Booking)
        .where(
            Booking.deposit_paid.is_(True),
            Booking.payout_status == PayoutStatus.PENDING,
            Booking.status.in_([BookingStatus.COMPLETED, BookingStatus.CANCELLED]),
            Booking.refund_status.notin_(UNRESOLVED_REFUND_STATUSES),
            Booking.updated_at < cutoff,
        )
        .order_by(Booking.id)
    )
    return list(result.scalars().all())


async def process_payouts(db: AsyncSession, gateway: PaymentGateway, now=None) -> dict:
    """Pay out every eligible booking. Each booking is committed on its own."""
    bookings = await find_payable_bookings(db, now)
    summary = {"processed": 0, "paid": 0, "failed": 0, "results": []}

    for booking in bookings:
        outcome = await process_booking_payout(db, booking, gateway)
        await db.commit()
        summary["processed"] += 1
        summary["paid" if outcome["status"] == PayoutStatus.PAID else "failed"] += 1
        summary["results"].append(outcome)

    logger.info(
        "payout_run_finished",
        processed=summary["processed"],
        paid=summary["paid"],
        failed=summary["failed"],
    )
    return summary
