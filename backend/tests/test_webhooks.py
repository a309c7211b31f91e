"""
Tests for Stripe webhook processing: signature checks, payment settlement,
refund and dispute events, and idempotent redelivery.
"""

import json
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import select

from app.core.config import get_settings
from app.models.booking import BookingStatus, PaymentStatus, RefundStatus
from app.models.transaction import Transaction, TransactionStatus, TransactionType
from app.models.webhook_event import WebhookEvent, WebhookEventStatus
from app.services import webhook_service
from app.services.booking_service import load_booking
from app.services.pricing import captured_amount

WEBHOOK_URL = "/api/v1/webhooks/stripe"


def make_event(event_id: str, event_type: str, obj: dict) -> dict:
    return {"id": event_id, "type": event_type, "data": {"object": obj}}


async def post_event(client: AsyncClient, event: dict, signature: str = "valid"):
    return await client.post(
        WEBHOOK_URL,
        content=json.dumps(event),
        headers={"Stripe-Signature": signature, "Content-Type": "application/json"},
    )


async def stored_event(db, event_id: str) -> WebhookEvent:
    result = await db.execute(
        select(WebhookEvent)
        .where(WebhookEvent.stripe_event_id == event_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def tx_of_type(db, booking_id: int, tx_type: str) -> list[Transaction]:
    result = await db.execute(
        select(Transaction)
        .where(Transaction.booking_id == booking_id, Transaction.type == tx_type)
        .order_by(Transaction.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_rejects_bad_signature(client: AsyncClient):
    response = await post_event(client, make_event("evt_1", "payment_intent.succeeded", {"id": "pi_x"}), "forged")
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_SIGNATURE"


@pytest.mark.asyncio
async def test_missing_webhook_secret(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(get_settings(), "STRIPE_WEBHOOK_SECRET", None)
    response = await post_event(client, make_event("evt_1", "payment_intent.succeeded", {"id": "pi_x"}))
    assert response.status_code == 500
    assert response.json()["code"] == "WEBHOOK_NOT_CONFIGURED"


@pytest.mark.asyncio
async def test_deposit_succeeded(client: AsyncClient, db_session, booking):
    event = make_event("evt_dep", "payment_intent.succeeded", {"id": booking.stripe_payment_intent_id})
    response = await post_event(client, event)
    assert response.status_code == 200
    assert response.json() == {"received": True, "event_type": "payment_intent.succeeded"}

    await db_session.refresh(booking)
    assert booking.deposit_paid is True
    assert booking.payment_status == PaymentStatus.DEPOSIT_PAID
    [deposit] = await tx_of_type(db_session, booking.id, TransactionType.DEPOSIT)
    assert deposit.status == TransactionStatus.SUCCEEDED

    record = await stored_event(db_session, "evt_dep")
    assert record.status == WebhookEventStatus.PROCESSED
    assert record.booking_id == booking.id


@pytest.mark.asyncio
async def test_redelivered_event_is_acknowledged_once(client: AsyncClient, db_session, booking):
    event = make_event("evt_dup", "payment_intent.succeeded", {"id": booking.stripe_payment_intent_id})
    assert (await post_event(client, event)).status_code == 200

    # Tamper with state; a duplicate must not touch it again
    booking.payment_status = PaymentStatus.PENDING
    await db_session.commit()

    response = await post_event(client, event)
    assert response.status_code == 200
    assert response.json()["duplicate"] is True
    await db_session.refresh(booking)
    assert booking.payment_status == PaymentStatus.PENDING


@pytest.mark.asyncio
async def test_balance_succeeded_marks_paid(client: AsyncClient, db_session, deposit_paid_booking):
    db_session.add(Transaction(
        booking_id=deposit_paid_booking.id,
        type=TransactionType.BALANCE,
        amount=Decimal("375.00"),
        status=TransactionStatus.PENDING,
        stripe_payment_intent_id="pi_bal",
    ))
    await db_session.commit()

    response = await post_event(client, make_event("evt_bal", "payment_intent.succeeded", {"id": "pi_bal"}))
    assert response.status_code == 200
    await db_session.refresh(deposit_paid_booking)
    assert deposit_paid_booking.payment_status == PaymentStatus.PAID


@pytest.mark.asyncio
async def test_payment_failed(client: AsyncClient, db_session, booking):
    event = make_event("evt_fail", "payment_intent.payment_failed", {
        "id": booking.stripe_payment_intent_id,
        "last_payment_error": {"message": "Your card was declined."},
    })
    response = await post_event(client, event)
    assert response.status_code == 200

    await db_session.refresh(booking)
    assert booking.payment_status == PaymentStatus.FAILED
    [deposit] = await tx_of_type(db_session, booking.id, TransactionType.DEPOSIT)
    assert deposit.status == TransactionStatus.FAILED
    assert "Your card was declined." in deposit.description


@pytest.mark.asyncio
async def test_payment_canceled(client: AsyncClient, db_session, booking):
    event = make_event("evt_cancel", "payment_intent.canceled", {"id": booking.stripe_payment_intent_id})
    assert (await post_event(client, event)).status_code == 200

    await db_session.refresh(booking)
    assert booking.payment_status == PaymentStatus.CANCELLED
    [deposit] = await tx_of_type(db_session, booking.id, TransactionType.DEPOSIT)
    assert deposit.status == TransactionStatus.CANCELLED


@pytest_asyncio.fixture
async def pending_refund(db_session, paid_booking):
    balance_intent = f"pi_balance_{paid_booking.enquiry_id}"
    paid_booking.status = BookingStatus.CANCELLED
    paid_booking.refund_status = RefundStatus.PENDING
    db_session.add(Transaction(
        booking_id=paid_booking.id,
        type=TransactionType.REFUND,
        amount=Decimal("375.00"),
        status=TransactionStatus.PENDING,
        stripe_payment_intent_id=balance_intent,
        stripe_refund_id="re_pending",
    ))
    await db_session.commit()
    return paid_booking


@pytest.mark.asyncio
async def test_charge_refunded_settles_pending_refund(client: AsyncClient, db_session, pending_refund):
    event = make_event("evt_refunded", "charge.refunded", {
        "id": "ch_1",
        "payment_intent": f"pi_balance_{pending_refund.enquiry_id}",
        "amount_refunded": 37500,
    })
    assert (await post_event(client, event)).status_code == 200

    await db_session.refresh(pending_refund)
    assert pending_refund.refund_status == RefundStatus.REFUNDED
    [refund] = await tx_of_type(db_session, pending_refund.id, TransactionType.REFUND)
    assert refund.status == TransactionStatus.SUCCEEDED


@pytest.mark.asyncio
async def test_refund_update_failed(client: AsyncClient, db_session, pending_refund):
    event = make_event("evt_refund_failed", "charge.refund.updated", {
        "id": "re_pending",
        "status": "failed",
        "failure_reason": "expired_or_canceled_card",
    })
    assert (await post_event(client, event)).status_code == 200

    await db_session.refresh(pending_refund)
    assert pending_refund.refund_status == RefundStatus.FAILED
    assert "expired_or_canceled_card" in pending_refund.refund_reason


@pytest.mark.asyncio
async def test_refund_update_other_status_ignored(client: AsyncClient, db_session, pending_refund):
    event = make_event("evt_refund_ok", "charge.refund.updated", {"id": "re_pending", "status": "succeeded"})
    assert (await post_event(client, event)).status_code == 200

    record = await stored_event(db_session, "evt_refund_ok")
    assert record.status == WebhookEventStatus.IGNORED
    await db_session.refresh(pending_refund)
    assert pending_refund.refund_status == RefundStatus.PENDING


@pytest.mark.asyncio
async def test_dispute_created(client: AsyncClient, db_session, deposit_paid_booking):
    event = make_event("evt_dispute", "charge.dispute.created", {
        "id": "dp_1",
        "payment_intent": deposit_paid_booking.stripe_payment_intent_id,
        "amount": 12500,
        "reason": "fraudulent",
    })
    assert (await post_event(client, event)).status_code == 200

    await db_session.refresh(deposit_paid_booking)
    assert deposit_paid_booking.status == BookingStatus.DISPUTED


@pytest.mark.asyncio
async def test_unhandled_event_type_is_recorded(client: AsyncClient, db_session):
    response = await post_event(client, make_event("evt_other", "customer.created", {"id": "cus_1"}))
    assert response.status_code == 200

    record = await stored_event(db_session, "evt_other")
    assert record.status == WebhookEventStatus.IGNORED


@pytest.mark.asyncio
async def test_unknown_payment_intent_is_ignored(client: AsyncClient, db_session):
    response = await post_event(client, make_event("evt_unknown", "payment_intent.succeeded", {"id": "pi_nope"}))
    assert response.status_code == 200

    record = await stored_event(db_session, "evt_unknown")
    assert record.status == WebhookEventStatus.IGNORED
    assert record.booking_id is None


@pytest.mark.asyncio
async def test_handler_failure_is_recorded_and_retried(client: AsyncClient, db_session, booking, monkeypatch):
    async def explode(db, obj):
        raise RuntimeError("database hiccup")

    event = make_event("evt_retry", "payment_intent.succeeded", {"id": booking.stripe_payment_intent_id})
    monkeypatch.setitem(webhook_service.HANDLERS, "payment_intent.succeeded", explode)

    response = await post_event(client, event)
    assert response.status_code == 500
    assert response.json()["code"] == "WEBHOOK_PROCESSING_FAILED"
    record = await stored_event(db_session, "evt_retry")
    assert record.status == WebhookEventStatus.FAILED
    assert record.error == "database hiccup"

    # Stripe redelivers; with the handler healthy again the event is processed
    monkeypatch.undo()
    response = await post_event(client, event)
    assert response.status_code == 200
    assert "duplicate" not in response.json()
    record = await stored_event(db_session, "evt_retry")
    assert record.status == WebhookEventStatus.PROCESSED
    await db_session.refresh(booking)
    assert booking.deposit_paid is True


@pytest.mark.asyncio
async def test_deposit_after_balance_keeps_paid(client: AsyncClient, db_session, booking):
    """Stripe does not order events; a late deposit success must not demote a settled balance."""
    deposit_intent = booking.stripe_payment_intent_id
    db_session.add(Transaction(
        booking_id=booking.id,
        type=TransactionType.BALANCE,
        amount=Decimal("375.00"),
        status=TransactionStatus.PENDING,
        stripe_payment_intent_id="pi_bal_first",
    ))
    await db_session.commit()

    balance_event = make_event("evt_bal_first", "payment_intent.succeeded", {"id": "pi_bal_first"})
    assert (await post_event(client, balance_event)).status_code == 200

    deposit_event = make_event("evt_dep_late", "payment_intent.succeeded", {"id": deposit_intent})
    assert (await post_event(client, deposit_event)).status_code == 200

    await db_session.refresh(booking)
    assert booking.deposit_paid is True
    assert booking.payment_status == PaymentStatus.PAID


@pytest.mark.asyncio
async def test_second_balance_charge_is_flagged_for_refund(
    client: AsyncClient, db_session, gateway, deposit_paid_booking, client_headers, admin_headers
):
    booking_id = deposit_paid_booking.id
    intent_ids = []
    for _ in range(2):
        response = await client.post(f"/api/v1/bookings/{booking_id}/pay-balance", headers=client_headers)
        assert response.status_code == 200
        intent_ids.append(response.json()["payment"]["payment_intent_id"])

    # Both intents end up paid, e.g. the first was confirmed as it was being cancelled
    for n, intent_id in enumerate(intent_ids):
        event = make_event(f"evt_bal_{n}", "payment_intent.succeeded", {"id": intent_id})
        assert (await post_event(client, event)).status_code == 200

    booking = await load_booking(db_session, booking_id)
    assert booking.payment_status == PaymentStatus.PAID
    assert booking.refund_status == RefundStatus.FAILED
    assert intent_ids[1] in booking.refund_reason
    assert captured_amount(booking.transactions) == Decimal("875.00")

    response = await client.post(
        f"/api/v1/refunds/{booking_id}/manual",
        json={"reason": "Duplicate balance charge"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    [refund_call] = gateway.calls_to("create_refund")
    assert refund_call["payment_intent_id"] == intent_ids[1]
    assert refund_call["amount"] == 37500

    booking = await load_booking(db_session, booking_id)
    assert booking.refund_status == RefundStatus.REFUNDED
    assert captured_amount(booking.transactions) == Decimal("500.00")


@pytest.mark.asyncio
async def test_cancel_event_for_superseded_intent_keeps_payment_status(
    client: AsyncClient, db_session, deposit_paid_booking, client_headers
):
    booking_id = deposit_paid_booking.id
    url = f"/api/v1/bookings/{booking_id}/pay-balance"
    first = await client.post(url, headers=client_headers)
    assert (await client.post(url, headers=client_headers)).status_code == 200

    event = make_event(
        "evt_superseded", "payment_intent.canceled", {"id": first.json()["payment"]["payment_intent_id"]}
    )
    assert (await post_event(client, event)).status_code == 200

    booking = await load_booking(db_session, booking_id)
    assert booking.payment_status == PaymentStatus.DEPOSIT_PAID
    balance = await tx_of_type(db_session, booking_id, TransactionType.BALANCE)
    assert [t.status for t in balance] == [TransactionStatus.CANCELLED, TransactionStatus.PENDING]
