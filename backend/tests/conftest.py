"""
Pytest fixtures for test database, client, payment gateway and authentication.

Each test gets a fresh SQLite database (aiosqlite) under tmp_path, or the
database named by TEST_DATABASE_URL. Redis and rate limiting are switched
off and Stripe is replaced by FakePaymentGateway.
"""

import json
import os
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, AsyncGenerator, Optional

# Settings are read at import time, so configure before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_bootstrap.db")
os.environ["REDIS_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ.pop("STRIPE_SECRET_KEY", None)

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.security import create_token_pair, hash_password
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.booking import Booking, BookingStatus, PaymentStatus
from app.models.category import Category, PerformerCategory
from app.models.enquiry import Enquiry, EnquiryStatus
from app.models.performer import Performer
from app.models.transaction import Transaction, TransactionStatus, TransactionType
from app.models.user import User, UserStatus, UserType
from app.services.gateway_factory import get_payment_gateway
from app.services.interfaces.payment_gateway import (
    AccountLinkResult,
    ConnectedAccount,
    InvalidSignatureError,
    PaymentGateway,
    PaymentGatewayError,
    PaymentIntentResult,
    RefundResult,
    TransferResult,
)

PASSWORD = "Password123"
VALID_SIGNATURE = "valid"


class FakePaymentGateway(PaymentGateway):
    """
    In-memory payment processor.

    Records every call in `calls`; put an operation name in `fail` to make
    it raise PaymentGatewayError. `construct_event` accepts only the
    signature "valid" and returns the JSON payload as the event.
    """

    def __init__(self):
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.fail: set[str] = set()
        self.refund_status = "succeeded"
        self.account = ConnectedAccount(
            id="acct_test",
            details_submitted=True,
            charges_enabled=True,
            payouts_enabled=True,
        )
        self._counter = 0

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}_{self._counter}"

    def _record(self, operation: str, **kwargs) -> None:
        self.calls.append((operation, kwargs))
        if operation in self.fail:
            raise PaymentGatewayError(f"{operation} declined", code="card_declined")

    def calls_to(self, operation: str) -> list[dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == operation]

    async def create_payment_intent(self, amount, currency, metadata, description):
        self._record("create_payment_intent", amount=amount, currency=currency, metadata=metadata)
        intent_id = self._next_id("pi")
        return PaymentIntentResult(
            id=intent_id,
            client_secret=f"{intent_id}_secret",
            amount=amount,
            currency=currency,
            status="requires_payment_method",
        )

    async def cancel_payment_intent(self, payment_intent_id):
        self._record("cancel_payment_intent", payment_intent_id=payment_intent_id)
        return PaymentIntentResult(
            id=payment_intent_id,
            client_secret=None,
            amount=0,
            currency="gbp",
            status="canceled",
        )

    async def create_refund(self, payment_intent_id, amount, metadata):
        self._record("create_refund", payment_intent_id=payment_intent_id, amount=amount, metadata=metadata)
        return RefundResult(id=self._next_id("re"), status=self.refund_status, amount=amount)

    async def create_transfer(self, amount, currency, destination, transfer_group, metadata):
        self._record("create_transfer", amount=amount, destination=destination, transfer_group=transfer_group)
        return TransferResult(id=self._next_id("tr"), amount=amount)

    async def create_connected_account(self, email, metadata):
        self._record("create_connected_account", email=email)
        return ConnectedAccount(id=self._next_id("acct"))

    async def retrieve_account(self, account_id):
        self._record("retrieve_account", account_id=account_id)
        return ConnectedAccount(
            id=account_id,
            details_submitted=self.account.details_submitted,
            charges_enabled=self.account.charges_enabled,
            payouts_enabled=self.account.payouts_enabled,
            currently_due=list(self.account.currently_due),
        )

    async def create_account_link(self, account_id, refresh_url, return_url):
        self._record("create_account_link", account_id=account_id, refresh_url=refresh_url, return_url=return_url)
        return AccountLinkResult(
            url=f"https://connect.stripe.test/setup/{account_id}",
            expires_at=datetime.now(timezone.utc) + timedelta(minutes=5),
        )

    def construct_event(self, payload, signature, secret):
        if signature != VALID_SIGNATURE:
            raise InvalidSignatureError("No signatures found matching the expected signature")
        return json.loads(payload)


def auth_headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_token_pair(user)['access_token']}"}


async def make_user(
    db: AsyncSession,
    email: str,
    user_type: str = UserType.CLIENT,
    first_name: str = "Test",
    last_name: str = "User",
    status: str = UserStatus.ACTIVE,
) -> User:
    user = User(
        email=email,
        hashed_password=hash_password(PASSWORD),
        first_name=first_name,
        last_name=last_name,
        user_type=user_type,
        status=status,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_booking(
    db: AsyncSession,
    enquiry: Enquiry,
    confirmed_price: str = "500.00",
    event_date: Optional[date] = None,
    deposit_paid: bool = False,
    balance_paid: bool = False,
    status: str = BookingStatus.CONFIRMED,
) -> Booking:
    """Booking as confirm_booking leaves it, optionally with deposit/balance already settled."""
    price = Decimal(confirmed_price)
    deposit = (price * Decimal("0.25")).quantize(Decimal("0.01"))
    fee = (price * Decimal("0.10")).quantize(Decimal("0.01"))
    payment_status = PaymentStatus.PENDING
    if deposit_paid:
        payment_status = PaymentStatus.PAID if balance_paid else PaymentStatus.DEPOSIT_PAID

    booking = Booking(
        enquiry_id=enquiry.id,
        client_id=enquiry.client_id,
        performer_id=enquiry.performer_id,
        event_type=enquiry.event_type,
        event_date=event_date or enquiry.event_date,
        event_time="19:00",
        event_duration=enquiry.event_duration,
        event_location=enquiry.event_location,
        confirmed_price=price,
        deposit_amount=deposit,
        platform_fee=fee,
        performer_amount=price - fee,
        deposit_paid=deposit_paid,
        status=status,
        payment_status=payment_status,
        stripe_payment_intent_id=f"pi_deposit_{enquiry.id}",
    )
    db.add(booking)
    await db.flush()

    db.add(Transaction(
        booking_id=booking.id,
        type=TransactionType.DEPOSIT,
        amount=deposit,
        status=TransactionStatus.SUCCEEDED if deposit_paid else TransactionStatus.PENDING,
        stripe_payment_intent_id=f"pi_deposit_{enquiry.id}",
    ))
    if balance_paid:
        db.add(Transaction(
            booking_id=booking.id,
            type=TransactionType.BALANCE,
            amount=price - deposit,
            status=TransactionStatus.SUCCEEDED,
            stripe_payment_intent_id=f"pi_balance_{enquiry.id}",
        ))
    await db.commit()
    await db.refresh(booking)
    return booking


@pytest_asyncio.fixture(scope="function")
async def db_session(tmp_path) -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    engine = create_async_engine(url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, gateway: FakePaymentGateway) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB and payment gateway dependencies."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "client@example.com", UserType.CLIENT, "John", "Client")


@pytest_asyncio.fixture
async def other_client(db_session: AsyncSession) -> User:
    return await make_user(db_session, "other@example.com", UserType.CLIENT, "Olivia", "Other")


@pytest_asyncio.fixture
async def performer_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "magician@example.com", UserType.PERFORMER, "David", "Magic")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "admin@example.com", UserType.ADMIN, "Site", "Admin")


@pytest_asyncio.fixture
async def client_headers(client_user: User) -> dict:
    return auth_headers_for(client_user)


@pytest_asyncio.fixture
async def performer_headers(performer_user: User) -> dict:
    return auth_headers_for(performer_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)


@pytest_asyncio.fixture
async def category(db_session: AsyncSession) -> Category:
    category = Category(name="Magicians", slug="magicians", description="Close-up and stage magic", sort_order=1)
    db_session.add(category)
    await db_session.commit()
    await db_session.refresh(category)
    return category


@pytest_asyncio.fixture
async def performer(db_session: AsyncSession, performer_user: User, category: Category) -> Performer:
    """Onboarded performer: Stripe account connected and payouts enabled."""
    performer = Performer(
        user_id=performer_user.id,
        business_name="Magic Dave Entertainment",
        bio="Close-up magic for weddings and parties",
        location="London",
        base_price=Decimal("250.00"),
        is_verified=True,
        stripe_account_id="acct_test",
        stripe_onboarding_complete=True,
        payout_enabled=True,
    )
    performer.categories = [PerformerCategory(category_id=category.id, is_primary=True)]
    db_session.add(performer)
    await db_session.commit()
    await db_session.refresh(performer)
    return performer


@pytest_asyncio.fixture
async def pending_enquiry(db_session: AsyncSession, client_user: User, performer: Performer) -> Enquiry:
    enquiry = Enquiry(
        client_id=client_user.id,
        performer_id=performer.id,
        event_type="Wedding",
        event_date=date.today() + timedelta(days=60),
        event_time="19:00",
        event_duration=3,
        event_location="London",
        guest_count=80,
        message="We would love some close-up magic at our reception",
        status=EnquiryStatus.PENDING,
        expires_at=datetime.now(timezone.utc) + timedelta(days=7),
    )
    db_session.add(enquiry)
    await db_session.commit()
    await db_session.refresh(enquiry)
    return enquiry


@pytest_asyncio.fixture
async def accepted_enquiry(db_session: AsyncSession, pending_enquiry: Enquiry) -> Enquiry:
    pending_enquiry.status = EnquiryStatus.ACCEPTED
    pending_enquiry.quoted_price = Decimal("500.00")
    pending_enquiry.response_date = datetime.now(timezone.utc)
    await db_session.commit()
    return pending_enquiry


@pytest_asyncio.fixture
async def booking(db_session: AsyncSession, accepted_enquiry: Enquiry) -> Booking:
    """Confirmed booking for 500.00, deposit not yet paid."""
    return await make_booking(db_session, accepted_enquiry)


@pytest_asyncio.fixture
async def deposit_paid_booking(db_session: AsyncSession, accepted_enquiry: Enquiry) -> Booking:
    return await make_booking(db_session, accepted_enquiry, deposit_paid=True)


@pytest_asyncio.fixture
async def paid_booking(db_session: AsyncSession, accepted_enquiry: Enquiry) -> Booking:
    """Deposit (125.00) and balance (375.00) both settled."""
    return await make_booking(db_session, accepted_enquiry, deposit_paid=True, balance_paid=True)
