"""
Payment processor interface.
Lets the booking flow run against Stripe in production and an in-memory
fake in tests.

All amounts crossing this interface are integer minor units (pence).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


class PaymentGatewayError(Exception):
    """The payment processor rejected a call or could not be reached."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class InvalidSignatureError(PaymentGatewayError):
    pass


@dataclass
class PaymentIntentResult:
    id: str
    client_secret: Optional[str]
    amount: int
    currency: str
    status: str


@dataclass
class RefundResult:
    id: str
    status: str  # succeeded, pending, failed, canceled
    amount: int


@dataclass
class TransferResult:
    id: str
    amount: int


@dataclass
class ConnectedAccount:
    id: str
    details_submitted: bool = False
    charges_enabled: bool = False
    payouts_enabled: bool = False
    currently_due: list[str] = field(default_factory=list)

    @property
    def onboarding_complete(self) -> bool:
        return self.details_submitted and not self.currently_due


@dataclass
class AccountLinkResult:
    url: str
    expires_at: datetime


class PaymentGateway(ABC):
    """
    Interface for payment processors.

    Implementations:
    - StripeGateway: Stripe Connect (express accounts, platform charges, transfers)
    - FakePaymentGateway (tests): records calls, configurable failures
    """

    @abstractmethod
    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str],
        description: str,
    ) -> PaymentIntentResult:
        """Create a card PaymentIntent the client confirms on the frontend."""

    @abstractmethod
    async def cancel_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult:
        """
        Cancel an unpaid PaymentIntent so it can no longer be confirmed.

        Raises:
            PaymentGatewayError: the intent already succeeded or is processing
        """

    @abstractmethod
    async def create_refund(
        self,
        payment_intent_id: str,
        amount: int,
        metadata: dict[str, str],
    ) -> RefundResult:
        """Refund part of a captured PaymentIntent."""

    @abstractmethod
    async def create_transfer(
        self,
        amount: int,
        currency: str,
        destination: str,
        transfer_group: str,
        metadata: dict[str, str],
    ) -> TransferResult:
        """Move funds from the platform balance to a connected account."""

    @abstractmethod
    async def create_connected_account(self, email: str, metadata: dict[str, str]) -> ConnectedAccount:
        """Create an express connected account for a performer."""

    @abstractmethod
    async def retrieve_account(self, account_id: str) -> ConnectedAccount:
        pass

    @abstractmethod
    async def create_account_link(self, account_id: str, refresh_url: str, return_url: str) -> AccountLinkResult:
        pass

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str, secret: str) -> dict[str, Any]:
        """
        Verify a webhook signature and parse the event.

        Raises:
            InvalidSignatureError: payload or signature do not verify
        """
