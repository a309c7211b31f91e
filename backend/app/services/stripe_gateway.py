"""
Stripe implementation of the PaymentGateway interface.

The stripe SDK is synchronous, so every call runs in Starlette's threadpool
to keep the event loop free. Stripe errors are logged, counted and
re-raised as PaymentGatewayError; callers decide what local state to write.
"""

import json
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import stripe
from starlette.concurrency import run_in_threadpool

from app.core.logging import get_logger
from app.core.metrics import record_gateway_call
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

logger = get_logger(__name__)


def _to_account(account: Any) -> ConnectedAccount:
    requirements = getattr(account, "requirements", None)
    return ConnectedAccount(
        id=account.id,
        details_submitted=bool(getattr(account, "details_submitted", False)),
        charges_enabled=bool(getattr(account, "charges_enabled", False)),
        payouts_enabled=bool(getattr(account, "payouts_enabled", False)),
        currently_due=list(getattr(requirements, "currently_due", None) or []),
    )


class StripeGateway(PaymentGateway):
    def __init__(self, api_key: Optional[str], max_network_retries: int = 1):
        self.api_key = api_key
        stripe.api_key = api_key
        stripe.max_network_retries = max_network_retries

    async def _call(self, operation: str, fn: Callable, **kwargs) -> Any:
        try:
            result = await run_in_threadpool(fn, **kwargs)
        except stripe.StripeError as e:
            record_gateway_call(operation, ok=False)
            logger.error(
                "stripe_call_failed",
                operation=operation,
                error=str(e),
                stripe_code=getattr(e, "code", None),
            )
            raise PaymentGatewayError(e.user_message or str(e), code=getattr(e, "code", None)) from e
        record_gateway_call(operation, ok=True)
        return result

    async def create_payment_intent(self, amount, currency, metadata, description) -> PaymentIntentResult:
        intent = await self._call(
            "create_payment_intent",
            stripe.PaymentIntent.create,
            amount=amount,
            currency=currency,
            metadata=metadata,
            description=description,
            automatic_payment_methods={"enabled": True},
        )
        return PaymentIntentResult(
            id=intent.id,
            client_secret=getattr(intent, "client_secret", None),
            amount=intent.amount,
            currency=intent.currency,
            status=intent.status,
        )

    async def cancel_payment_intent(self, payment_intent_id) -> PaymentIntentResult:
        intent = await self._call(
            "cancel_payment_intent",
            stripe.PaymentIntent.cancel,
            intent=payment_intent_id,
            cancellation_reason="abandoned",
        )
        return PaymentIntentResult(
            id=intent.id,
            client_secret=None,
            amount=intent.amount,
            currency=intent.currency,
            status=intent.status,
        )

    async def create_refund(self, payment_intent_id, amount, metadata) -> RefundResult:
        refund = await self._call(
            "create_refund",
            stripe.Refund.create,
            payment_intent=payment_intent_id,
            amount=amount,
            metadata=metadata,
        )
        return RefundResult(id=refund.id, status=refund.status, amount=refund.amount)

    async def create_transfer(self, amount, currency, destination, transfer_group, metadata) -> TransferResult:
        transfer = await self._call(
            "create_transfer",
            stripe.Transfer.create,
            amount=amount,
            currency=currency,
            destination=destination,
            transfer_group=transfer_group,
            metadata=metadata,
        )
        return TransferResult(id=transfer.id, amount=transfer.amount)

    async def create_connected_account(self, email, metadata) -> ConnectedAccount:
        account = await self._call(
            "create_account",
            stripe.Account.create,
            type="express",
            email=email,
            capabilities={
                "card_payments": {"requested": True},
                "transfers": {"requested": True},
            },
            metadata=metadata,
        )
        return _to_account(account)

    async def retrieve_account(self, account_id) -> ConnectedAccount:
        account = await self._call("retrieve_account", stripe.Account.retrieve, id=account_id)
        return _to_account(account)

    async def create_account_link(self, account_id, refresh_url, return_url) -> AccountLinkResult:
        link = await self._call(
            "create_account_link",
            stripe.AccountLink.create,
            account=account_id,
            refresh_url=refresh_url,
            return_url=return_url,
            type="account_onboarding",
        )
        return AccountLinkResult(
            url=link.url,
            expires_at=datetime.fromtimestamp(link.expires_at, tz=timezone.utc),
        )

    def construct_event(self, payload, signature, secret) -> dict[str, Any]:
        try:
            stripe.Webhook.construct_event(payload, signature, secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning("stripe_webhook_signature_invalid", error=str(e))
            raise InvalidSignatureError("Invalid webhook signature") from e
        # Signature verified; the raw payload is the event
        return json.loads(payload)
