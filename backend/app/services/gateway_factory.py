"""
Payment gateway factory.
Configures which payment processor the services talk to.

Routes depend on `get_payment_gateway`; tests swap in a fake through
`app.dependency_overrides[get_payment_gateway]`.
"""

from typing import Optional

from app.core.config import get_settings
from app.core.logging import get_logger
from app.services.interfaces.payment_gateway import PaymentGateway
from app.services.stripe_gateway import StripeGateway

logger = get_logger(__name__)

_gateway: Optional[PaymentGateway] = None


def build_payment_gateway() -> PaymentGateway:
    settings = get_settings()
    if not settings.STRIPE_SECRET_KEY:
        # Calls will fail with an authentication error until a key is set
        logger.warning("stripe_not_configured")
    return StripeGateway(settings.STRIPE_SECRET_KEY, settings.STRIPE_MAX_NETWORK_RETRIES)


def get_payment_gateway() -> PaymentGateway:
    """Get payment gateway singleton."""
    global _gateway
    if _gateway is None:
        _gateway = build_payment_gateway()
    return _gateway
