"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .payment_gateway import (
    AccountLinkResult,
    ConnectedAccount,
    InvalidSignatureError,
    PaymentGateway,
    PaymentGatewayError,
    PaymentIntentResult,
    RefundResult,
    TransferResult,
)

__all__ = [
    'AccountLinkResult',
    'ConnectedAccount',
    'InvalidSignatureError',
    'PaymentGateway',
    'PaymentGatewayError',
    'PaymentIntentResult',
    'RefundResult',
    'TransferResult',
]
