"""
Money arithmetic for bookings.

All amounts are Decimal pounds rounded half-up to the penny. The payment
processor works in integer pence; convert with `to_minor_units` at the
gateway boundary only.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from app.core.config import get_settings
from app.models.transaction import Transaction, TransactionStatus, TransactionType

PENNY = Decimal("0.01")


def to_pennies(value) -> Decimal:
    return Decimal(str(value)).quantize(PENNY, rounding=ROUND_HALF_UP)


def to_minor_units(value) -> int:
    return int((to_pennies(value) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def _rate(value: float) -> Decimal:
    return Decimal(str(value))


@dataclass(frozen=True)
class PriceSplit:
    confirmed_price: Decimal
    deposit_amount: Decimal
    platform_fee: Decimal
    performer_amount: Decimal


def split_price(confirmed_price) -> PriceSplit:
    settings = get_settings()
    price = to_pennies(confirmed_price)
    fee = to_pennies(price * _rate(settings.PLATFORM_FEE_RATE))
    return PriceSplit(
        confirmed_price=price,
        deposit_amount=to_pennies(price * _rate(settings.DEPOSIT_RATE)),
        platform_fee=fee,
        performer_amount=price - fee,
    )


def balance_due(booking) -> Decimal:
    """Part of the price paid after the deposit; also the most a cancellation refunds."""
    return to_pennies(booking.confirmed_price) - to_pennies(booking.deposit_amount)


def captured_amount(transactions: Iterable[Transaction]) -> Decimal:
    """Money actually kept from the client: succeeded charges minus succeeded refunds."""
    total = Decimal("0.00")
    for tx in transactions:
        if tx.status != TransactionStatus.SUCCEEDED:
            continue
        if tx.type in (TransactionType.DEPOSIT, TransactionType.BALANCE):
            total += to_pennies(tx.amount)
        elif tx.type == TransactionType.REFUND:
            total -= to_pennies(tx.amount)
    return max(total, Decimal("0.00"))


def payout_amount(captured) -> Decimal:
    rate = _rate(get_settings().PLATFORM_FEE_RATE)
    return to_pennies(to_pennies(captured) * (Decimal("1") - rate))
