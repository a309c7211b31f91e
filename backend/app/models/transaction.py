"""
Ledger of money movements for a booking.

Every call to the payment processor that moves money leaves a row here,
including failed ones, so payouts can be computed from what was actually
captured.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class TransactionType:
    DEPOSIT = "DEPOSIT"
    BALANCE = "BALANCE"
    REFUND = "REFUND"
    PAYOUT = "PAYOUT"


class TransactionStatus:
    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="gbp")
    status = Column(String(20), nullable=False, default=TransactionStatus.PENDING)
    stripe_payment_intent_id = Column(String(255), nullable=True, index=True)
    stripe_refund_id = Column(String(255), nullable=True, index=True)
    stripe_transfer_id = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    booking = relationship("Booking", back_populates="transactions")

    __table_args__ = (
        CheckConstraint("type IN ('DEPOSIT', 'BALANCE', 'REFUND', 'PAYOUT')", name="check_transaction_type"),
        CheckConstraint(
            "status IN ('PENDING', 'SUCCEEDED', 'FAILED', 'CANCELLED')",
            name="check_transaction_status",
        ),
        CheckConstraint("amount >= 0", name="check_transaction_amount_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, booking={self.booking_id}, type={self.type}, status={self.status})>"
