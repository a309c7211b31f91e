"""
Booking model: a confirmed engagement created from an accepted enquiry.

Key design decisions:
- One booking per enquiry (unique enquiry_id)
- Money split (deposit / platform fee / performer amount) is frozen at
  confirmation time so later fee changes never alter existing bookings
- Status fields are kept separate: `status` is the engagement lifecycle,
  `payment_status`, `refund_status` and `payout_status` track money
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, UTCDateTime


class BookingStatus:
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    DISPUTED = "DISPUTED"


class PaymentStatus:
    PENDING = "pending"
    DEPOSIT_PAID = "deposit_paid"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RefundStatus:
    NONE = "NONE"
    PENDING = "PENDING"
    REFUNDED = "REFUNDED"
    FAILED = "FAILED"


class PayoutStatus:
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    enquiry_id = Column(Integer, ForeignKey("enquiries.id"), unique=True, nullable=False)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    performer_id = Column(Integer, ForeignKey("performers.id"), nullable=False, index=True)
    event_type = Column(String(100), nullable=False)
    event_date = Column(Date, nullable=False)
    event_time = Column(String(10), nullable=True)
    event_duration = Column(Integer, nullable=False)
    event_location = Column(String(255), nullable=False)
    guest_count = Column(Integer, nullable=True)
    special_requests = Column(Text, nullable=True)

    confirmed_price = Column(Numeric(10, 2), nullable=False)
    deposit_amount = Column(Numeric(10, 2), nullable=False)
    platform_fee = Column(Numeric(10, 2), nullable=False)
    performer_amount = Column(Numeric(10, 2), nullable=False)
    deposit_paid = Column(Boolean, nullable=False, default=False)

    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED, index=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING)
    stripe_payment_intent_id = Column(String(255), nullable=True, index=True)

    cancellation_reason = Column(Text, nullable=True)
    cancelled_at = Column(UTCDateTime, nullable=True)
    cancelled_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    completed_at = Column(UTCDateTime, nullable=True)

    refund_status = Column(String(20), nullable=False, default=RefundStatus.NONE, index=True)
    refund_reason = Column(Text, nullable=True)

    payout_status = Column(String(20), nullable=False, default=PayoutStatus.PENDING, index=True)
    payout_at = Column(UTCDateTime, nullable=True)
    stripe_transfer_id = Column(String(255), nullable=True)

    enquiry = relationship("Enquiry", back_populates="booking")
    client = relationship("User", foreign_keys=[client_id], lazy="selectin")
    performer = relationship("Performer", lazy="selectin")
    transactions = relationship(
        "Transaction",
        back_populates="booking",
        order_by="Transaction.id",
        lazy="selectin",
    )
    review = relationship("Review", back_populates="booking", uselist=False, lazy="selectin")

    __table_args__ = (
        CheckConstraint("confirmed_price > 0", name="check_booking_price_positive"),
        CheckConstraint(
            "status IN ('CONFIRMED', 'COMPLETED', 'CANCELLED', 'DISPUTED')",
            name="check_booking_status",
        ),
        CheckConstraint(
            "refund_status IN ('NONE', 'PENDING', 'REFUNDED', 'FAILED')",
            name="check_booking_refund_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, enquiry={self.enquiry_id}, status={self.status})>"
