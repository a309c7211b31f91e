"""
Enquiry model: a client's request for a quote from a performer.

Enquiries expire after ENQUIRY_EXPIRY_DAYS if the performer never responds.
"""

from sqlalchemy import CheckConstraint, Column, Date, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, UTCDateTime


class EnquiryStatus:
    PENDING = "PENDING"
    RESPONDED = "RESPONDED"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"


class Enquiry(Base, TimestampMixin):
    __tablename__ = "enquiries"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    performer_id = Column(Integer, ForeignKey("performers.id"), nullable=False, index=True)
    event_type = Column(String(100), nullable=False)
    event_date = Column(Date, nullable=False)
    event_time = Column(String(10), nullable=True)
    event_duration = Column(Integer, nullable=False)  # hours
    event_location = Column(String(255), nullable=False)
    guest_count = Column(Integer, nullable=True)
    budget_min = Column(Numeric(10, 2), nullable=True)
    budget_max = Column(Numeric(10, 2), nullable=True)
    message = Column(Text, nullable=False)
    special_requests = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=EnquiryStatus.PENDING, index=True)
    performer_response = Column(Text, nullable=True)
    quoted_price = Column(Numeric(10, 2), nullable=True)
    response_date = Column(UTCDateTime, nullable=True)
    expires_at = Column(UTCDateTime, nullable=True)

    client = relationship("User", lazy="selectin")
    performer = relationship("Performer", lazy="selectin")
    booking = relationship("Booking", back_populates="enquiry", uselist=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'RESPONDED', 'ACCEPTED', 'DECLINED', 'EXPIRED')",
            name="check_enquiry_status",
        ),
        CheckConstraint("event_duration BETWEEN 1 AND 24", name="check_enquiry_duration"),
        Index("ix_enquiries_expires_at", "status", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<Enquiry(id={self.id}, client={self.client_id}, performer={self.performer_id}, status={self.status})>"
