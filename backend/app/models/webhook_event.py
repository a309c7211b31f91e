"""
Record of every Stripe webhook delivery we acted on.

The unique stripe_event_id makes redelivered events a no-op.
"""

from sqlalchemy import JSON, Column, ForeignKey, Integer, String, Text

from app.db.base import Base, TimestampMixin, UTCDateTime


class WebhookEventStatus:
    PROCESSED = "PROCESSED"
    FAILED = "FAILED"
    IGNORED = "IGNORED"


class WebhookEvent(Base, TimestampMixin):
    __tablename__ = "webhook_events"

    id = Column(Integer, primary_key=True, index=True)
    stripe_event_id = Column(String(255), unique=True, nullable=False, index=True)
    event_type = Column(String(100), nullable=False)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, index=True)
    status = Column(String(20), nullable=False)
    error = Column(Text, nullable=True)
    payload = Column(JSON, nullable=True)
    processed_at = Column(UTCDateTime, nullable=True)
