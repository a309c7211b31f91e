"""
Client reviews of completed bookings and admin-curated testimonials.
"""

from sqlalchemy import JSON, Boolean, CheckConstraint, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


REVIEW_EVENT_TYPES = ("WEDDING", "BIRTHDAY", "CORPORATE", "OTHER")


class Review(Base, TimestampMixin):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=False)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    performer_id = Column(Integer, ForeignKey("performers.id"), nullable=False, index=True)
    rating_overall = Column(Integer, nullable=False)
    rating_quality = Column(Integer, nullable=False)
    rating_communication = Column(Integer, nullable=False)
    written_review = Column(Text, nullable=False)
    event_type = Column(String(20), nullable=False)
    photos = Column(JSON, nullable=False, default=list)
    is_verified = Column(Boolean, nullable=False, default=True)

    booking = relationship("Booking", back_populates="review")
    client = relationship("User", lazy="selectin")

    __table_args__ = (
        CheckConstraint("rating_overall BETWEEN 1 AND 5", name="check_review_rating_overall"),
        CheckConstraint("rating_quality BETWEEN 1 AND 5", name="check_review_rating_quality"),
        CheckConstraint("rating_communication BETWEEN 1 AND 5", name="check_review_rating_communication"),
    )


class Testimonial(Base, TimestampMixin):
    __tablename__ = "testimonials"

    id = Column(Integer, primary_key=True, index=True)
    performer_id = Column(Integer, ForeignKey("performers.id"), nullable=False, index=True)
    author_name = Column(String(100), nullable=False)
    quote = Column(Text, nullable=False)
    event_type = Column(String(20), nullable=False)
    is_featured = Column(Boolean, nullable=False, default=False)
    submitted_by = Column(Integer, ForeignKey("users.id"), nullable=True)
