"""
Performer profile.

Key design decisions:
- One profile per user (unique user_id)
- average_rating / total_reviews / total_bookings are denormalized and
  recomputed when reviews are written or bookings complete
- Stripe Connect state is mirrored locally so booking confirmation can
  check onboarding without a network call
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Float, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Performer(Base, TimestampMixin):
    __tablename__ = "performers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    business_name = Column(String(100), nullable=True)
    bio = Column(String(2000), nullable=True)
    location = Column(String(100), nullable=False)
    postcode = Column(String(10), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    travel_distance = Column(Integer, nullable=True)
    base_price = Column(Numeric(10, 2), nullable=False)
    price_per_hour = Column(Numeric(10, 2), nullable=True)
    minimum_booking_hours = Column(Integer, nullable=False, default=1)
    setup_time_minutes = Column(Integer, nullable=False, default=30)
    website_url = Column(String(500), nullable=True)
    facebook_url = Column(String(500), nullable=True)
    instagram_url = Column(String(500), nullable=True)
    youtube_url = Column(String(500), nullable=True)

    is_verified = Column(Boolean, nullable=False, default=False)
    is_featured = Column(Boolean, nullable=False, default=False)
    average_rating = Column(Float, nullable=False, default=0.0)
    total_reviews = Column(Integer, nullable=False, default=0)
    total_bookings = Column(Integer, nullable=False, default=0)
    response_rate = Column(Float, nullable=True)
    response_time_hours = Column(Float, nullable=True)

    # Stripe Connect
    stripe_account_id = Column(String(255), nullable=True)
    stripe_onboarding_complete = Column(Boolean, nullable=False, default=False)
    payout_enabled = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="performer", lazy="selectin")
    categories = relationship(
        "PerformerCategory",
        back_populates="performer",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("base_price >= 0", name="check_performer_base_price_non_negative"),
        Index("ix_performers_rating", "average_rating"),
        Index("ix_performers_price", "base_price"),
    )

    @property
    def display_name(self) -> str:
        return self.business_name or self.user.full_name

    def __repr__(self) -> str:
        return f"<Performer(id={self.id}, user={self.user_id}, name={self.business_name})>"
