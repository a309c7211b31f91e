"""
User model with secure password storage.

A single table holds clients, performers and admins; `user_type`
decides which endpoints a user may reach.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, UTCDateTime


class UserType:
    CLIENT = "CLIENT"
    PERFORMER = "PERFORMER"
    ADMIN = "ADMIN"


class UserStatus:
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    phone = Column(String(30), nullable=True)
    user_type = Column(String(20), nullable=False, default=UserType.CLIENT)
    status = Column(String(20), nullable=False, default=UserStatus.ACTIVE)
    profile_image_url = Column(String(500), nullable=True)
    email_verified = Column(Boolean, nullable=False, default=False)
    last_login = Column(UTCDateTime, nullable=True)

    performer = relationship("Performer", back_populates="user", uselist=False)

    __table_args__ = (
        CheckConstraint("user_type IN ('CLIENT', 'PERFORMER', 'ADMIN')", name="check_user_type"),
        CheckConstraint("status IN ('ACTIVE', 'INACTIVE', 'SUSPENDED')", name="check_user_status"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, type={self.user_type})>"
