"""
Conversation threads between a client and a performer, one per enquiry.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, UTCDateTime, utcnow


class MessageThread(Base, TimestampMixin):
    __tablename__ = "message_threads"

    id = Column(Integer, primary_key=True, index=True)
    enquiry_id = Column(Integer, ForeignKey("enquiries.id"), unique=True, nullable=False)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    client_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    performer_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    is_archived = Column(Boolean, nullable=False, default=False)

    enquiry = relationship("Enquiry", lazy="selectin")
    messages = relationship("Message", back_populates="thread", order_by="Message.sent_at")

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.client_user_id, self.performer_user_id)


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    thread_id = Column(Integer, ForeignKey("message_threads.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    file_url = Column(String(500), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    sent_at = Column(UTCDateTime, nullable=False, default=utcnow)

    thread = relationship("MessageThread", back_populates="messages")
    sender = relationship("User", lazy="selectin")
