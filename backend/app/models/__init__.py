from app.models.user import User, UserStatus, UserType
from app.models.category import Category, PerformerCategory
from app.models.performer import Performer
from app.models.enquiry import Enquiry, EnquiryStatus
from app.models.booking import Booking, BookingStatus, PaymentStatus, PayoutStatus, RefundStatus
from app.models.transaction import Transaction, TransactionStatus, TransactionType
from app.models.message import Message, MessageThread
from app.models.review import REVIEW_EVENT_TYPES, Review, Testimonial
from app.models.webhook_event import WebhookEvent, WebhookEventStatus

__all__ = [
    "User", "UserStatus", "UserType",
    "Category", "PerformerCategory",
    "Performer",
    "Enquiry", "EnquiryStatus",
    "Booking", "BookingStatus", "PaymentStatus", "PayoutStatus", "RefundStatus",
    "Transaction", "TransactionStatus", "TransactionType",
    "Message", "MessageThread",
    "REVIEW_EVENT_TYPES", "Review", "Testimonial",
    "WebhookEvent", "WebhookEventStatus",
]
