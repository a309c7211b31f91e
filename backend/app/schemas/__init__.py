from app.schemas.common import Pagination, StatusMessage
from app.schemas.user import AuthResponse, CurrentUserResponse, Token, UserCreate, UserLogin, UserResponse
from app.schemas.performer import PerformerCreate, PerformerResponse, PerformerSearchParams, PerformerUpdate
from app.schemas.enquiry import EnquiryCreate, EnquiryRespond, EnquiryResponse
from app.schemas.booking import BookingCancel, BookingDetailResponse, BookingResponse

__all__ = [
    "Pagination", "StatusMessage",
    "AuthResponse", "CurrentUserResponse", "Token", "UserCreate", "UserLogin", "UserResponse",
    "PerformerCreate", "PerformerResponse", "PerformerSearchParams", "PerformerUpdate",
    "EnquiryCreate", "EnquiryRespond", "EnquiryResponse",
    "BookingCancel", "BookingDetailResponse", "BookingResponse",
]
