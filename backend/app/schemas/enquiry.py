"""
Pydantic schemas for enquiries.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from app.schemas.common import Pagination


class EnquiryCreate(BaseModel):
    performer_id: int
    event_type: str = Field(..., min_length=1, max_length=100)
    event_date: date
    event_time: Optional[str] = Field(default=None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    event_duration: int = Field(..., ge=1, le=24)
    event_location: str = Field(..., min_length=1, max_length=255)
    guest_count: Optional[int] = Field(default=None, ge=1, le=10000)
    budget_min: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    budget_max: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    message: str = Field(..., min_length=10, max_length=2000)
    special_requests: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def check_budget(self):
        if self.budget_min is not None and self.budget_max is not None and self.budget_max < self.budget_min:
            raise ValueError("budget_max must be greater than or equal to budget_min")
        return self


class EnquiryRespond(BaseModel):
    status: Literal["ACCEPTED", "DECLINED"]
    performer_response: Optional[str] = Field(default=None, max_length=2000)
    quoted_price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)


class EnquiryParty(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str

    model_config = {"from_attributes": True}


class EnquiryPerformer(BaseModel):
    id: int
    business_name: Optional[str] = None
    display_name: str
    location: str

    model_config = {"from_attributes": True}


class EnquiryResponse(BaseModel):
    id: int
    client_id: int
    performer_id: int
    event_type: str
    event_date: date
    event_time: Optional[str] = None
    event_duration: int
    event_location: str
    guest_count: Optional[int] = None
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None
    message: str
    special_requests: Optional[str] = None
    status: str
    performer_response: Optional[str] = None
    quoted_price: Optional[float] = None
    response_date: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: datetime
    client: Optional[EnquiryParty] = None
    performer: Optional[EnquiryPerformer] = None

    model_config = {"from_attributes": True}


class EnquiryListResponse(BaseModel):
    enquiries: list[EnquiryResponse]
    pagination: Pagination
