"""
Pydantic schemas for reviews and testimonials.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from app.schemas.common import Pagination

ReviewEventType = Literal["WEDDING", "BIRTHDAY", "CORPORATE", "OTHER"]


class ReviewCreate(BaseModel):
    rating_overall: int = Field(..., ge=1, le=5)
    rating_quality: int = Field(..., ge=1, le=5)
    rating_communication: int = Field(..., ge=1, le=5)
    written_review: str = Field(..., min_length=10, max_length=2000)
    event_type: ReviewEventType
    photos: list[str] = Field(default_factory=list, max_length=5)


class ReviewAuthor(BaseModel):
    id: int
    first_name: str
    last_name: str

    model_config = {"from_attributes": True}


class ReviewResponse(BaseModel):
    id: int
    booking_id: int
    performer_id: int
    rating_overall: int
    rating_quality: int
    rating_communication: int
    written_review: str
    event_type: str
    photos: list[str]
    is_verified: bool
    created_at: datetime
    client: Optional[ReviewAuthor] = None

    model_config = {"from_attributes": True}


class RatingStatistics(BaseModel):
    average_overall: float
    average_quality: float
    average_communication: float
    total_reviews: int
    rating_distribution: dict[int, int]


class ReviewListResponse(BaseModel):
    reviews: list[ReviewResponse]
    statistics: RatingStatistics
    pagination: Pagination


class TestimonialCreate(BaseModel):
    performer_id: int
    author_name: str = Field(..., min_length=1, max_length=100)
    quote: str = Field(..., min_length=10, max_length=1000)
    event_type: ReviewEventType
    is_featured: bool = False


class TestimonialResponse(BaseModel):
    id: int
    performer_id: int
    author_name: str
    quote: str
    event_type: str
    is_featured: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class TestimonialStatistics(BaseModel):
    total: int
    featured: int
    by_event_type: dict[str, int]


class TestimonialListResponse(BaseModel):
    testimonials: list[TestimonialResponse]
    statistics: TestimonialStatistics
    pagination: Pagination

