"""
Pydantic schemas for performer profiles and search.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from app.schemas.common import Pagination
from app.schemas.review import ReviewResponse, TestimonialResponse


class PerformerCategoryIn(BaseModel):
    category_id: int
    is_primary: bool = False


class PerformerBase(BaseModel):
    business_name: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=2000)
    postcode: Optional[str] = Field(default=None, max_length=10)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    travel_distance: Optional[int] = Field(default=None, ge=0, le=1000)
    price_per_hour: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    website_url: Optional[str] = Field(default=None, max_length=500)
    facebook_url: Optional[str] = Field(default=None, max_length=500)
    instagram_url: Optional[str] = Field(default=None, max_length=500)
    youtube_url: Optional[str] = Field(default=None, max_length=500)

    @field_validator("categories", check_fields=False)
    @classmethod
    def unique_categories(cls, v):
        if v is not None:
            ids = [c.category_id for c in v]
            if len(ids) != len(set(ids)):
                raise ValueError("categories must not repeat")
        return v


class PerformerCreate(PerformerBase):
    location: str = Field(..., min_length=1, max_length=100)
    base_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    minimum_booking_hours: int = Field(default=1, ge=1, le=24)
    setup_time_minutes: int = Field(default=30, ge=0, le=480)
    categories: list[PerformerCategoryIn] = Field(..., min_length=1)


class PerformerUpdate(PerformerBase):
    location: Optional[str] = Field(default=None, min_length=1, max_length=100)
    base_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    minimum_booking_hours: Optional[int] = Field(default=None, ge=1, le=24)
    setup_time_minutes: Optional[int] = Field(default=None, ge=0, le=480)
    categories: Optional[list[PerformerCategoryIn]] = Field(default=None, min_length=1)


class CategoryBrief(BaseModel):
    id: int
    name: str
    slug: str
    is_primary: bool = False


class PerformerUser(BaseModel):
    id: int
    first_name: str
    last_name: str
    profile_image_url: Optional[str] = None

    model_config = {"from_attributes": True}


class PerformerListItem(BaseModel):
    id: int
    user_id: int
    business_name: Optional[str] = None
    display_name: str
    location: str
    base_price: float
    price_per_hour: Optional[float] = None
    is_verified: bool
    is_featured: bool
    average_rating: float
    total_reviews: int
    total_bookings: int
    user: PerformerUser
    categories: list[CategoryBrief] = []
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("categories", mode="before")
    @classmethod
    def flatten_categories(cls, v):
        flattened = []
        for link in v or []:
            if isinstance(link, dict):
                flattened.append(link)
                continue
            flattened.append({
                "id": link.category.id,
                "name": link.category.name,
                "slug": link.category.slug,
                "is_primary": link.is_primary,
            })
        return flattened


class PerformerResponse(PerformerListItem):
    bio: Optional[str] = None
    postcode: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    travel_distance: Optional[int] = None
    minimum_booking_hours: int
    setup_time_minutes: int
    website_url: Optional[str] = None
    facebook_url: Optional[str] = None
    instagram_url: Optional[str] = None
    youtube_url: Optional[str] = None
    response_rate: Optional[float] = None
    response_time_hours: Optional[float] = None
    stripe_onboarding_complete: bool
    payout_enabled: bool
    updated_at: datetime


class PerformerDetailResponse(BaseModel):
    performer: PerformerResponse
    testimonials: list[TestimonialResponse]
    reviews: list[ReviewResponse]


class PerformerSearchParams(BaseModel):
    query: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    min_price: Optional[Decimal] = Field(default=None, ge=0)
    max_price: Optional[Decimal] = Field(default=None, ge=0)
    min_rating: Optional[float] = Field(default=None, ge=0, le=5)
    is_verified: Optional[bool] = None
    is_featured: Optional[bool] = None
    sort_by: Literal["price", "rating", "popularity", "newest"] = "rating"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)


class PerformerSearchResponse(BaseModel):
    performers: list[PerformerListItem]
    pagination: Pagination
