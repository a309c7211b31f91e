"""
Pydantic schemas for categories.
"""

from typing import Optional

from pydantic import BaseModel

from app.schemas.common import Pagination
from app.schemas.performer import PerformerListItem


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    icon_url: Optional[str] = None
    sort_order: int
    performer_count: int = 0

    model_config = {"from_attributes": True}


class CategoryListResponse(BaseModel):
    categories: list[CategoryResponse]
    pagination: Pagination


class CategoryDetailResponse(BaseModel):
    category: CategoryResponse
    performers: list[PerformerListItem]
