"""Classified listing schemas for shared use across the API and page renderers."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field
from pydantic import UUID4

from .common import ListingAction, Pagination


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

class CategoryRead(BaseModel):
    id: UUID4
    name: str
    slug: str
    cost: int
    rules: Optional[str] = None

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Listing CRUD
# ---------------------------------------------------------------------------

class ListingCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=128)
    category_id: UUID4
    body_markdown: str = Field(..., min_length=1, max_length=400)
    # "ruby, rails, go" or ["ruby", "rails", "go"]
    tag_list: Union[str, List[str]] = ""
    organization_id: Optional[UUID4] = None
    location: Optional[str] = Field(None, max_length=32)
    contact_via_connect: bool = False


class ListingUpdate(BaseModel):
    """Partial update. `action` takes precedence over field edits."""
    action: Optional[ListingAction] = None
    title: Optional[str] = Field(None, min_length=1, max_length=128)
    body_markdown: Optional[str] = Field(None, min_length=1, max_length=400)
    tag_list: Optional[Union[str, List[str]]] = None
    location: Optional[str] = Field(None, max_length=32)
    contact_via_connect: Optional[bool] = None


class ListingRead(BaseModel):
    id: UUID4
    user_id: UUID4
    organization_id: Optional[UUID4] = None
    category_id: UUID4
    title: str
    body_markdown: str
    processed_html: str
    cached_tag_list: str
    tags: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    contact_via_connect: bool
    published: bool
    bumped_at: datetime
    originally_published_at: Optional[datetime] = None
    editable: bool = False
    created_at: datetime
    updated_at: datetime


class ListingIndexResponse(BaseModel):
    data: List[ListingRead]
    categories: List[CategoryRead]
    pagination: Pagination
