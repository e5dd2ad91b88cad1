"""Classified listing, category and listing-tag models."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, utcnow


class ListingCategory(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "listing_categories"

    name: str = Field(nullable=False)
    slug: str = Field(unique=True, nullable=False, index=True)
    cost: int = Field(nullable=False, default=1)  # credits
    rules: Optional[str] = None


class ClassifiedListing(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "classified_listings"

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    organization_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="organizations.id", index=True
    )
    category_id: uuid.UUID = Field(foreign_key="listing_categories.id", nullable=False, index=True)
    title: str = Field(nullable=False)
    body_markdown: str = Field(nullable=False, sa_type=sa.Text())
    processed_html: str = Field(default="", nullable=False, sa_type=sa.Text())
    cached_tag_list: str = Field(default="", nullable=False)
    location: Optional[str] = None
    contact_via_connect: bool = Field(default=False, nullable=False)
    published: bool = Field(default=True, nullable=False, index=True)
    bumped_at: datetime = Field(
        default_factory=utcnow, nullable=False, index=True, sa_type=sa.DateTime()
    )
    originally_published_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())


class ListingTag(SQLModel, table=True):
    __tablename__ = "listing_tags"

    listing_id: uuid.UUID = Field(foreign_key="classified_listings.id", primary_key=True)
    tag_id: uuid.UUID = Field(foreign_key="tags.id", primary_key=True)
