"""Sponsorship model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Sponsorship(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "sponsorships"

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)  # purchaser
    level: str = Field(nullable=False, index=True)  # gold | silver | bronze | tag | devrel
    status: str = Field(default="none", nullable=False)  # none | pending | live | expired
    expires_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
    instructions: str = Field(default="", nullable=False, sa_type=sa.Text())
    instructions_updated_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
    # Sponsorable tag, only for level == "tag"
    tag_id: Optional[uuid.UUID] = Field(default=None, foreign_key="tags.id", index=True)
