"""Credit model: one prepaid unit owned by a user or an organization."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Credit(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "credits"
    __table_args__ = (
        sa.CheckConstraint(
            "(user_id IS NULL) <> (organization_id IS NULL)",
            name="ck_credits_single_owner",
        ),
    )

    user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", index=True)
    organization_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="organizations.id", index=True
    )
    spent: bool = Field(default=False, nullable=False, index=True)
    spent_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
    purchase_type: Optional[str] = None  # listing | sponsorship
    purchase_id: Optional[uuid.UUID] = None
