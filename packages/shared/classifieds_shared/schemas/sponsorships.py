"""
Sponsorship ("partnership") schemas.

Covers: the purchase view state rendered per organization, and the
subscription request submitted from it.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .common import SponsorshipLevel, SponsorshipStatus


class PurchaseState(str, Enum):
    NO_ORGANIZATIONS = "no_organizations"
    INSUFFICIENT_CREDITS = "insufficient_credits"
    SUBSCRIBE = "subscribe"


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class SponsorshipCreateRequest(BaseModel):
    organization_id: uuid.UUID
    level: SponsorshipLevel
    instructions: str = Field(default="", max_length=2000)
    tag_name: Optional[str] = Field(
        default=None,
        description="Tag to sponsor (required when level is 'tag')",
    )


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class SponsorshipRead(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    user_id: uuid.UUID
    level: SponsorshipLevel
    status: SponsorshipStatus
    expires_at: Optional[datetime] = None
    instructions: str
    instructions_updated_at: Optional[datetime] = None
    tag_name: Optional[str] = None
    created_at: datetime


class OrgPurchaseOption(BaseModel):
    """What one organization sees on the purchase page for a level."""
    organization_id: uuid.UUID
    name: str
    slug: str
    state: PurchaseState
    available_credits: int
    credits_needed: int
    current_sponsorship: Optional[SponsorshipRead] = None
    # Holding a different metal level blocks a new metal subscription
    blocked: bool = False
    available_tags: list[str] = Field(default_factory=list)
    sponsored_tags: list[str] = Field(default_factory=list)


class PurchaseView(BaseModel):
    level: SponsorshipLevel
    credits_needed: int
    state: PurchaseState
    organizations: list[OrgPurchaseOption] = Field(default_factory=list)
