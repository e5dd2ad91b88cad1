from enum import Enum
from pydantic import BaseModel

class MembershipRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"

class ListingAction(str, Enum):
    BUMP = "bump"
    UNPUBLISH = "unpublish"
    PUBLISH = "publish"

class PurchaseType(str, Enum):
    LISTING = "listing"
    SPONSORSHIP = "sponsorship"

class SponsorshipLevel(str, Enum):
    GOLD = "gold"
    SILVER = "silver"
    BRONZE = "bronze"
    TAG = "tag"
    DEVREL = "devrel"

class SponsorshipStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    LIVE = "live"
    EXPIRED = "expired"

# Tiered levels; an org may hold only one of these at a time
METAL_LEVELS: list["SponsorshipLevel"] = [
    SponsorshipLevel.GOLD,
    SponsorshipLevel.SILVER,
    SponsorshipLevel.BRONZE,
]

# Statuses that still occupy a level or a tag
ACTIVE_SPONSORSHIP_STATUSES: list["SponsorshipStatus"] = [
    SponsorshipStatus.PENDING,
    SponsorshipStatus.LIVE,
]

class Pagination(BaseModel):
    page: int
    per_page: int
    total: int
    total_pages: int
