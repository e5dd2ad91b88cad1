"""
Listing service layer: business logic for classified listings.

Handles:
- Creation: organization authorization, credit payment, tag assignment,
  markdown rendering
- Updates: bump / unpublish / publish actions, field edits gated by the
  edit window
- Index queries with category and tag filters
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timedelta
from typing import Optional, Sequence

import structlog
from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import Settings
from app.core.markdown import render_markdown
from app.core.policies import authorize_listing_organization, authorize_listing_update
from app.models.base import utcnow
from app.models.listing import ClassifiedListing, ListingCategory, ListingTag
from app.models.tag import Tag
from app.models.user import User
from app.services.credits import choose_payer, spend_credits
from app.services.tags import apply_tags, parse_tag_list, split_cached_tag_list
from classifieds_shared.schemas.common import ListingAction, Pagination, PurchaseType
from classifieds_shared.schemas.listings import (
    CategoryRead,
    ListingCreate,
    ListingRead,
    ListingUpdate,
)

log = structlog.get_logger()

# Only editable while the listing is within the edit window
RESTRICTED_FIELDS = ("title", "body_markdown", "tag_list")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_editable(
    listing: ClassifiedListing, settings: Settings, now: Optional[datetime] = None
) -> bool:
    """True while bumped_at is inside the edit window."""
    now = now or utcnow()
    window = timedelta(hours=settings.listing_edit_window_hours)
    return listing.bumped_at > now - window


async def get_listing_or_404(session: AsyncSession, listing_id: uuid.UUID) -> ClassifiedListing:
    listing = await session.get(ClassifiedListing, listing_id)
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")
    return listing


async def get_category_or_404(session: AsyncSession, category_id: uuid.UUID) -> ListingCategory:
    category = await session.get(ListingCategory, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Listing category not found")
    return category


async def list_categories(session: AsyncSession) -> list[CategoryRead]:
    result = await session.execute(select(ListingCategory).order_by(ListingCategory.name))
    return [CategoryRead.model_validate(c) for c in result.scalars().all()]


def to_read(listing: ClassifiedListing, settings: Settings) -> ListingRead:
    return ListingRead(
        id=listing.id,
        user_id=listing.user_id,
        organization_id=listing.organization_id,
        category_id=listing.category_id,
        title=listing.title,
        body_markdown=listing.body_markdown,
        processed_html=listing.processed_html,
        cached_tag_list=listing.cached_tag_list,
        tags=split_cached_tag_list(listing.cached_tag_list),
        location=listing.location,
        contact_via_connect=listing.contact_via_connect,
        published=listing.published,
        bumped_at=listing.bumped_at,
        originally_published_at=listing.originally_published_at,
        editable=is_editable(listing, settings),
        created_at=listing.created_at,
        updated_at=listing.updated_at,
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def list_listings(
    session: AsyncSession,
    *,
    category_slug: Optional[str] = None,
    tag: Optional[str] = None,
    page: int = 1,
    per_page: int = 25,
) -> tuple[Sequence[ClassifiedListing], Pagination]:
    """Published listings, most recently bumped first."""
    stmt = select(ClassifiedListing).where(ClassifiedListing.published == True)  # noqa: E712

    if category_slug:
        stmt = stmt.join(
            ListingCategory, ListingCategory.id == ClassifiedListing.category_id
        ).where(ListingCategory.slug == category_slug)

    if tag:
        stmt = (
            stmt.join(ListingTag, ListingTag.listing_id == ClassifiedListing.id)
            .join(Tag, Tag.id == ListingTag.tag_id)
            .where(Tag.name == tag.strip().lower())
        )

    count_result = await session.execute(
        select(func.count()).select_from(stmt.subquery())
    )
    total = int(count_result.scalar_one())

    stmt = (
        stmt.order_by(ClassifiedListing.bumped_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    result = await session.execute(stmt)
    pagination = Pagination(
        page=page,
        per_page=per_page,
        total=total,
        total_pages=math.ceil(total / per_page) if total else 0,
    )
    return list(result.scalars().all()), pagination


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def create_listing(
    session: AsyncSession,
    user: User,
    listing_in: ListingCreate,
    settings: Settings,
) -> ClassifiedListing:
    """Create a listing, paying the category cost in credits."""
    category = await get_category_or_404(session, listing_in.category_id)

    if listing_in.organization_id is not None:
        await authorize_listing_organization(session, user, listing_in.organization_id)

    payer = await choose_payer(
        session,
        category.cost,
        user_id=user.id,
        organization_id=listing_in.organization_id,
    )

    now = utcnow()
    listing = ClassifiedListing(
        user_id=user.id,
        organization_id=listing_in.organization_id,
        category_id=category.id,
        title=listing_in.title,
        body_markdown=listing_in.body_markdown,
        processed_html=render_markdown(listing_in.body_markdown),
        location=listing_in.location,
        contact_via_connect=listing_in.contact_via_connect,
        published=True,
        bumped_at=now,
        originally_published_at=now,
    )
    session.add(listing)
    await session.flush()

    await apply_tags(
        session, listing, parse_tag_list(listing_in.tag_list, settings.listing_max_tags)
    )
    await spend_credits(
        session,
        payer,
        category.cost,
        purchase_type=PurchaseType.LISTING,
        purchase_id=listing.id,
    )

    log.info(
        "listing.created",
        listing_id=str(listing.id),
        user_id=str(user.id),
        organization_id=str(listing.organization_id) if listing.organization_id else None,
        category=category.slug,
    )
    return listing


async def bump_listing(
    session: AsyncSession, user: User, listing: ClassifiedListing
) -> ClassifiedListing:
    """Pay the category cost again and move bumped_at to now."""
    category = await get_category_or_404(session, listing.category_id)
    payer = await choose_payer(
        session,
        category.cost,
        user_id=user.id,
        organization_id=listing.organization_id,
    )
    await spend_credits(
        session,
        payer,
        category.cost,
        purchase_type=PurchaseType.LISTING,
        purchase_id=listing.id,
    )
    listing.bumped_at = utcnow()
    session.add(listing)
    await session.flush()
    log.info("listing.bumped", listing_id=str(listing.id), user_id=str(user.id))
    return listing


async def update_listing(
    session: AsyncSession,
    user: User,
    listing: ClassifiedListing,
    listing_in: ListingUpdate,
    settings: Settings,
) -> ClassifiedListing:
    """Apply an action, or field edits.

    Title, body and tag edits are dropped without error once the listing has
    left its edit window; location and contact settings are always editable.
    """
    await authorize_listing_update(session, user, listing)

    data = listing_in.model_dump(exclude_unset=True)
    action = data.pop("action", None)

    if action == ListingAction.BUMP:
        return await bump_listing(session, user, listing)
    if action == ListingAction.UNPUBLISH:
        listing.published = False
    elif action == ListingAction.PUBLISH:
        listing.published = True
    else:
        restricted = {k: data.pop(k) for k in RESTRICTED_FIELDS if k in data}
        if restricted and is_editable(listing, settings):
            if restricted.get("title") is not None:
                listing.title = restricted["title"]
            if restricted.get("body_markdown") is not None:
                listing.body_markdown = restricted["body_markdown"]
                listing.processed_html = render_markdown(listing.body_markdown)
            if "tag_list" in restricted:
                await apply_tags(
                    session,
                    listing,
                    parse_tag_list(restricted["tag_list"], settings.listing_max_tags),
                )
        elif restricted:
            log.info(
                "listing.edit_window_closed",
                listing_id=str(listing.id),
                fields=sorted(restricted),
            )

        if "location" in data:
            listing.location = data["location"]
        if data.get("contact_via_connect") is not None:
            listing.contact_via_connect = data["contact_via_connect"]

    listing.updated_at = utcnow()
    session.add(listing)
    await session.flush()

    log.info("listing.updated", listing_id=str(listing.id), action=action.value if action else None)
    return listing
