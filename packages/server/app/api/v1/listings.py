"""
Classified listing endpoints.

GET  /api/v1/listings             — Published listings (filters: category, tag)
GET  /api/v1/listings/categories  — Listing categories and their credit cost
GET  /api/v1/listings/{id}        — A single listing
POST /api/v1/listings             — Create (rate limited, paid in credits)
PUT  /api/v1/listings/{id}        — Action (bump | unpublish | publish) or field edits
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.config import Settings, get_settings
from app.core.database import get_session
from app.core.errors import RateLimitExceededError
from app.core.rate_limit import LISTING_CREATION, RateLimitChecker, get_rate_limit_checker
from app.models.user import User
from app.services import listings as listing_service
from classifieds_shared.schemas.listings import (
    CategoryRead,
    ListingCreate,
    ListingIndexResponse,
    ListingRead,
    ListingUpdate,
)

router = APIRouter()


@router.get("", response_model=ListingIndexResponse)
async def list_listings_endpoint(
    category: Optional[str] = None,
    tag: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(25, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """List published listings, most recently bumped first."""
    listings, pagination = await listing_service.list_listings(
        session, category_slug=category, tag=tag, page=page, per_page=per_page
    )
    return ListingIndexResponse(
        data=[listing_service.to_read(listing, settings) for listing in listings],
        categories=await listing_service.list_categories(session),
        pagination=pagination,
    )


@router.get("/categories", response_model=List[CategoryRead])
async def list_categories_endpoint(session: AsyncSession = Depends(get_session)):
    return await listing_service.list_categories(session)


@router.get("/{listing_id}", response_model=ListingRead)
async def get_listing_endpoint(
    listing_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    listing = await listing_service.get_listing_or_404(session, listing_id)
    if not listing.published:
        raise HTTPException(status_code=404, detail="Listing not found")
    return listing_service.to_read(listing, settings)


@router.post("", response_model=ListingRead, status_code=201)
async def create_listing_endpoint(
    listing_in: ListingCreate,
    user: User = Depends(get_current_user),
    rate_limiter: RateLimitChecker = Depends(get_rate_limit_checker),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """Create a listing under the user, or under one of the user's organizations."""
    if await rate_limiter.limit_by_action(LISTING_CREATION):
        raise RateLimitExceededError(LISTING_CREATION, rate_limiter.retry_after(LISTING_CREATION))
    attempts = await rate_limiter.track_limit_by_action(LISTING_CREATION)
    # Concurrent requests can all pass the read above; the increment decides
    if rate_limiter.exceeded(LISTING_CREATION, attempts):
        raise RateLimitExceededError(LISTING_CREATION, rate_limiter.retry_after(LISTING_CREATION))

    listing = await listing_service.create_listing(session, user, listing_in, settings)
    await session.commit()
    await session.refresh(listing)
    return listing_service.to_read(listing, settings)


@router.put("/{listing_id}", response_model=ListingRead)
async def update_listing_endpoint(
    listing_id: uuid.UUID,
    listing_in: ListingUpdate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    listing = await listing_service.get_listing_or_404(session, listing_id)
    listing = await listing_service.update_listing(session, user, listing, listing_in, settings)
    await session.commit()
    await session.refresh(listing)
    return listing_service.to_read(listing, settings)
