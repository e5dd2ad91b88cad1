"""
HTML pages.

GET /login                    — Sign-in form
GET /listings                 — Listings index with category filters
GET /listings/new             — New listing form
GET /listings/{id}/edit       — Edit form with bump / unpublish controls
GET /listings/{category}      — Listings index filtered to one category
GET /partnerships/{level}     — Sponsorship purchase page
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user, get_optional_user
from app.core.config import Settings, get_settings
from app.core.database import get_session
from app.core.policies import authorize_listing_update
from app.models.user import User
from app.pages import templates
from app.services import listings as listing_service
from app.services import organizations as org_service
from app.services import sponsorships as sponsorship_service
from app.services.credits import credit_summary
from classifieds_shared.schemas.common import SponsorshipLevel

router = APIRouter(default_response_class=HTMLResponse)


async def _render_index(
    session: AsyncSession,
    settings: Settings,
    *,
    category: Optional[str],
    tag: Optional[str],
    signed_in: bool,
) -> str:
    listings, _ = await listing_service.list_listings(
        session, category_slug=category, tag=tag, per_page=100
    )
    return templates.listings_index(
        [listing_service.to_read(listing, settings) for listing in listings],
        await listing_service.list_categories(session),
        active_category=category,
        signed_in=signed_in,
    )


@router.get("/login")
async def login_page():
    return templates.login_form()


@router.get("/listings")
async def listings_page(
    tag: Optional[str] = None,
    user: Optional[User] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    return await _render_index(session, settings, category=None, tag=tag, signed_in=user is not None)


@router.get("/listings/new")
async def new_listing_page(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    summary = await credit_summary(session, user)
    return templates.new_listing_form(
        await listing_service.list_categories(session),
        await org_service.list_user_orgs(user.id, session),
        available_credits=summary.user.unspent,
    )


@router.get("/listings/{listing_id}/edit")
async def edit_listing_page(
    listing_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    listing = await listing_service.get_listing_or_404(session, listing_id)
    await authorize_listing_update(session, user, listing)
    category = await listing_service.get_category_or_404(session, listing.category_id)
    return templates.edit_listing_form(
        listing_service.to_read(listing, settings),
        bump_cost=category.cost,
        edit_window_hours=settings.listing_edit_window_hours,
    )


@router.get("/listings/{category}")
async def category_listings_page(
    category: str,
    tag: Optional[str] = None,
    user: Optional[User] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    return await _render_index(
        session, settings, category=category, tag=tag, signed_in=user is not None
    )


@router.get("/partnerships/{level}")
async def partnership_page(
    level: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    try:
        sponsorship_level = SponsorshipLevel(level)
    except ValueError:
        raise HTTPException(status_code=404, detail="Unknown sponsorship level")
    view = await sponsorship_service.build_purchase_view(session, user, sponsorship_level, settings)
    return templates.partnership_page(view)
