"""
Sponsorship ("partnership") endpoints.

GET  /api/v1/partnerships/{level} — Purchase view state for the current user
POST /api/v1/partnerships         — Subscribe an organization to a level
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.config import Settings, get_settings
from app.core.database import get_session
from app.models.user import User
from app.services import sponsorships as sponsorship_service
from classifieds_shared.schemas.common import SponsorshipLevel
from classifieds_shared.schemas.sponsorships import (
    PurchaseView,
    SponsorshipCreateRequest,
    SponsorshipRead,
)

router = APIRouter()


@router.get("/{level}", response_model=PurchaseView)
async def purchase_view_endpoint(
    level: SponsorshipLevel,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    return await sponsorship_service.build_purchase_view(session, user, level, settings)


@router.post("", response_model=SponsorshipRead, status_code=201)
async def create_sponsorship_endpoint(
    body: SponsorshipCreateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """Subscribe (or renew) a sponsorship, paid with organization credits."""
    sponsorship = await sponsorship_service.create_sponsorship(session, user, body, settings)
    await session.commit()
    await session.refresh(sponsorship)
    return await sponsorship_service.to_read(session, sponsorship)
