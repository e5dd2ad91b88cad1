"""
Sponsorship service: the purchase view and subscription requests.

Levels:
- Metal tiers (gold/silver/bronze): one active metal sponsorship per org.
  Buying the same level again renews it; a different level is refused and
  the org is pointed at support.
- Tag: one organization per tag. Only supported tags can be sponsored.
- Devrel: one per org, renewable.

Sponsorships are paid with organization credits only.
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import Optional, Sequence

import structlog
from fastapi import HTTPException
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import Settings
from app.core.policies import authorize_org_admin
from app.models.base import utcnow
from app.models.organization import Organization
from app.models.sponsorship import Sponsorship
from app.models.tag import Tag
from app.models.user import User
from app.services import organizations as org_service
from app.services.credits import CreditOwner, count_unspent, spend_credits
from app.services.tags import normalize_tag
from classifieds_shared.schemas.common import (
    ACTIVE_SPONSORSHIP_STATUSES,
    METAL_LEVELS,
    PurchaseType,
    SponsorshipLevel,
    SponsorshipStatus,
)
from classifieds_shared.schemas.sponsorships import (
    OrgPurchaseOption,
    PurchaseState,
    PurchaseView,
    SponsorshipCreateRequest,
    SponsorshipRead,
)

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def sponsorship_cost(level: SponsorshipLevel, settings: Settings) -> int:
    try:
        return settings.sponsorship_costs[level.value]
    except KeyError:
        raise HTTPException(status_code=422, detail=f"No price configured for level '{level.value}'")


def _active_clause():
    now = utcnow()
    return (
        Sponsorship.status.in_([s.value for s in ACTIVE_SPONSORSHIP_STATUSES]),
        or_(Sponsorship.expires_at == None, Sponsorship.expires_at > now),  # noqa: E711
    )


async def active_sponsorships(
    session: AsyncSession,
    *,
    organization_id: Optional[uuid.UUID] = None,
    levels: Optional[Sequence[SponsorshipLevel]] = None,
    tag_id: Optional[uuid.UUID] = None,
) -> list[Sponsorship]:
    stmt = select(Sponsorship).where(*_active_clause())
    if organization_id is not None:
        stmt = stmt.where(Sponsorship.organization_id == organization_id)
    if levels is not None:
        stmt = stmt.where(Sponsorship.level.in_([lvl.value for lvl in levels]))
    if tag_id is not None:
        stmt = stmt.where(Sponsorship.tag_id == tag_id)
    result = await session.execute(stmt.order_by(Sponsorship.created_at))
    return list(result.scalars().all())


async def to_read(session: AsyncSession, sponsorship: Sponsorship) -> SponsorshipRead:
    tag_name = None
    if sponsorship.tag_id is not None:
        tag = await session.get(Tag, sponsorship.tag_id)
        tag_name = tag.name if tag else None
    return SponsorshipRead(
        id=sponsorship.id,
        organization_id=sponsorship.organization_id,
        user_id=sponsorship.user_id,
        level=sponsorship.level,
        status=sponsorship.status,
        expires_at=sponsorship.expires_at,
        instructions=sponsorship.instructions,
        instructions_updated_at=sponsorship.instructions_updated_at,
        tag_name=tag_name,
        created_at=sponsorship.created_at,
    )


async def _tag_names_for(session: AsyncSession, sponsorships: Sequence[Sponsorship]) -> list[str]:
    tag_ids = [s.tag_id for s in sponsorships if s.tag_id is not None]
    if not tag_ids:
        return []
    result = await session.execute(select(Tag.name).where(Tag.id.in_(tag_ids)).order_by(Tag.name))
    return list(result.scalars().all())


async def _unsponsored_tag_names(session: AsyncSession) -> list[str]:
    taken = await active_sponsorships(session, levels=[SponsorshipLevel.TAG])
    taken_ids = {s.tag_id for s in taken if s.tag_id is not None}
    result = await session.execute(
        select(Tag).where(Tag.supported == True).order_by(Tag.name)  # noqa: E712
    )
    return [tag.name for tag in result.scalars().all() if tag.id not in taken_ids]


# ---------------------------------------------------------------------------
# Purchase view
# ---------------------------------------------------------------------------


async def build_purchase_view(
    session: AsyncSession,
    user: User,
    level: SponsorshipLevel,
    settings: Settings,
) -> PurchaseView:
    """What the purchase page shows for level, per organization the user administers."""
    cost = sponsorship_cost(level, settings)
    orgs = await org_service.list_user_orgs(user.id, session, admin_only=True)
    if not orgs:
        return PurchaseView(level=level, credits_needed=cost, state=PurchaseState.NO_ORGANIZATIONS)

    unsponsored_tags: Optional[list[str]] = None
    options: list[OrgPurchaseOption] = []
    for org in orgs:
        available = await count_unspent(session, CreditOwner(organization_id=org.id))
        option = OrgPurchaseOption(
            organization_id=org.id,
            name=org.name,
            slug=org.slug,
            state=PurchaseState.SUBSCRIBE if available >= cost else PurchaseState.INSUFFICIENT_CREDITS,
            available_credits=available,
            credits_needed=cost,
        )

        if level == SponsorshipLevel.TAG:
            if unsponsored_tags is None:
                unsponsored_tags = await _unsponsored_tag_names(session)
            option.available_tags = unsponsored_tags
            own = await active_sponsorships(
                session, organization_id=org.id, levels=[SponsorshipLevel.TAG]
            )
            option.sponsored_tags = await _tag_names_for(session, own)
        else:
            levels = METAL_LEVELS if level in METAL_LEVELS else [level]
            current = await active_sponsorships(session, organization_id=org.id, levels=levels)
            if current:
                option.current_sponsorship = await to_read(session, current[0])
                option.blocked = current[0].level != level.value

        options.append(option)

    state = (
        PurchaseState.SUBSCRIBE
        if any(o.state == PurchaseState.SUBSCRIBE for o in options)
        else PurchaseState.INSUFFICIENT_CREDITS
    )
    return PurchaseView(level=level, credits_needed=cost, state=state, organizations=options)


# ---------------------------------------------------------------------------
# Subscription
# ---------------------------------------------------------------------------


async def _resolve_sponsorable_tag(session: AsyncSession, tag_name: Optional[str]) -> Tag:
    if not tag_name or not normalize_tag(tag_name):
        raise HTTPException(status_code=422, detail="tag_name is required for tag sponsorships")
    result = await session.execute(
        select(Tag).where(Tag.name == normalize_tag(tag_name), Tag.supported == True)  # noqa: E712
    )
    tag = result.scalar_one_or_none()
    if not tag:
        raise HTTPException(status_code=404, detail="Tag not found or not sponsorable")
    return tag


async def create_sponsorship(
    session: AsyncSession,
    user: User,
    req: SponsorshipCreateRequest,
    settings: Settings,
) -> Sponsorship:
    """Subscribe an organization to a sponsorship level, or renew its current one."""
    org = await session.get(Organization, req.organization_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    await authorize_org_admin(session, user, org.id, action="sponsorship.create")

    level = req.level
    cost = sponsorship_cost(level, settings)
    tag: Optional[Tag] = None
    existing: Optional[Sponsorship] = None

    if level == SponsorshipLevel.TAG:
        tag = await _resolve_sponsorable_tag(session, req.tag_name)
        holders = await active_sponsorships(session, levels=[SponsorshipLevel.TAG], tag_id=tag.id)
        if holders and holders[0].organization_id != org.id:
            raise HTTPException(status_code=409, detail=f"#{tag.name} is already sponsored")
        existing = holders[0] if holders else None
    elif level in METAL_LEVELS:
        current = await active_sponsorships(session, organization_id=org.id, levels=METAL_LEVELS)
        if current and current[0].level != level.value:
            raise HTTPException(
                status_code=409,
                detail=(
                    f"Your organization already has a {current[0].level} sponsorship. "
                    "Please contact support to change levels."
                ),
            )
        existing = current[0] if current else None
    else:
        current = await active_sponsorships(session, organization_id=org.id, levels=[level])
        existing = current[0] if current else None

    payer = CreditOwner(organization_id=org.id)
    if await count_unspent(session, payer) < cost:
        raise HTTPException(status_code=402, detail="Not enough available credits")

    now = utcnow()
    period = timedelta(days=settings.sponsorship_period_days)

    if existing is not None:
        base = max(now, existing.expires_at) if existing.expires_at else now
        existing.expires_at = base + period
        if req.instructions:
            existing.instructions = req.instructions
            existing.instructions_updated_at = now
        existing.updated_at = now
        sponsorship = existing
        event = "sponsorship.renewed"
    else:
        sponsorship = Sponsorship(
            organization_id=org.id,
            user_id=user.id,
            level=level.value,
            status=SponsorshipStatus.PENDING.value,
            expires_at=now + period,
            instructions=req.instructions,
            instructions_updated_at=now if req.instructions else None,
            tag_id=tag.id if tag else None,
        )
        event = "sponsorship.created"

    session.add(sponsorship)
    await session.flush()

    await spend_credits(
        session,
        payer,
        cost,
        purchase_type=PurchaseType.SPONSORSHIP,
        purchase_id=sponsorship.id,
    )

    log.info(
        event,
        sponsorship_id=str(sponsorship.id),
        organization_id=str(org.id),
        level=level.value,
        tag=tag.name if tag else None,
        expires_at=str(sponsorship.expires_at),
    )
    return sponsorship
