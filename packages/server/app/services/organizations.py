"""
Organization service — org creation, membership lookups and management.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.organization import Organization, OrganizationMembership
from app.models.user import User
from classifieds_shared.schemas.common import MembershipRole
from classifieds_shared.schemas.organizations import (
    MemberAddRequest,
    OrgCreateRequest,
    OrgListItem,
)

log = structlog.get_logger()


async def get_membership(
    session: AsyncSession, user_id: uuid.UUID, organization_id: uuid.UUID
) -> Optional[OrganizationMembership]:
    return await session.get(
        OrganizationMembership,
        {"user_id": user_id, "organization_id": organization_id},
    )


async def is_member(
    session: AsyncSession, user_id: uuid.UUID, organization_id: uuid.UUID
) -> bool:
    return await get_membership(session, user_id, organization_id) is not None


async def is_admin(
    session: AsyncSession, user_id: uuid.UUID, organization_id: uuid.UUID
) -> bool:
    membership = await get_membership(session, user_id, organization_id)
    return membership is not None and membership.type_of_user == MembershipRole.ADMIN.value


async def list_user_orgs(
    user_id: uuid.UUID, session: AsyncSession, *, admin_only: bool = False
) -> list[OrgListItem]:
    """List all orgs a user belongs to, with their role."""
    stmt = (
        select(Organization, OrganizationMembership.type_of_user)
        .join(
            OrganizationMembership,
            OrganizationMembership.organization_id == Organization.id,
        )
        .where(OrganizationMembership.user_id == user_id)
        .order_by(Organization.name)
    )
    if admin_only:
        stmt = stmt.where(OrganizationMembership.type_of_user == MembershipRole.ADMIN.value)
    result = await session.execute(stmt)
    return [
        OrgListItem(id=org.id, name=org.name, slug=org.slug, role=role)
        for org, role in result.all()
    ]


async def create_org(
    req: OrgCreateRequest,
    creator_id: uuid.UUID,
    session: AsyncSession,
) -> Organization:
    """Create an org and make the creator an admin."""
    existing = await session.execute(
        select(Organization).where(Organization.slug == req.slug)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Org slug already taken")

    org = Organization(name=req.name, slug=req.slug)
    session.add(org)
    await session.flush()

    session.add(
        OrganizationMembership(
            user_id=creator_id,
            organization_id=org.id,
            type_of_user=MembershipRole.ADMIN.value,
        )
    )
    await session.flush()

    log.info("org.created", org_id=str(org.id), slug=req.slug, creator=str(creator_id))
    return org


async def get_org(org_slug: str, session: AsyncSession) -> Organization:
    """Get an org by slug; raises 404 if not found."""
    result = await session.execute(
        select(Organization).where(Organization.slug == org_slug)
    )
    org = result.scalar_one_or_none()
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


async def add_member(
    org: Organization,
    req: MemberAddRequest,
    session: AsyncSession,
) -> OrganizationMembership:
    """Add an existing user (by email) to an org."""
    result = await session.execute(select(User).where(User.email == req.email))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if await is_member(session, user.id, org.id):
        raise HTTPException(status_code=409, detail="User is already a member")

    membership = OrganizationMembership(
        user_id=user.id,
        organization_id=org.id,
        type_of_user=req.role.value,
    )
    session.add(membership)
    await session.flush()

    log.info("org.member_added", org_id=str(org.id), user_id=str(user.id), role=req.role.value)
    return membership
