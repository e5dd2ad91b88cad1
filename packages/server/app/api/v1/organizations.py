"""
Organization API endpoints.

GET  /api/v1/orgs                    — List orgs for authenticated user
POST /api/v1/orgs                    — Create a new org
POST /api/v1/orgs/{orgSlug}/members  — Add a member (admin only)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.database import get_session
from app.core.policies import authorize_org_admin
from app.models.user import User
from app.services import organizations as org_service
from classifieds_shared.schemas.organizations import (
    MemberAddRequest,
    MemberResponse,
    OrgCreateRequest,
    OrgListResponse,
    OrgResponse,
)

router = APIRouter()


@router.get("", response_model=OrgListResponse)
async def list_orgs(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """List orgs the authenticated user belongs to."""
    items = await org_service.list_user_orgs(user.id, session)
    return OrgListResponse(data=items)


@router.post("", response_model=OrgResponse, status_code=201)
async def create_org(
    body: OrgCreateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Create a new organization. The creator becomes an admin."""
    org = await org_service.create_org(body, user.id, session)
    await session.commit()
    return OrgResponse.model_validate(org)


@router.post("/{orgSlug}/members", response_model=MemberResponse, status_code=201)
async def add_member(
    orgSlug: str,
    body: MemberAddRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Add an existing user to the org (Admin only)."""
    org = await org_service.get_org(orgSlug, session)
    await authorize_org_admin(session, user, org.id, action="org.add_member")
    membership = await org_service.add_member(org, body, session)
    await session.commit()
    return MemberResponse(
        user_id=membership.user_id,
        organization_id=membership.organization_id,
        role=membership.type_of_user,
    )
