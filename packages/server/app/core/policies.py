"""
Authorization policies.

Each check raises NotAuthorizedError when the acting user may not perform
the action; callers never get a boolean to forget about.
"""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotAuthorizedError
from app.models.listing import ClassifiedListing
from app.models.user import User
from app.services import organizations as org_service


async def authorize_listing_organization(
    session: AsyncSession, user: User, organization_id: uuid.UUID
) -> None:
    """A listing may be owned by an organization only if the author belongs to it."""
    if not await org_service.is_member(session, user.id, organization_id):
        raise NotAuthorizedError(
            "You are not a member of this organization",
            action="listing.assign_organization",
        )


async def authorize_listing_update(
    session: AsyncSession, user: User, listing: ClassifiedListing
) -> None:
    """The author, or an admin of the owning organization, may update a listing."""
    if listing.user_id == user.id:
        return
    if listing.organization_id is not None and await org_service.is_admin(
        session, user.id, listing.organization_id
    ):
        return
    raise NotAuthorizedError("You cannot edit this listing", action="listing.update")


async def authorize_org_admin(
    session: AsyncSession, user: User, organization_id: uuid.UUID, *, action: str
) -> None:
    if not await org_service.is_admin(session, user.id, organization_id):
        raise NotAuthorizedError("Organization admin access required", action=action)
