"""
Credit ledger: counting, granting and spending prepaid credits.

A credit belongs to exactly one owner, a user or an organization. Spending
marks the oldest unspent credits of one owner as spent, all of them or none.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.base import utcnow
from app.models.credit import Credit
from app.models.organization import Organization, OrganizationMembership
from app.models.user import User
from classifieds_shared.schemas.common import PurchaseType
from classifieds_shared.schemas.credits import CreditBalance, CreditSummary, OrgCreditBalance

log = structlog.get_logger()


@dataclass(frozen=True)
class CreditOwner:
    """Who pays: exactly one of user_id / organization_id is set."""

    user_id: Optional[uuid.UUID] = None
    organization_id: Optional[uuid.UUID] = None

    def __post_init__(self) -> None:
        if (self.user_id is None) == (self.organization_id is None):
            raise ValueError("CreditOwner needs exactly one of user_id or organization_id")

    def clause(self):
        if self.user_id is not None:
            return Credit.user_id == self.user_id
        return Credit.organization_id == self.organization_id

    def describe(self) -> dict[str, str]:
        if self.user_id is not None:
            return {"user_id": str(self.user_id)}
        return {"organization_id": str(self.organization_id)}


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def count_credits(session: AsyncSession, owner: CreditOwner, *, spent: bool) -> int:
    result = await session.execute(
        select(func.count()).select_from(Credit).where(owner.clause(), Credit.spent == spent)
    )
    return int(result.scalar_one())


async def count_unspent(session: AsyncSession, owner: CreditOwner) -> int:
    return await count_credits(session, owner, spent=False)


async def credit_summary(session: AsyncSession, user: User) -> CreditSummary:
    """Unspent/spent counts for the user and every organization they belong to."""
    user_owner = CreditOwner(user_id=user.id)
    summary = CreditSummary(
        user=CreditBalance(
            unspent=await count_credits(session, user_owner, spent=False),
            spent=await count_credits(session, user_owner, spent=True),
        )
    )
    result = await session.execute(
        select(Organization)
        .join(OrganizationMembership, OrganizationMembership.organization_id == Organization.id)
        .where(OrganizationMembership.user_id == user.id)
        .order_by(Organization.name)
    )
    for org in result.scalars().all():
        org_owner = CreditOwner(organization_id=org.id)
        summary.organizations.append(
            OrgCreditBalance(
                organization_id=org.id,
                name=org.name,
                slug=org.slug,
                unspent=await count_credits(session, org_owner, spent=False),
                spent=await count_credits(session, org_owner, spent=True),
            )
        )
    return summary


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def grant_credits(session: AsyncSession, owner: CreditOwner, count: int) -> list[Credit]:
    """Add `count` unspent credits to owner."""
    if count < 1:
        raise ValueError("count must be >= 1")
    credits = [
        Credit(user_id=owner.user_id, organization_id=owner.organization_id)
        for _ in range(count)
    ]
    session.add_all(credits)
    await session.flush()
    log.info("credits.granted", count=count, **owner.describe())
    return credits


async def spend_credits(
    session: AsyncSession,
    owner: CreditOwner,
    count: int,
    *,
    purchase_type: PurchaseType,
    purchase_id: uuid.UUID,
) -> list[Credit]:
    """Mark `count` of owner's unspent credits as spent; 402 if there are not enough."""
    if count < 0:
        raise ValueError("count must be >= 0")
    if count == 0:
        return []

    result = await session.execute(
        select(Credit)
        .where(owner.clause(), Credit.spent == False)  # noqa: E712
        .order_by(Credit.created_at, Credit.id)
        .limit(count)
        .with_for_update()
    )
    credits = list(result.scalars().all())
    if len(credits) < count:
        raise HTTPException(status_code=402, detail="Not enough available credits")

    now = utcnow()
    for credit in credits:
        credit.spent = True
        credit.spent_at = now
        credit.purchase_type = purchase_type.value
        credit.purchase_id = purchase_id
        session.add(credit)
    await session.flush()

    log.info(
        "credits.spent",
        count=count,
        purchase_type=purchase_type.value,
        purchase_id=str(purchase_id),
        **owner.describe(),
    )
    return credits


async def choose_payer(
    session: AsyncSession,
    cost: int,
    *,
    user_id: uuid.UUID,
    organization_id: Optional[uuid.UUID] = None,
) -> CreditOwner:
    """Pick who pays `cost`: the organization when it can afford it, else the user.

    Raises 402 when neither can.
    """
    if organization_id is not None:
        org_owner = CreditOwner(organization_id=organization_id)
        if await count_unspent(session, org_owner) >= cost:
            return org_owner

    user_owner = CreditOwner(user_id=user_id)
    if await count_unspent(session, user_owner) >= cost:
        return user_owner

    raise HTTPException(status_code=402, detail="Not enough available credits")
