"""
Shared fixtures: in-memory SQLite, an HTTPS test client and record factories.

The environment must be configured before anything under app/ is imported,
since settings and the engine are built at import time.
"""

from __future__ import annotations

import os

os.environ.setdefault("CL_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("CL_RATE_LIMIT_BACKEND", "memory")
os.environ.setdefault("CL_LOG_FORMAT", "text")
os.environ.setdefault("CL_SECRET_KEY", "test-secret-key-with-at-least-32-bytes")

import uuid
from datetime import datetime
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlmodel import SQLModel

from app.core.auth import create_jwt
from app.core.database import async_session_factory, create_tables, engine
from app.core.rate_limit import _memory_store
from app.main import app
from app.models.listing import ClassifiedListing, ListingCategory
from app.models.organization import Organization, OrganizationMembership
from app.models.tag import Tag
from app.models.user import User
from app.services.credits import CreditOwner, count_unspent, grant_credits


@pytest.fixture(autouse=True)
async def database():
    await create_tables(engine)
    _memory_store.clear()
    yield
    app.dependency_overrides.clear()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="https://test") as ac:
        yield ac


def auth_headers(user: User) -> dict[str, str]:
    token, _jti = create_jwt(user.id)
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Factories: each one commits in its own short-lived session
# ---------------------------------------------------------------------------


async def make_user(*, credits: int = 0, email: Optional[str] = None) -> User:
    async with async_session_factory() as session:
        user = User(
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            username=f"user{uuid.uuid4().hex[:6]}",
        )
        session.add(user)
        await session.flush()
        if credits:
            await grant_credits(session, CreditOwner(user_id=user.id), credits)
        await session.commit()
        return user


async def make_org(
    *,
    admin: Optional[User] = None,
    members: tuple[User, ...] = (),
    credits: int = 0,
) -> Organization:
    async with async_session_factory() as session:
        suffix = uuid.uuid4().hex[:8]
        org = Organization(name=f"Org {suffix}", slug=f"org-{suffix}")
        session.add(org)
        await session.flush()
        if admin is not None:
            session.add(
                OrganizationMembership(user_id=admin.id, organization_id=org.id, type_of_user="admin")
            )
        for member in members:
            session.add(
                OrganizationMembership(user_id=member.id, organization_id=org.id, type_of_user="member")
            )
        if credits:
            await grant_credits(session, CreditOwner(organization_id=org.id), credits)
        await session.commit()
        return org


async def make_category(*, slug: str = "cfp", cost: int = 1) -> ListingCategory:
    async with async_session_factory() as session:
        category = ListingCategory(name=slug.upper(), slug=slug, cost=cost)
        session.add(category)
        await session.commit()
        return category


async def make_tag(name: str, *, supported: bool = True) -> Tag:
    async with async_session_factory() as session:
        tag = Tag(name=name, supported=supported)
        session.add(tag)
        await session.commit()
        return tag


async def make_listing(
    user: User,
    category: ListingCategory,
    *,
    bumped_at: Optional[datetime] = None,
    organization: Optional[Organization] = None,
    **fields,
) -> ClassifiedListing:
    """Insert a listing directly, without paying for it."""
    async with async_session_factory() as session:
        listing = ClassifiedListing(
            user_id=user.id,
            category_id=category.id,
            organization_id=organization.id if organization else None,
            title=fields.pop("title", "Call for speakers"),
            body_markdown=fields.pop("body_markdown", "Come talk"),
            processed_html="<p>Come talk</p>",
            **fields,
        )
        if bumped_at is not None:
            listing.bumped_at = bumped_at
            listing.originally_published_at = bumped_at
        session.add(listing)
        await session.commit()
        return listing


async def fetch(model, pk):
    async with async_session_factory() as session:
        return await session.get(model, pk)


async def unspent_credits(*, user: Optional[User] = None, org: Optional[Organization] = None) -> int:
    owner = CreditOwner(user_id=user.id) if user else CreditOwner(organization_id=org.id)
    async with async_session_factory() as session:
        return await count_unspent(session, owner)
