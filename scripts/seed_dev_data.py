#!/usr/bin/env python3
"""Seed a development database with categories, tags, users, an organization and credits.

Usage:
    PYTHONPATH=packages/server:packages/shared python scripts/seed_dev_data.py

Uses CL_DATABASE_URL (or the default from app.core.config). Tables are
created if missing. Safe to re-run: existing rows are left alone.
"""

import asyncio

from sqlmodel import select

from app.core.auth import hash_password
from app.core.database import create_tables, engine, get_session_context
from app.models.listing import ListingCategory
from app.models.organization import Organization, OrganizationMembership
from app.models.tag import Tag
from app.models.user import User
from app.services.credits import CreditOwner, count_unspent, grant_credits

CATEGORIES = [
    ("Conference CFP", "cfp", 1, "Calls for papers and speakers."),
    ("Education/Courses", "education", 4, "Workshops, courses and bootcamps."),
    ("Jobs", "jobs", 25, "Hiring? Link to the application."),
    ("Events", "events", 1, "Meetups and conferences."),
    ("Products/Tools", "products", 5, "Launches and tools for developers."),
    ("Misc", "misc", 1, "Anything else."),
]

SUPPORTED_TAGS = ["python", "ruby", "javascript", "go", "rust", "devops"]

USERS = [
    ("alice@acme.dev", "alice", "admin"),
    ("bob@acme.dev", "bob", "member"),
]

ORG = ("Acme Robotics", "acme-robotics")
DEV_PASSWORD = "password123"


async def _get_or_add(session, model, lookup, **fields):
    column, value = lookup
    result = await session.execute(select(model).where(column == value))
    row = result.scalar_one_or_none()
    if row is None:
        row = model(**fields)
        session.add(row)
        await session.flush()
    return row


async def _top_up(session, owner: CreditOwner, target: int) -> None:
    missing = target - await count_unspent(session, owner)
    if missing > 0:
        await grant_credits(session, owner, missing)


async def seed():
    await create_tables()

    async with get_session_context() as session:
        for name, slug, cost, rules in CATEGORIES:
            await _get_or_add(
                session, ListingCategory, (ListingCategory.slug, slug),
                name=name, slug=slug, cost=cost, rules=rules,
            )

        for name in SUPPORTED_TAGS:
            await _get_or_add(session, Tag, (Tag.name, name), name=name, supported=True)

        org = await _get_or_add(
            session, Organization, (Organization.slug, ORG[1]), name=ORG[0], slug=ORG[1]
        )
        await _top_up(session, CreditOwner(organization_id=org.id), 1000)

        for email, username, role in USERS:
            user = await _get_or_add(
                session, User, (User.email, email),
                email=email, username=username, password_hash=hash_password(DEV_PASSWORD),
            )
            if await session.get(OrganizationMembership, (user.id, org.id)) is None:
                session.add(
                    OrganizationMembership(user_id=user.id, organization_id=org.id, type_of_user=role)
                )
            await _top_up(session, CreditOwner(user_id=user.id), 20)

    await engine.dispose()
    print(
        f"✅ Seeded {len(CATEGORIES)} categories, {len(SUPPORTED_TAGS)} tags, "
        f"org '{ORG[1]}' and {len(USERS)} users (password: {DEV_PASSWORD})."
    )


if __name__ == "__main__":
    asyncio.run(seed())
