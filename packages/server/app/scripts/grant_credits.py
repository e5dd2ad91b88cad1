"""
Script to grant credits to a user (by email) or an organization (by slug).
"""

import asyncio
import argparse
import os
import sys

from sqlmodel import select

# Add the project root to sys.path to allow importing from 'app'
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from app.core.database import get_session_context
from app.models.organization import Organization
from app.models.user import User
from app.services.credits import CreditOwner, count_unspent, grant_credits


async def grant(count: int, email: str | None, org_slug: str | None) -> None:
    async with get_session_context() as session:
        if email:
            result = await session.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()
            if not user:
                sys.exit(f"No user with email {email}")
            owner = CreditOwner(user_id=user.id)
            label = email
        else:
            result = await session.execute(select(Organization).where(Organization.slug == org_slug))
            org = result.scalar_one_or_none()
            if not org:
                sys.exit(f"No organization with slug {org_slug}")
            owner = CreditOwner(organization_id=org.id)
            label = org_slug

        await grant_credits(session, owner, count)
        print(f"Granted {count} credits to {label}; {await count_unspent(session, owner)} unspent.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Grant credits to a user or an organization.")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--email", help="Email address of the user")
    target.add_argument("--org", help="Slug of the organization")
    parser.add_argument("--count", type=int, required=True, help="Number of credits to grant")

    args = parser.parse_args()

    asyncio.run(grant(args.count, args.email, args.org))
