"""
Tests for sponsorship purchasing.

Covers:
- Purchase view states: no organizations, insufficient credits, subscribe
- Metal tier blocking and renewal
- Tag sponsorships: available / sponsored tags, conflicts
- Admin-only purchasing and credit spending
- The HTML partnership page
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlmodel import select

from app.core.database import async_session_factory
from app.models.base import utcnow
from app.models.credit import Credit
from app.models.organization import Organization, OrganizationMembership
from app.models.sponsorship import Sponsorship
from app.models.tag import Tag

from conftest import auth_headers, fetch, make_org, make_tag, make_user, unspent_credits


async def make_sponsorship(
    org: Organization,
    level: str,
    *,
    status: str = "live",
    tag: Optional[Tag] = None,
    expires_at: Optional[datetime] = None,
) -> Sponsorship:
    async with async_session_factory() as session:
        sponsorship = Sponsorship(
            organization_id=org.id,
            user_id=await _any_member_id(session, org),
            level=level,
            status=status,
            tag_id=tag.id if tag else None,
            expires_at=expires_at or utcnow() + timedelta(days=10),
        )
        session.add(sponsorship)
        await session.commit()
        return sponsorship


async def _any_member_id(session, org):
    result = await session.execute(
        select(OrganizationMembership.user_id).where(
            OrganizationMembership.organization_id == org.id
        )
    )
    return result.scalars().first()


# ---------------------------------------------------------------------------
# Purchase view
# ---------------------------------------------------------------------------


class TestPurchaseView:
    async def test_no_organizations(self, client):
        user = await make_user()

        resp = await client.get("/api/v1/partnerships/gold", headers=auth_headers(user))

        assert resp.status_code == 200
        data = resp.json()
        assert data["state"] == "no_organizations"
        assert data["organizations"] == []
        assert data["credits_needed"] == 6000

    async def test_member_only_counts_as_no_organizations(self, client):
        user = await make_user()
        await make_org(admin=await make_user(), members=(user,), credits=1000)

        resp = await client.get("/api/v1/partnerships/bronze", headers=auth_headers(user))

        assert resp.json()["state"] == "no_organizations"

    async def test_insufficient_credits(self, client):
        user = await make_user()
        org = await make_org(admin=user, credits=50)

        resp = await client.get("/api/v1/partnerships/bronze", headers=auth_headers(user))

        data = resp.json()
        assert data["state"] == "insufficient_credits"
        [option] = data["organizations"]
        assert option["organization_id"] == str(org.id)
        assert option["state"] == "insufficient_credits"
        assert option["available_credits"] == 50
        assert option["credits_needed"] == 100

    async def test_subscribe(self, client):
        user = await make_user()
        await make_org(admin=user, credits=100)

        resp = await client.get("/api/v1/partnerships/bronze", headers=auth_headers(user))

        data = resp.json()
        assert data["state"] == "subscribe"
        assert data["organizations"][0]["state"] == "subscribe"
        assert data["organizations"][0]["blocked"] is False

    async def test_states_are_per_organization(self, client):
        user = await make_user()
        await make_org(admin=user, credits=100)
        await make_org(admin=user, credits=10)

        resp = await client.get("/api/v1/partnerships/bronze", headers=auth_headers(user))

        data = resp.json()
        assert data["state"] == "subscribe"
        assert sorted(o["state"] for o in data["organizations"]) == [
            "insufficient_credits",
            "subscribe",
        ]

    async def test_shows_current_metal_sponsorship(self, client):
        user = await make_user()
        org = await make_org(admin=user, credits=500)
        await make_sponsorship(org, "silver", status="pending")

        resp = await client.get("/api/v1/partnerships/silver", headers=auth_headers(user))

        option = resp.json()["organizations"][0]
        assert option["current_sponsorship"]["level"] == "silver"
        assert option["current_sponsorship"]["status"] == "pending"
        assert option["blocked"] is False

    async def test_different_metal_level_blocks(self, client):
        user = await make_user()
        org = await make_org(admin=user, credits=6000)
        await make_sponsorship(org, "silver")

        resp = await client.get("/api/v1/partnerships/gold", headers=auth_headers(user))

        option = resp.json()["organizations"][0]
        assert option["blocked"] is True
        assert option["current_sponsorship"]["level"] == "silver"

    async def test_expired_sponsorship_does_not_block(self, client):
        user = await make_user()
        org = await make_org(admin=user, credits=6000)
        await make_sponsorship(org, "silver", expires_at=utcnow() - timedelta(days=1))

        resp = await client.get("/api/v1/partnerships/gold", headers=auth_headers(user))

        option = resp.json()["organizations"][0]
        assert option["blocked"] is False
        assert option["current_sponsorship"] is None

    async def test_tag_level_lists_tags(self, client):
        user = await make_user()
        org = await make_org(admin=user, credits=300)
        rival = await make_org(admin=await make_user())
        ruby = await make_tag("ruby")
        go = await make_tag("go")
        await make_tag("python")
        await make_tag("unsupported", supported=False)
        await make_sponsorship(org, "tag", tag=ruby)
        await make_sponsorship(rival, "tag", tag=go)

        resp = await client.get("/api/v1/partnerships/tag", headers=auth_headers(user))

        option = resp.json()["organizations"][0]
        assert option["available_tags"] == ["python"]
        assert option["sponsored_tags"] == ["ruby"]

    async def test_unknown_level(self, client):
        user = await make_user()
        resp = await client.get("/api/v1/partnerships/platinum", headers=auth_headers(user))
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Subscription
# ---------------------------------------------------------------------------


class TestCreateSponsorship:
    async def test_subscribe_spends_org_credits(self, client):
        user = await make_user()
        org = await make_org(admin=user, credits=150)

        resp = await client.post(
            "/api/v1/partnerships",
            json={"organization_id": str(org.id), "level": "bronze", "instructions": "Logo attached"},
            headers=auth_headers(user),
        )

        assert resp.status_code == 201
        data = resp.json()
        assert data["level"] == "bronze"
        assert data["status"] == "pending"
        assert data["instructions"] == "Logo attached"
        assert data["instructions_updated_at"] is not None
        expires_at = datetime.fromisoformat(data["expires_at"])
        assert abs(expires_at - (utcnow() + timedelta(days=30))) < timedelta(minutes=1)
        assert await unspent_credits(org=org) == 50

        async with async_session_factory() as session:
            result = await session.execute(select(Credit).where(Credit.spent == True))  # noqa: E712
            credits = result.scalars().all()
        assert {c.purchase_type for c in credits} == {"sponsorship"}

    async def test_member_cannot_subscribe(self, client):
        user = await make_user()
        org = await make_org(admin=await make_user(), members=(user,), credits=500)

        resp = await client.post(
            "/api/v1/partnerships",
            json={"organization_id": str(org.id), "level": "bronze"},
            headers=auth_headers(user),
        )

        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "NOT_AUTHORIZED"
        assert await unspent_credits(org=org) == 500

    async def test_user_credits_are_not_used(self, client):
        user = await make_user(credits=500)
        org = await make_org(admin=user, credits=10)

        resp = await client.post(
            "/api/v1/partnerships",
            json={"organization_id": str(org.id), "level": "bronze"},
            headers=auth_headers(user),
        )

        assert resp.status_code == 402
        assert await unspent_credits(user=user) == 500

    async def test_different_metal_level_conflicts(self, client):
        user = await make_user()
        org = await make_org(admin=user, credits=6000)
        await make_sponsorship(org, "bronze")

        resp = await client.post(
            "/api/v1/partnerships",
            json={"organization_id": str(org.id), "level": "gold"},
            headers=auth_headers(user),
        )

        assert resp.status_code == 409
        assert "contact support" in resp.json()["detail"]
        assert await unspent_credits(org=org) == 6000

    async def test_same_metal_level_renews(self, client):
        user = await make_user()
        org = await make_org(admin=user, credits=100)
        expires = utcnow() + timedelta(days=10)
        existing = await make_sponsorship(org, "bronze", status="live", expires_at=expires)

        resp = await client.post(
            "/api/v1/partnerships",
            json={"organization_id": str(org.id), "level": "bronze"},
            headers=auth_headers(user),
        )

        assert resp.status_code == 201
        assert resp.json()["id"] == str(existing.id)
        assert resp.json()["status"] == "live"
        stored = await fetch(Sponsorship, existing.id)
        assert stored.expires_at == expires + timedelta(days=30)

    async def test_tag_sponsorship(self, client):
        user = await make_user()
        org = await make_org(admin=user, credits=300)
        tag = await make_tag("rust")

        resp = await client.post(
            "/api/v1/partnerships",
            json={"organization_id": str(org.id), "level": "tag", "tag_name": "Rust"},
            headers=auth_headers(user),
        )

        assert resp.status_code == 201
        assert resp.json()["tag_name"] == "rust"
        stored = await fetch(Sponsorship, uuid.UUID(resp.json()["id"]))
        assert stored.tag_id == tag.id

    async def test_tag_taken_by_other_org(self, client):
        user = await make_user()
        org = await make_org(admin=user, credits=300)
        rival = await make_org(admin=await make_user())
        tag = await make_tag("rust")
        await make_sponsorship(rival, "tag", tag=tag)

        resp = await client.post(
            "/api/v1/partnerships",
            json={"organization_id": str(org.id), "level": "tag", "tag_name": "rust"},
            headers=auth_headers(user),
        )

        assert resp.status_code == 409

    async def test_unsupported_tag(self, client):
        user = await make_user()
        org = await make_org(admin=user, credits=300)
        await make_tag("misc", supported=False)

        resp = await client.post(
            "/api/v1/partnerships",
            json={"organization_id": str(org.id), "level": "tag", "tag_name": "misc"},
            headers=auth_headers(user),
        )

        assert resp.status_code == 404

    async def test_tag_level_requires_tag_name(self, client):
        user = await make_user()
        org = await make_org(admin=user, credits=300)

        resp = await client.post(
            "/api/v1/partnerships",
            json={"organization_id": str(org.id), "level": "tag"},
            headers=auth_headers(user),
        )

        assert resp.status_code == 422

    async def test_unknown_level(self, client):
        user = await make_user()
        org = await make_org(admin=user, credits=300)

        resp = await client.post(
            "/api/v1/partnerships",
            json={"organization_id": str(org.id), "level": "platinum"},
            headers=auth_headers(user),
        )

        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------


class TestPartnershipPage:
    async def test_prompts_to_create_organization(self, client):
        user = await make_user()

        resp = await client.get("/partnerships/gold", headers=auth_headers(user))

        assert resp.status_code == 200
        assert "create-organization" in resp.text

    async def test_purchase_credits_prompt(self, client):
        user = await make_user()
        await make_org(admin=user, credits=10)

        resp = await client.get("/partnerships/bronze", headers=auth_headers(user))

        assert "purchase-credits" in resp.text
        assert "needs 100 credits" in resp.text

    async def test_subscribe_form(self, client):
        user = await make_user()
        await make_org(admin=user, credits=100)

        resp = await client.get("/partnerships/bronze", headers=auth_headers(user))

        assert 'data-action="/api/v1/partnerships"' in resp.text
        assert "Subscribe for 100 credits" in resp.text

    async def test_blocked_shows_contact_support(self, client):
        user = await make_user()
        org = await make_org(admin=user, credits=6000)
        await make_sponsorship(org, "silver")

        resp = await client.get("/partnerships/gold", headers=auth_headers(user))

        assert "contact-support" in resp.text
        assert "Subscribe for" not in resp.text

    async def test_unknown_level_is_404(self, client):
        user = await make_user()
        resp = await client.get("/partnerships/platinum", headers=auth_headers(user))
        assert resp.status_code == 404
