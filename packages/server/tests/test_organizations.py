"""
Tests for organization endpoints and membership rules.

Covers:
- Slug validation on OrgCreateRequest
- Create (creator becomes admin), list with roles
- Adding members: admin only, unknown user, duplicates
"""

from __future__ import annotations

import uuid

import pytest
from pydantic import ValidationError

from app.core.database import async_session_factory
from app.services import organizations as org_service
from classifieds_shared.schemas.organizations import OrgCreateRequest

from conftest import auth_headers, make_org, make_user


class TestOrgCreateRequestValidation:
    def test_valid_slug(self):
        req = OrgCreateRequest(name="Test Org", slug="test-org")
        assert req.slug == "test-org"

    def test_invalid_slug_uppercase(self):
        with pytest.raises(ValidationError):
            OrgCreateRequest(name="Test", slug="Test-Org")

    def test_invalid_slug_start_with_hyphen(self):
        with pytest.raises(ValidationError):
            OrgCreateRequest(name="Test", slug="-test")

    def test_slug_too_short(self):
        with pytest.raises(ValidationError):
            OrgCreateRequest(name="Test", slug="a")


class TestOrgEndpoints:
    async def test_create_makes_creator_admin(self, client):
        user = await make_user()

        resp = await client.post(
            "/api/v1/orgs", json={"name": "Acme", "slug": "acme"}, headers=auth_headers(user)
        )

        assert resp.status_code == 201
        assert resp.json()["slug"] == "acme"
        async with async_session_factory() as session:
            assert await org_service.is_admin(session, user.id, uuid.UUID(resp.json()["id"]))

    async def test_duplicate_slug(self, client):
        user = await make_user()
        headers = auth_headers(user)
        await client.post("/api/v1/orgs", json={"name": "Acme", "slug": "acme"}, headers=headers)

        resp = await client.post(
            "/api/v1/orgs", json={"name": "Acme 2", "slug": "acme"}, headers=headers
        )

        assert resp.status_code == 409

    async def test_list_shows_roles(self, client):
        user = await make_user()
        admin_of = await make_org(admin=user)
        member_of = await make_org(admin=await make_user(), members=(user,))
        await make_org(admin=await make_user())

        resp = await client.get("/api/v1/orgs", headers=auth_headers(user))

        roles = {item["id"]: item["role"] for item in resp.json()["data"]}
        assert roles == {str(admin_of.id): "admin", str(member_of.id): "member"}

    async def test_admin_adds_member(self, client):
        admin = await make_user()
        newcomer = await make_user()
        org = await make_org(admin=admin)

        resp = await client.post(
            f"/api/v1/orgs/{org.slug}/members",
            json={"email": newcomer.email},
            headers=auth_headers(admin),
        )

        assert resp.status_code == 201
        assert resp.json()["role"] == "member"
        async with async_session_factory() as session:
            assert await org_service.is_member(session, newcomer.id, org.id)
            assert not await org_service.is_admin(session, newcomer.id, org.id)

    async def test_member_cannot_add_members(self, client):
        member = await make_user()
        org = await make_org(admin=await make_user(), members=(member,))
        newcomer = await make_user()

        resp = await client.post(
            f"/api/v1/orgs/{org.slug}/members",
            json={"email": newcomer.email},
            headers=auth_headers(member),
        )

        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "NOT_AUTHORIZED"

    async def test_unknown_user(self, client):
        admin = await make_user()
        org = await make_org(admin=admin)

        resp = await client.post(
            f"/api/v1/orgs/{org.slug}/members",
            json={"email": "ghost@example.com"},
            headers=auth_headers(admin),
        )

        assert resp.status_code == 404

    async def test_already_member(self, client):
        admin = await make_user()
        member = await make_user()
        org = await make_org(admin=admin, members=(member,))

        resp = await client.post(
            f"/api/v1/orgs/{org.slug}/members",
            json={"email": member.email, "role": "admin"},
            headers=auth_headers(admin),
        )

        assert resp.status_code == 409

    async def test_unknown_org(self, client):
        user = await make_user()
        resp = await client.post(
            "/api/v1/orgs/nope/members",
            json={"email": user.email},
            headers=auth_headers(user),
        )
        assert resp.status_code == 404
