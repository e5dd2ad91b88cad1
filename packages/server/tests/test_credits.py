"""
Tests for the credit ledger.

Covers:
- CreditOwner invariants
- grant / spend / count, including all-or-nothing spending
- Payer selection (organization first, then user)
- GET /api/v1/credits
"""

from __future__ import annotations

import uuid

import pytest
from fastapi import HTTPException

from app.core.database import async_session_factory
from app.services.credits import (
    CreditOwner,
    choose_payer,
    count_credits,
    count_unspent,
    grant_credits,
    spend_credits,
)
from classifieds_shared.schemas.common import PurchaseType

from conftest import auth_headers, make_org, make_user


class TestCreditOwner:
    def test_requires_exactly_one_owner(self):
        with pytest.raises(ValueError):
            CreditOwner()
        with pytest.raises(ValueError):
            CreditOwner(user_id=uuid.uuid4(), organization_id=uuid.uuid4())

    def test_describe(self):
        uid = uuid.uuid4()
        assert CreditOwner(user_id=uid).describe() == {"user_id": str(uid)}


class TestLedger:
    async def test_grant_and_spend(self):
        user = await make_user()
        owner = CreditOwner(user_id=user.id)
        async with async_session_factory() as session:
            await grant_credits(session, owner, 5)
            spent = await spend_credits(
                session, owner, 3, purchase_type=PurchaseType.LISTING, purchase_id=uuid.uuid4()
            )
            assert len(spent) == 3
            assert all(c.spent_at is not None for c in spent)
            assert await count_unspent(session, owner) == 2
            assert await count_credits(session, owner, spent=True) == 3

    async def test_spend_is_all_or_nothing(self):
        user = await make_user(credits=2)
        owner = CreditOwner(user_id=user.id)
        async with async_session_factory() as session:
            with pytest.raises(HTTPException) as exc_info:
                await spend_credits(
                    session, owner, 3, purchase_type=PurchaseType.LISTING, purchase_id=uuid.uuid4()
                )
            assert exc_info.value.status_code == 402
            assert await count_unspent(session, owner) == 2

    async def test_spend_zero_is_noop(self):
        user = await make_user()
        async with async_session_factory() as session:
            assert await spend_credits(
                session,
                CreditOwner(user_id=user.id),
                0,
                purchase_type=PurchaseType.LISTING,
                purchase_id=uuid.uuid4(),
            ) == []

    async def test_grant_rejects_non_positive(self):
        user = await make_user()
        async with async_session_factory() as session:
            with pytest.raises(ValueError):
                await grant_credits(session, CreditOwner(user_id=user.id), 0)

    async def test_balances_are_per_owner(self):
        user = await make_user(credits=3)
        org = await make_org(admin=user, credits=7)
        async with async_session_factory() as session:
            assert await count_unspent(session, CreditOwner(user_id=user.id)) == 3
            assert await count_unspent(session, CreditOwner(organization_id=org.id)) == 7


class TestChoosePayer:
    async def test_org_pays_when_it_can(self):
        user = await make_user(credits=5)
        org = await make_org(members=(user,), credits=5)
        async with async_session_factory() as session:
            payer = await choose_payer(session, 5, user_id=user.id, organization_id=org.id)
        assert payer == CreditOwner(organization_id=org.id)

    async def test_falls_back_to_user(self):
        user = await make_user(credits=5)
        org = await make_org(members=(user,), credits=4)
        async with async_session_factory() as session:
            payer = await choose_payer(session, 5, user_id=user.id, organization_id=org.id)
        assert payer == CreditOwner(user_id=user.id)

    async def test_nobody_can_pay(self):
        user = await make_user(credits=1)
        async with async_session_factory() as session:
            with pytest.raises(HTTPException) as exc_info:
                await choose_payer(session, 2, user_id=user.id)
        assert exc_info.value.status_code == 402


class TestCreditsEndpoint:
    async def test_summary(self, client):
        user = await make_user(credits=4)
        org = await make_org(admin=user, credits=10)
        await make_org(admin=await make_user(), credits=99)

        resp = await client.get("/api/v1/credits", headers=auth_headers(user))

        assert resp.status_code == 200
        data = resp.json()
        assert data["user"] == {"unspent": 4, "spent": 0}
        [org_balance] = data["organizations"]
        assert org_balance["organization_id"] == str(org.id)
        assert org_balance["unspent"] == 10
