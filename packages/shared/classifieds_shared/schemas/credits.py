"""Credit balance schemas."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, Field


class CreditBalance(BaseModel):
    unspent: int
    spent: int


class OrgCreditBalance(CreditBalance):
    organization_id: uuid.UUID
    name: str
    slug: str


class CreditSummary(BaseModel):
    user: CreditBalance
    organizations: list[OrgCreditBalance] = Field(default_factory=list)
