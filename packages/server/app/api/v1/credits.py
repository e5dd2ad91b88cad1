"""Credit balance endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.database import get_session
from app.models.user import User
from app.services.credits import credit_summary
from classifieds_shared.schemas.credits import CreditSummary

router = APIRouter()


@router.get("", response_model=CreditSummary)
async def get_credits(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Unspent and spent credits for the user and each of their organizations."""
    return await credit_summary(session, user)
