"""Persisted account partition selection."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_current_user
from app.db.session import get_db
from app.models import User
from app.schemas import AccountSelection

router = APIRouter()


@router.get("/account", response_model=AccountSelection)
async def get_active_account(user: User = Depends(get_current_user)) -> AccountSelection:
    return AccountSelection(account_label=user.active_account)


@router.put("/account", response_model=AccountSelection)
async def set_active_account(
    payload: AccountSelection,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> AccountSelection:
    user.active_account = payload.account_label
    await session.commit()
    return AccountSelection(account_label=user.active_account)


__all__ = ["router"]
