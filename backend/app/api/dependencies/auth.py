"""Authentication helpers for API routes."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import SESSION_PURPOSE
from app.db.session import get_db
from app.models import AuthToken, User


def bearer_token(authorization: str | None = Header(default=None)) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    return authorization.split(" ", 1)[1].strip()


async def get_current_token(
    token_value: str = Depends(bearer_token),
    session: AsyncSession = Depends(get_db),
) -> AuthToken:
    now = datetime.now(timezone.utc)
    stmt: Select[AuthToken] = select(AuthToken).where(
        AuthToken.token == token_value,
        AuthToken.purpose == SESSION_PURPOSE,
        AuthToken.is_active.is_(True),
        AuthToken.expires_at > now,
    )
    result = await session.execute(stmt)
    auth_token = result.scalar_one_or_none()
    if auth_token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return auth_token


async def get_current_user(
    auth_token: AuthToken = Depends(get_current_token),
    session: AsyncSession = Depends(get_db),
) -> User:
    user = await session.get(User, auth_token.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


__all__ = ["bearer_token", "get_current_token", "get_current_user"]
