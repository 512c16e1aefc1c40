"""Authentication and session routes."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import (
    get_app_settings,
    get_current_token,
    get_current_user,
    require_confirmation,
)
from app.config import AppSettings
from app.core.security import (
    RECOVERY_PURPOSE,
    hash_password,
    recovery_token_lifetime,
    token_lifetime,
    verify_password,
)
from app.db.session import get_db
from app.models import AuthToken, User
from app.schemas import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    PasswordResetRequest,
    PasswordUpdateRequest,
    RegisterRequest,
    UserOut,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_RESET_MESSAGE = "Si el correo existe, recibirás un enlace para restablecer tu contraseña."


def _to_user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        active_account=user.active_account,
        created_at=user.created_at or datetime.now(timezone.utc),
    )


async def _issue_session(session: AsyncSession, user: User) -> AuthResponse:
    token = AuthToken.for_user(user.id, token_lifetime())
    session.add(token)
    await session.commit()
    await session.refresh(user)
    return AuthResponse(access_token=token.token, user=_to_user_out(user))


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_db),
    settings: AppSettings = Depends(get_app_settings),
) -> AuthResponse:
    normalized_email = payload.email.strip().lower()
    existing = await session.execute(select(User).where(User.email == normalized_email))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered")

    user = User(
        email=normalized_email,
        password_hash=hash_password(payload.password),
        active_account=settings.default_account_label,
    )
    session.add(user)
    await session.flush()
    logger.info("Registered user %s", user.id)
    return await _issue_session(session, user)


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest, session: AsyncSession = Depends(get_db)) -> AuthResponse:
    normalized_email = payload.email.strip().lower()
    query = await session.execute(select(User).where(User.email == normalized_email))
    user = query.scalar_one_or_none()
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    return await _issue_session(session, user)


@router.post("/logout", response_model=MessageResponse, dependencies=[Depends(require_confirmation)])
async def logout(
    auth_token: AuthToken = Depends(get_current_token),
    session: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await session.execute(update(AuthToken).where(AuthToken.id == auth_token.id).values(is_active=False))
    await session.commit()
    return MessageResponse(message="Sesión cerrada.")


@router.get("/session", response_model=UserOut)
async def current_session(user: User = Depends(get_current_user)) -> UserOut:
    return _to_user_out(user)


@router.post("/password/reset", response_model=MessageResponse, status_code=status.HTTP_202_ACCEPTED)
async def request_password_reset(
    payload: PasswordResetRequest,
    session: AsyncSession = Depends(get_db),
    settings: AppSettings = Depends(get_app_settings),
) -> MessageResponse:
    """Issue a recovery token. Delivery is out of scope, so the link is logged."""

    normalized_email = payload.email.strip().lower()
    query = await session.execute(select(User).where(User.email == normalized_email))
    user = query.scalar_one_or_none()
    if user is not None:
        token = AuthToken.for_user(user.id, recovery_token_lifetime(), purpose=RECOVERY_PURPOSE)
        session.add(token)
        await session.commit()
        link = f"{settings.recovery_redirect_url.rstrip('/')}/#type=recovery&access_token={token.token}"
        logger.info("Password recovery link for %s: %s", normalized_email, link)
    return MessageResponse(message=_RESET_MESSAGE)


@router.post("/password/update", response_model=MessageResponse)
async def update_password(payload: PasswordUpdateRequest, session: AsyncSession = Depends(get_db)) -> MessageResponse:
    now = datetime.now(timezone.utc)
    result = await session.execute(
        select(AuthToken).where(
            AuthToken.token == payload.access_token,
            AuthToken.purpose == RECOVERY_PURPOSE,
            AuthToken.is_active.is_(True),
            AuthToken.expires_at > now,
        )
    )
    recovery = result.scalar_one_or_none()
    if recovery is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired recovery token")

    user = await session.get(User, recovery.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    user.password_hash = hash_password(payload.password)
    # Existing sessions and the used recovery token stop working
    await session.execute(update(AuthToken).where(AuthToken.user_id == user.id).values(is_active=False))
    await session.commit()
    logger.info("Password updated for user %s", user.id)
    return MessageResponse(message="Contraseña actualizada correctamente.")


__all__ = ["router"]
