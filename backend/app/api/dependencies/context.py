"""Request context shared by the journal routes."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Query, Request, status

from app.api.dependencies.auth import get_current_user
from app.config import AppSettings
from app.models import User
from app.providers.llm import LLMClient
from app.services.storage import ObjectStorage
from ibkr_hub.models import ACCOUNT_LABELS


@dataclass(frozen=True)
class AccountContext:
    """Who is asking and which partition (demo or real) they are working in."""

    user_id: UUID
    account_label: str


def get_account_context(
    user: User = Depends(get_current_user),
    x_account_label: str | None = Header(default=None),
) -> AccountContext:
    label = (x_account_label or user.active_account or "demo").strip().lower()
    if label not in ACCOUNT_LABELS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown account label '{label}'. Use one of: {', '.join(ACCOUNT_LABELS)}",
        )
    return AccountContext(user_id=user.id, account_label=label)


def require_confirmation(confirm: bool = Query(default=False)) -> None:
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_428_PRECONDITION_REQUIRED,
            detail="Confirmation required: repeat the request with confirm=true",
        )


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage


def get_llm(request: Request) -> LLMClient:
    return request.app.state.llm


__all__ = [
    "AccountContext",
    "get_account_context",
    "get_app_settings",
    "get_llm",
    "get_storage",
    "require_confirmation",
]
