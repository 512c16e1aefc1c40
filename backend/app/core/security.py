"""Security helpers for hashing passwords and issuing tokens."""

from __future__ import annotations

from datetime import timedelta

from passlib.context import CryptContext

from app.config import get_settings

SESSION_PURPOSE = "session"
RECOVERY_PURPOSE = "recovery"

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    return _pwd_context.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return _pwd_context.verify(plain_password, password_hash)


def token_lifetime() -> timedelta:
    return timedelta(days=get_settings().token_lifetime_days)


def recovery_token_lifetime() -> timedelta:
    return timedelta(minutes=get_settings().recovery_token_minutes)


__all__ = [
    "RECOVERY_PURPOSE",
    "SESSION_PURPOSE",
    "hash_password",
    "recovery_token_lifetime",
    "token_lifetime",
    "verify_password",
]
