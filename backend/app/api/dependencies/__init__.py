"""FastAPI dependencies."""

from .auth import get_current_token, get_current_user
from .context import (
    AccountContext,
    get_account_context,
    get_app_settings,
    get_llm,
    get_storage,
    require_confirmation,
)

__all__ = [
    "AccountContext",
    "get_account_context",
    "get_app_settings",
    "get_current_token",
    "get_current_user",
    "get_llm",
    "get_storage",
    "require_confirmation",
]
