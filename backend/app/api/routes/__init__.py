"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .analyses import analyses_router, calendars_router, insights_router, strategies_router
from .auth import router as auth_router
from .journal import analytics_router, balances_router, imports_router, transactions_router
from .session import router as session_router

api_router = APIRouter()
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(session_router, prefix="/session", tags=["session"])
api_router.include_router(balances_router, prefix="/balances", tags=["balances"])
api_router.include_router(transactions_router, prefix="/transactions", tags=["transactions"])
api_router.include_router(imports_router, prefix="/imports", tags=["imports"])
api_router.include_router(analytics_router, tags=["analytics"])
api_router.include_router(strategies_router, prefix="/strategies", tags=["strategies"])
api_router.include_router(analyses_router, prefix="/analyses", tags=["analyses"])
api_router.include_router(calendars_router, prefix="/calendars", tags=["calendars"])
api_router.include_router(insights_router, prefix="/insights", tags=["insights"])

__all__ = ["api_router"]
