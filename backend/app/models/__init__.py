"""Database model exports."""

from .auth import AuthToken, User
from .journal import AccountBalance, ChartAnalysis, DailyCalendar, StrategyCard, Transaction

__all__ = [
    "User",
    "AuthToken",
    "Transaction",
    "AccountBalance",
    "ChartAnalysis",
    "StrategyCard",
    "DailyCalendar",
]
