"""Core package for IBKR Hub imports and trade analytics."""

from .consolidation import build_dashboard, consolidate_trades
from .importer import ImportParseError, clean_number, parse_activity_export
from .models import ConsolidatedTrade, Dashboard, Transaction

__all__ = [
    "ConsolidatedTrade",
    "Dashboard",
    "ImportParseError",
    "Transaction",
    "build_dashboard",
    "clean_number",
    "consolidate_trades",
    "parse_activity_export",
]
