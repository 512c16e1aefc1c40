"""Configuration package for the IBKR Hub service."""

from .settings import DEFAULT_DEMO_CASH, DEFAULT_STORAGE_BUCKET, AppSettings, get_settings

__all__ = ["AppSettings", "DEFAULT_DEMO_CASH", "DEFAULT_STORAGE_BUCKET", "get_settings"]
