"""Decoders for the machine-readable trailer lines of chart audits.

A missing or malformed trailer is not an error: the decoders return ``None``
and callers simply omit the dependent panel.
"""
from __future__ import annotations

import re
from typing import Optional

from .models import Sentiment, TradePlan

_SENTIMENT_RE = re.compile(r"\[SENTIMENT\]\s*LONG:\s*(\d+)%,\s*SHORT:\s*(\d+)%", re.IGNORECASE)
_TRADE_PLAN_RE = re.compile(
    r"\[TRADE_PLAN\]\s*ENTRY:\s*([^,]+),\s*STOP:\s*([^,]+),\s*TARGET:\s*(.+)",
    re.IGNORECASE,
)
_SENTIMENT_LINE = re.compile(r"\[SENTIMENT\].*", re.IGNORECASE)
_TRADE_PLAN_LINE = re.compile(r"\[TRADE_PLAN\].*", re.IGNORECASE)


def parse_sentiment(text: str | None) -> Optional[Sentiment]:
    match = _SENTIMENT_RE.search(text or "")
    if not match:
        return None
    return Sentiment(long=int(match.group(1)), short=int(match.group(2)))


def parse_trade_plan(text: str | None) -> Optional[TradePlan]:
    match = _TRADE_PLAN_RE.search(text or "")
    if not match:
        return None
    entry, stop, target = (group.strip() for group in match.groups())
    return TradePlan(entry=entry, stop=stop, target=target)


def strip_trailers(text: str | None) -> str:
    """Remove the trailer lines so only the human-readable report remains."""

    cleaned = _SENTIMENT_LINE.sub("", text or "", count=1)
    cleaned = _TRADE_PLAN_LINE.sub("", cleaned, count=1)
    return cleaned.rstrip()


__all__ = ["parse_sentiment", "parse_trade_plan", "strip_trailers"]
