"""Domain models used by the IBKR Hub import and analytics core."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

AccountLabel = Literal["demo", "real"]
ACCOUNT_LABELS: tuple[str, ...] = ("demo", "real")


@dataclass(frozen=True)
class Transaction:
    """A single brokerage execution line."""

    date: str
    symbol: str
    quantity: float
    price: float
    net_amount: float
    transaction_type: str = ""
    account: str = ""
    description: str = ""
    gross_amount: float = 0.0
    commission: float = 0.0
    strategy: str = ""
    account_label: str = "demo"
    header: str = "Data"
    id: Optional[int] = None
    analysis_id: Optional[int] = None
    analysis_image_url: Optional[str] = None


@dataclass(frozen=True)
class ConsolidatedTrade:
    """All executions of one symbol treated as a single position lifecycle."""

    symbol: str
    strategy: str
    total_quantity: float
    avg_entry_price: float
    avg_exit_price: float
    total_pnl: float
    status: Literal["Open", "Closed"]
    last_date: str
    executions: tuple[Transaction, ...]
    analysis_image_url: Optional[str] = None
    analysis_id: Optional[int] = None


@dataclass(frozen=True)
class StrategySummary:
    name: str
    pnl: float
    count: int


@dataclass(frozen=True)
class EquityPoint:
    date: str
    balance: float


@dataclass(frozen=True)
class PortfolioStats:
    """Portfolio-level figures derived from consolidated trades."""

    total_pnl: float
    roi: float
    current_balance: float
    open_positions: int
    closed_trades: int
    best_strategy: StrategySummary
    strategy_list: tuple[StrategySummary, ...]
    win_rate: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0


@dataclass(frozen=True)
class Dashboard:
    starting_cash: float
    stats: PortfolioStats
    equity_curve: tuple[EquityPoint, ...]
    trades: tuple[ConsolidatedTrade, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Sentiment:
    long: int
    short: int


@dataclass(frozen=True)
class TradePlan:
    entry: str
    stop: str
    target: str


@dataclass(frozen=True)
class StrategyReference:
    """A strategy card prepared for inclusion in an audit request.

    ``image`` holds base64 data (or a data URL); ``None`` means the image could
    not be fetched and only the text is sent.
    """

    title: str
    description: str
    image: Optional[str] = None
