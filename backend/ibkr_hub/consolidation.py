"""Trade consolidation and portfolio statistics.

Everything here is recomputed from the full transaction set on every call;
no intermediate result is cached between invocations.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from .models import (
    ConsolidatedTrade,
    Dashboard,
    EquityPoint,
    PortfolioStats,
    StrategySummary,
    Transaction,
)

CLOSED_EPSILON = 1e-4
UNASSIGNED_STRATEGY = "Sin Estrategia"
NO_STRATEGY = StrategySummary(name="N/A", pnl=0.0, count=0)
INITIAL_BALANCE_LABEL = "Balance Inicial"
EMPTY_CURVE_LABEL = "Inicio"

_DATE_FORMATS = (
    "%Y%m%d",
    "%Y-%m-%d, %H:%M:%S",
    "%Y%m%d;%H%M%S",
    "%m/%d/%Y",
    "%d/%m/%Y",
)


def _date_key(value: str) -> tuple[int, datetime | str]:
    """Sort key for broker date strings; unparseable values sort last, lexically."""

    text = (value or "").strip()
    try:
        return (0, datetime.fromisoformat(text).replace(tzinfo=None))
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return (0, datetime.strptime(text, fmt))
        except ValueError:
            continue
    return (1, text)


def _group_by_symbol(transactions: Iterable[Transaction]) -> Dict[str, List[Transaction]]:
    grouped: Dict[str, List[Transaction]] = {}
    for tx in transactions:
        grouped.setdefault(tx.symbol, []).append(tx)
    return grouped


def _weighted_price(executions: Sequence[Transaction]) -> float:
    quantity = sum(tx.quantity for tx in executions)
    if not executions or quantity == 0:
        return 0.0
    return sum(tx.price * tx.quantity for tx in executions) / quantity


def consolidate_symbol(symbol: str, transactions: Sequence[Transaction]) -> ConsolidatedTrade:
    """Aggregate every execution of ``symbol`` into one trade."""

    executions = sorted(transactions, key=lambda tx: _date_key(tx.date))
    total_quantity = sum(tx.quantity for tx in executions)
    total_pnl = sum(tx.net_amount for tx in executions)
    entries = [tx for tx in executions if tx.quantity > 0]
    exits = [tx for tx in executions if tx.quantity < 0]
    evidence = next((tx for tx in executions if tx.analysis_image_url or tx.analysis_id), None)

    return ConsolidatedTrade(
        symbol=symbol,
        strategy=executions[0].strategy or UNASSIGNED_STRATEGY,
        total_quantity=total_quantity,
        avg_entry_price=_weighted_price(entries),
        avg_exit_price=abs(_weighted_price(exits)),
        total_pnl=total_pnl,
        status="Closed" if abs(total_quantity) < CLOSED_EPSILON else "Open",
        last_date=executions[-1].date,
        executions=tuple(executions),
        analysis_image_url=evidence.analysis_image_url if evidence else None,
        analysis_id=evidence.analysis_id if evidence else None,
    )


def consolidate_trades(transactions: Iterable[Transaction]) -> List[ConsolidatedTrade]:
    """Group transactions by exact symbol and aggregate each group."""

    return [consolidate_symbol(symbol, txs) for symbol, txs in _group_by_symbol(transactions).items()]


def sort_by_last_date(trades: Iterable[ConsolidatedTrade], *, descending: bool = False) -> List[ConsolidatedTrade]:
    return sorted(trades, key=lambda trade: _date_key(trade.last_date), reverse=descending)


def strategy_leaderboard(trades: Iterable[ConsolidatedTrade]) -> List[StrategySummary]:
    totals: Dict[str, list[float]] = {}
    for trade in trades:
        entry = totals.setdefault(trade.strategy, [0.0, 0])
        entry[0] += trade.total_pnl
        entry[1] += 1
    board = [StrategySummary(name=name, pnl=pnl, count=int(count)) for name, (pnl, count) in totals.items()]
    return sorted(board, key=lambda item: item.pnl, reverse=True)


def compute_roi(total_pnl: float, starting_cash: float) -> float:
    if starting_cash > 0:
        return (total_pnl / starting_cash) * 100
    return 0.0


def build_equity_curve(trades: Iterable[ConsolidatedTrade], starting_cash: float) -> List[EquityPoint]:
    """Running balance per trade, ordered by each trade's last execution date."""

    balance = starting_cash
    curve: List[EquityPoint] = []
    for trade in sort_by_last_date(trades):
        balance += trade.total_pnl
        curve.append(EquityPoint(date=trade.last_date, balance=round(balance, 2)))

    if curve:
        curve.insert(0, EquityPoint(date=INITIAL_BALANCE_LABEL, balance=starting_cash))
    elif starting_cash > 0:
        curve.append(EquityPoint(date=EMPTY_CURVE_LABEL, balance=starting_cash))
    return curve


def compute_stats(trades: Sequence[ConsolidatedTrade], starting_cash: float) -> PortfolioStats:
    total_pnl = sum(trade.total_pnl for trade in trades)
    leaderboard = strategy_leaderboard(trades)
    closed = [trade for trade in trades if trade.status == "Closed"]
    wins = [trade.total_pnl for trade in closed if trade.total_pnl > 0]
    losses = [trade.total_pnl for trade in closed if trade.total_pnl < 0]

    return PortfolioStats(
        total_pnl=total_pnl,
        roi=compute_roi(total_pnl, starting_cash),
        current_balance=starting_cash + total_pnl,
        open_positions=sum(1 for trade in trades if trade.status == "Open"),
        closed_trades=len(closed),
        best_strategy=leaderboard[0] if leaderboard else NO_STRATEGY,
        strategy_list=tuple(leaderboard),
        win_rate=(len(wins) / len(closed) * 100) if closed else 0.0,
        avg_win=(sum(wins) / len(wins)) if wins else 0.0,
        avg_loss=(sum(losses) / len(losses)) if losses else 0.0,
    )


def build_dashboard(transactions: Sequence[Transaction], starting_cash: float) -> Optional[Dashboard]:
    """Derive every dashboard figure for one account partition.

    Returns ``None`` for an unconfigured account: no transactions and no
    starting cash.
    """

    if not transactions and starting_cash == 0:
        return None

    trades = consolidate_trades(transactions)
    return Dashboard(
        starting_cash=starting_cash,
        stats=compute_stats(trades, starting_cash),
        equity_curve=tuple(build_equity_curve(trades, starting_cash)),
        trades=tuple(trades),
    )


__all__ = [
    "CLOSED_EPSILON",
    "NO_STRATEGY",
    "build_dashboard",
    "build_equity_curve",
    "compute_roi",
    "compute_stats",
    "consolidate_symbol",
    "consolidate_trades",
    "sort_by_last_date",
    "strategy_leaderboard",
]
