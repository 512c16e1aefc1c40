"""Trade consolidation and dashboard statistics tests."""

from __future__ import annotations

import pytest

from ibkr_hub.consolidation import (
    NO_STRATEGY,
    build_dashboard,
    build_equity_curve,
    compute_roi,
    consolidate_trades,
    sort_by_last_date,
)
from ibkr_hub.models import Transaction


def tx(date, symbol, quantity, price, net, strategy="Breakout", **extra):
    return Transaction(date=date, symbol=symbol, quantity=quantity, price=price, net_amount=net, strategy=strategy, **extra)


def build_transactions():
    return [
        tx("2024-01-15", "AAPL", 10, 150.0, -1501.0),
        tx("2024-01-10", "AAPL", 10, 140.0, -1401.0, strategy=""),
        tx("2024-01-20", "AAPL", -20, 160.0, 3199.0),
        tx("2024-02-01", "MSFT", 5, 400.0, -2001.0, strategy="Swing"),
        tx("2024-01-05", "TSLA", 2, 200.0, -401.0, strategy="Swing"),
        tx("2024-01-25", "TSLA", -2, 180.0, 359.0, strategy="Swing"),
    ]


def by_symbol(trades):
    return {trade.symbol: trade for trade in trades}


def test_total_pnl_matches_sum_of_net_amounts():
    transactions = build_transactions()
    trades = consolidate_trades(transactions)

    assert sum(trade.total_pnl for trade in trades) == pytest.approx(sum(t.net_amount for t in transactions))


def test_position_aggregates():
    aapl = by_symbol(consolidate_trades(build_transactions()))["AAPL"]

    # Earliest execution decides the strategy, blank falls back
    assert aapl.strategy == "Sin Estrategia"
    assert aapl.avg_entry_price == pytest.approx(145.0)
    assert aapl.avg_exit_price == pytest.approx(160.0)
    assert aapl.total_quantity == 0
    assert aapl.status == "Closed"
    assert aapl.last_date == "2024-01-20"
    assert [e.date for e in aapl.executions] == ["2024-01-10", "2024-01-15", "2024-01-20"]


def test_status_uses_epsilon():
    trades = by_symbol(
        consolidate_trades(
            [
                tx("2024-01-01", "EPS", 1.0, 10.0, -10.0),
                tx("2024-01-02", "EPS", -0.99995, 11.0, 11.0),
                tx("2024-01-01", "OPEN", 1.0, 10.0, -10.0),
                tx("2024-01-02", "OPEN", -0.999, 11.0, 11.0),
            ]
        )
    )

    assert trades["EPS"].status == "Closed"
    assert trades["OPEN"].status == "Open"


def test_only_entries_has_zero_exit_price():
    msft = by_symbol(consolidate_trades(build_transactions()))["MSFT"]

    assert msft.avg_exit_price == 0
    assert msft.avg_entry_price == pytest.approx(400.0)
    assert msft.status == "Open"


def test_evidence_inherited_from_first_linked_execution():
    trades = consolidate_trades(
        [
            tx("2024-01-01", "AMD", 1, 100.0, -100.0),
            tx("2024-01-02", "AMD", -1, 110.0, 110.0, analysis_id=7, analysis_image_url="http://img/7.jpg"),
            tx("2024-01-03", "AMD", 1, 105.0, -105.0, analysis_image_url="http://img/late.jpg"),
        ]
    )

    assert trades[0].analysis_id == 7
    assert trades[0].analysis_image_url == "http://img/7.jpg"


@pytest.mark.parametrize(("pnl", "cash", "expected"), [(500.0, 10000.0, 5.0), (-250.0, 5000.0, -5.0), (123.0, 0.0, 0.0)])
def test_roi(pnl, cash, expected):
    assert compute_roi(pnl, cash) == pytest.approx(expected)


def test_equity_curve_is_cumulative():
    starting_cash = 10000.0
    trades = consolidate_trades(build_transactions())
    curve = build_equity_curve(trades, starting_cash)

    assert curve[0].date == "Balance Inicial"
    assert curve[0].balance == starting_cash
    running = starting_cash
    for point, trade in zip(curve[1:], sort_by_last_date(trades)):
        running += trade.total_pnl
        assert point.date == trade.last_date
        assert point.balance == pytest.approx(round(running, 2))


def test_equity_curve_without_trades():
    assert [(p.date, p.balance) for p in build_equity_curve([], 5000.0)] == [("Inicio", 5000.0)]
    assert build_equity_curve([], 0.0) == []


def test_dashboard_statistics():
    dashboard = build_dashboard(build_transactions(), 10000.0)

    assert dashboard is not None
    stats = dashboard.stats
    assert stats.total_pnl == pytest.approx(-1746.0)
    assert stats.current_balance == pytest.approx(8254.0)
    assert stats.roi == pytest.approx(-17.46)
    assert stats.open_positions == 1
    assert stats.closed_trades == 2
    assert [s.name for s in stats.strategy_list] == ["Sin Estrategia", "Swing"]
    assert stats.best_strategy.name == "Sin Estrategia"
    assert stats.best_strategy.count == 1
    assert stats.win_rate == pytest.approx(50.0)
    assert stats.avg_win == pytest.approx(297.0)
    assert stats.avg_loss == pytest.approx(-42.0)


def test_unconfigured_account_has_no_dashboard():
    assert build_dashboard([], 0.0) is None


def test_balance_only_account_has_dashboard():
    dashboard = build_dashboard([], 2500.0)

    assert dashboard is not None
    assert dashboard.stats.best_strategy == NO_STRATEGY
    assert dashboard.stats.roi == 0
    assert [(p.date, p.balance) for p in dashboard.equity_curve] == [("Inicio", 2500.0)]


def test_broker_date_formats_order_chronologically():
    trades = consolidate_trades(
        [
            tx("20240301", "NFLX", 1, 10.0, -10.0),
            tx("2024-02-15, 10:30:00", "NFLX", -1, 12.0, 12.0),
        ]
    )

    assert trades[0].last_date == "20240301"
