from datetime import date

import pytest

from bitacora.models.ledger import Trade, TradeStatus
from bitacora.services.kpi import (
    compute_kpis,
    compute_ticker_summaries,
    compute_trade_roi,
    rank_by_roi,
)


def make_trade(ticker="AAPL", shares=100, strike=200.0, premium=500.0, commission=2.0,
               closing_cost=0.0, total=None, status=TradeStatus.OPEN):
    return Trade(
        ticker=ticker,
        strategy="CSP",
        start_date=date(2025, 1, 1),
        expiration_date=date(2025, 2, 1),
        share_count=shares,
        strike_price=strike,
        premium_received=premium,
        total_premium=total,
        commission=commission,
        closing_cost=closing_cost,
        status=status,
    )


def test_empty_collection_returns_all_zero_metrics():
    kpis = compute_kpis([])
    assert kpis.total_trades == 0
    assert kpis.total_premium == 0
    assert kpis.total_costs == 0
    assert kpis.net_gain == 0
    assert kpis.capital_invested == 0
    assert kpis.overall_roi == 0


def test_zero_shares_contributes_no_capital_and_zero_roi():
    trade = make_trade(shares=0)
    assert trade.capital_at_risk == 0
    assert compute_trade_roi(trade) == 0
    kpis = compute_kpis([trade])
    assert kpis.capital_invested == 0
    assert kpis.overall_roi == 0
    assert kpis.net_gain == pytest.approx(498.0)


def test_aapl_group_matches_reference_figures():
    trades = [
        make_trade(strike=200, premium=500, commission=2),
        make_trade(strike=190, premium=250, commission=4),
    ]
    [summary] = compute_ticker_summaries(trades)
    assert summary.ticker == "AAPL"
    assert summary.capital_invested == pytest.approx(39000)
    assert summary.total_premium == pytest.approx(750)
    assert summary.total_costs == pytest.approx(6)
    assert summary.net_gain == pytest.approx(744)
    assert summary.roi == pytest.approx(1.9077, abs=1e-4)


def test_total_premium_preferred_over_current_leg_premium():
    rolled = make_trade(premium=100, total=350)
    untracked = make_trade(premium=200, total=None)
    kpis = compute_kpis([rolled, untracked])
    assert kpis.total_premium == pytest.approx(550)


def test_portfolio_kpis_over_mixed_tickers():
    trades = [
        make_trade("AAPL", strike=200, premium=500, commission=2),
        make_trade("MSFT", strike=150, premium=300, commission=2, closing_cost=50),
        make_trade("AAPL", strike=190, premium=250, commission=4),
    ]
    kpis = compute_kpis(trades)
    assert kpis.total_trades == 3
    assert kpis.total_premium == pytest.approx(1050)
    assert kpis.total_costs == pytest.approx(58)
    assert kpis.net_gain == pytest.approx(992)
    assert kpis.capital_invested == pytest.approx(54000)
    assert kpis.overall_roi == pytest.approx(992 / 54000 * 100)


def test_kpis_do_not_depend_on_order():
    trades = [make_trade("AAPL"), make_trade("MSFT", strike=150), make_trade("TSLA", premium=10)]
    assert compute_kpis(trades) == compute_kpis(list(reversed(trades)))


def test_ticker_grouping_is_case_insensitive_and_keeps_first_seen_order():
    trades = [make_trade("msft"), make_trade("AAPL"), make_trade(" Msft ")]
    summaries = compute_ticker_summaries(trades)
    assert [s.ticker for s in summaries] == ["MSFT", "AAPL"]
    assert summaries[0].trade_count == 2


def test_break_even_uses_weighted_average_strike():
    trades = [
        make_trade(shares=100, strike=200, premium=500),
        make_trade(shares=300, strike=180, premium=300),
    ]
    [summary] = compute_ticker_summaries(trades)
    assert summary.total_shares == 400
    assert summary.average_strike == pytest.approx(74000 / 400)
    assert summary.premium_per_share == pytest.approx(2.0)
    assert summary.break_even_price == pytest.approx(185.0 - 2.0)


def test_break_even_guarded_when_no_shares():
    [summary] = compute_ticker_summaries([make_trade(shares=0)])
    assert summary.average_strike == 0
    assert summary.premium_per_share == 0
    assert summary.break_even_price == 0
    assert summary.roi == 0


def test_rank_by_roi_is_descending_and_stable_on_ties():
    trades = [
        make_trade("LOW", premium=10, commission=0),
        make_trade("TIE1", premium=100, commission=0),
        make_trade("HIGH", premium=1000, commission=0),
        make_trade("TIE2", premium=100, commission=0),
    ]
    ranked = rank_by_roi(compute_ticker_summaries(trades))
    assert [s.ticker for s in ranked] == ["HIGH", "TIE1", "TIE2", "LOW"]
