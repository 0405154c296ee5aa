"""
KPI computation over a snapshot of trades.

Functions here are pure folds: they never filter, cache or sort implicitly,
so callers decide which trades to pass and re-run them on every change.
"""
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List

from bitacora.models.ledger import Trade


@dataclass(frozen=True)
class PortfolioKPIs:
    """Portfolio-wide totals"""
    total_trades: int = 0
    total_premium: float = 0.0
    total_costs: float = 0.0
    net_gain: float = 0.0
    capital_invested: float = 0.0
    overall_roi: float = 0.0  # percent

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TickerSummary:
    """
    Totals for one underlying.

    ``trade_count`` counts trade records one-to-one; a position rolled
    several times is still one trade. ``break_even_price`` is the linear
    approximation ``average_strike - premium_per_share`` and ignores time
    value entirely.
    """
    ticker: str
    trade_count: int
    total_premium: float
    total_costs: float
    net_gain: float
    capital_invested: float
    roi: float
    total_shares: int
    average_strike: float
    premium_per_share: float
    break_even_price: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def roi_percent(net_gain: float, capital: float) -> float:
    """Return on capital in percent; zero capital yields 0 instead of an error."""
    return (net_gain / capital) * 100 if capital > 0 else 0.0


def compute_trade_roi(trade: Trade) -> float:
    return roi_percent(trade.net_gain, trade.capital_at_risk)


def compute_kpis(trades: Iterable[Trade]) -> PortfolioKPIs:
    total_trades = 0
    total_premium = 0.0
    total_costs = 0.0
    capital = 0.0
    for trade in trades:
        total_trades += 1
        total_premium += trade.effective_total_premium
        total_costs += trade.total_costs
        capital += trade.capital_at_risk

    net_gain = total_premium - total_costs
    return PortfolioKPIs(
        total_trades=total_trades,
        total_premium=total_premium,
        total_costs=total_costs,
        net_gain=net_gain,
        capital_invested=capital,
        overall_roi=roi_percent(net_gain, capital),
    )


def group_by_ticker(trades: Iterable[Trade]) -> Dict[str, List[Trade]]:
    """Group trades by upper-cased ticker, keeping first-appearance order."""
    groups: Dict[str, List[Trade]] = {}
    for trade in trades:
        groups.setdefault(trade.ticker.strip().upper(), []).append(trade)
    return groups


def summarize_ticker(ticker: str, trades: List[Trade]) -> TickerSummary:
    kpis = compute_kpis(trades)
    total_shares = sum(t.share_count for t in trades)
    if total_shares:
        average_strike = kpis.capital_invested / total_shares
        premium_per_share = kpis.total_premium / total_shares
    else:
        average_strike = 0.0
        premium_per_share = 0.0

    return TickerSummary(
        ticker=ticker,
        trade_count=kpis.total_trades,
        total_premium=kpis.total_premium,
        total_costs=kpis.total_costs,
        net_gain=kpis.net_gain,
        capital_invested=kpis.capital_invested,
        roi=kpis.overall_roi,
        total_shares=total_shares,
        average_strike=average_strike,
        premium_per_share=premium_per_share,
        break_even_price=average_strike - premium_per_share,
    )


def compute_ticker_summaries(trades: Iterable[Trade]) -> List[TickerSummary]:
    """One summary per ticker, in order of the ticker's first appearance."""
    return [summarize_ticker(ticker, group) for ticker, group in group_by_ticker(trades).items()]


def rank_by_roi(summaries: Iterable[TickerSummary]) -> List[TickerSummary]:
    """Sort by descending ROI; equal ROI keeps the incoming order."""
    return sorted(summaries, key=lambda s: s.roi, reverse=True)
