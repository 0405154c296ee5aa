"""
Pydantic schemas for API request/response contracts.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from bitacora.models.ledger import HistoryEvent, Trade, TradeStatus
from bitacora.services.kpi import compute_trade_roi
from bitacora.services.lifecycle import RollLeg
from bitacora.services.normalization import normalize_trade, parse_status, trade_to_record


class ErrorDetail(BaseModel):
    error_code: str
    message: str
    errors: Optional[List[str]] = None


class TradeIn(BaseModel):
    """
    User-submitted trade fields.

    Ranges are checked by the lifecycle layer so that every problem is
    reported together; this model only shapes the payload.
    """
    ticker: str = ""
    strategy: str = ""
    start_date: Optional[date] = None
    expiration_date: Optional[date] = None
    close_date: Optional[date] = None
    share_count: int = 0
    strike_price: float = 0.0
    premium_received: float = 0.0
    commission: float = 0.0
    closing_cost: float = 0.0
    status: str = "Open"
    close_price: Optional[float] = None
    note: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        return parse_status(value).value

    def to_trade(self) -> Trade:
        return normalize_trade(self.model_dump())


class RollIn(BaseModel):
    start_date: Optional[date] = None
    expiration_date: Optional[date] = None
    strike_price: float = 0.0
    premium: float = 0.0
    commission: float = 0.0
    closing_cost: float = 0.0

    def to_leg(self) -> RollLeg:
        return RollLeg(
            start_date=self.start_date,
            expiration_date=self.expiration_date,
            strike_price=self.strike_price,
            premium=self.premium,
            commission=self.commission,
            closing_cost=self.closing_cost,
        )


class CloseIn(BaseModel):
    close_date: Optional[date] = None
    commission: float = 0.0
    closing_cost: float = 0.0
    close_price: Optional[float] = None


class TerminateIn(BaseModel):
    close_date: Optional[date] = None


class TradeOut(BaseModel):
    id: Optional[int] = None
    ticker: str
    strategy: str = ""
    start_date: Optional[date] = None
    expiration_date: Optional[date] = None
    close_date: Optional[date] = None
    share_count: int = 0
    strike_price: float = 0.0
    premium_received: float = 0.0
    total_premium: float = 0.0
    commission: float = 0.0
    closing_cost: float = 0.0
    status: TradeStatus = TradeStatus.OPEN
    close_price: Optional[float] = None
    note: Optional[str] = None
    capital_at_risk: float = 0.0
    net_gain: float = 0.0
    roi: float = 0.0

    @classmethod
    def from_trade(cls, trade: Trade) -> "TradeOut":
        return cls(
            **trade_to_record(trade),
            capital_at_risk=trade.capital_at_risk,
            net_gain=trade.net_gain,
            roi=compute_trade_roi(trade),
        )


class HistoryEventOut(BaseModel):
    id: Optional[int] = None
    occurred_at: Optional[datetime] = None
    event_type: str
    trade_id: Optional[int] = None
    ticker: str
    premium: float = 0.0
    commission: float = 0.0
    closing_cost: float = 0.0
    strike_price: float = 0.0
    status: str
    note: Optional[str] = None

    @classmethod
    def from_event(cls, event: HistoryEvent) -> "HistoryEventOut":
        return cls(
            id=event.id,
            occurred_at=event.occurred_at,
            event_type=event.event_type.value,
            trade_id=event.trade_id,
            ticker=event.ticker,
            premium=event.premium,
            commission=event.commission,
            closing_cost=event.closing_cost,
            strike_price=event.strike_price,
            status=event.status.value,
            note=event.note,
        )


class QuoteOut(BaseModel):
    ticker: str
    price: Optional[float] = None
    name: Optional[str] = None


class TickerSummaryOut(BaseModel):
    ticker: str
    trade_count: int = 0
    total_premium: float = 0.0
    total_costs: float = 0.0
    net_gain: float = 0.0
    capital_invested: float = 0.0
    roi: float = 0.0
    total_shares: int = 0
    average_strike: float = 0.0
    premium_per_share: float = 0.0
    break_even_price: float = 0.0
    price: Optional[float] = None
    name: Optional[str] = None


class KPIOut(BaseModel):
    total_trades: int = 0
    total_premium: float = 0.0
    total_costs: float = 0.0
    net_gain: float = 0.0
    capital_invested: float = 0.0
    overall_roi: float = 0.0


class CsvImportResponse(BaseModel):
    imported: int = 0
    trades: List[TradeOut] = Field(default_factory=list)
    timestamp: str


def summary_out(summary, quote: Optional[Dict[str, Any]] = None) -> TickerSummaryOut:
    quote = quote or {}
    return TickerSummaryOut(**summary.to_dict(), price=quote.get("price"), name=quote.get("name"))
