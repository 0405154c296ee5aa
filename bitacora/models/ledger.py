"""
Domain values for the options ledger: trades and their history events
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Optional


class TradeStatus(Enum):
    """Trade lifecycle states"""
    OPEN = "Open"
    CLOSED = "Closed"
    ROLLED = "Rolled"
    EXPIRED = "Expired"
    CANCELLED = "Cancelled"


TERMINAL_STATUSES = frozenset({TradeStatus.CLOSED, TradeStatus.EXPIRED, TradeStatus.CANCELLED})


class EventType(Enum):
    """Kinds of entries written to the history log"""
    CREATION = "Creation"
    EDIT = "Edit"
    ROLL = "Roll"
    CLOSE = "Close"
    DELETION = "Deletion"


@dataclass
class Trade:
    """A single option position, possibly spanning several rolled legs.

    ``premium_received`` is the premium of the current leg only, while
    ``total_premium`` accumulates every leg. ``total_premium`` is ``None``
    for records that never tracked a cumulative figure.
    """
    ticker: str
    strategy: str = ""
    share_count: int = 0
    strike_price: float = 0.0
    premium_received: float = 0.0
    commission: float = 0.0
    closing_cost: float = 0.0
    status: TradeStatus = TradeStatus.OPEN
    start_date: Optional[date] = None
    expiration_date: Optional[date] = None
    close_date: Optional[date] = None
    total_premium: Optional[float] = None
    close_price: Optional[float] = None
    note: Optional[str] = None
    id: Optional[int] = None

    @property
    def capital_at_risk(self) -> float:
        return self.share_count * self.strike_price

    @property
    def effective_total_premium(self) -> float:
        if self.total_premium is None:
            return self.premium_received
        return self.total_premium

    @property
    def total_costs(self) -> float:
        return self.commission + self.closing_cost

    @property
    def net_gain(self) -> float:
        return self.effective_total_premium - self.total_costs

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def copy(self, **changes) -> "Trade":
        return replace(self, **changes)


@dataclass(frozen=True)
class HistoryEvent:
    """Immutable snapshot of a trade at the moment of a lifecycle action"""
    event_type: EventType
    ticker: str
    premium: float = 0.0
    commission: float = 0.0
    closing_cost: float = 0.0
    strike_price: float = 0.0
    status: TradeStatus = TradeStatus.OPEN
    note: Optional[str] = None
    trade_id: Optional[int] = None
    occurred_at: Optional[datetime] = None
    id: Optional[int] = field(default=None, compare=False)

    @classmethod
    def from_trade(cls, event_type: EventType, trade: Trade, premium: Optional[float] = None,
                   commission: Optional[float] = None, closing_cost: Optional[float] = None) -> "HistoryEvent":
        """Build an event from a trade, optionally overriding the recorded amounts."""
        return cls(
            event_type=event_type,
            ticker=trade.ticker,
            premium=trade.premium_received if premium is None else premium,
            commission=trade.commission if commission is None else commission,
            closing_cost=trade.closing_cost if closing_cost is None else closing_cost,
            strike_price=trade.strike_price,
            status=trade.status,
            note=trade.note,
            trade_id=trade.id,
        )
