"""
Trade lifecycle transitions

Each operation is a pure function: it takes the current trade state and the
user input, and returns the next state together with the history event that
documents the change. Nothing here touches storage; see LedgerService for
the write path.

State machine::

    Open   -> Rolled | Closed | Expired | Cancelled
    Rolled -> Rolled | Closed | Expired
    Closed, Expired, Cancelled are terminal (edit and delete still apply)
"""
from dataclasses import dataclass
from datetime import date
from typing import Dict, FrozenSet, List, Optional

from bitacora.core.errors import PreconditionError, TradeValidationError
from bitacora.models.ledger import EventType, HistoryEvent, Trade, TradeStatus
from bitacora.services.normalization import validate_trade

ALLOWED_TRANSITIONS: Dict[TradeStatus, FrozenSet[TradeStatus]] = {
    TradeStatus.OPEN: frozenset({
        TradeStatus.ROLLED, TradeStatus.CLOSED, TradeStatus.EXPIRED, TradeStatus.CANCELLED,
    }),
    TradeStatus.ROLLED: frozenset({TradeStatus.ROLLED, TradeStatus.CLOSED, TradeStatus.EXPIRED}),
    TradeStatus.CLOSED: frozenset(),
    TradeStatus.EXPIRED: frozenset(),
    TradeStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class LifecycleResult:
    """New trade state plus the event that records how it was reached"""
    trade: Trade
    event: HistoryEvent


@dataclass(frozen=True)
class RollLeg:
    """The incoming leg of a roll"""
    start_date: Optional[date]
    expiration_date: Optional[date]
    strike_price: float
    premium: float
    commission: float = 0.0
    closing_cost: float = 0.0

    def validate(self) -> List[str]:
        errors = []
        if self.start_date is None:
            errors.append("Start date of the new leg is required")
        if self.expiration_date is None:
            errors.append("Expiration date of the new leg is required")
        if self.strike_price < 0:
            errors.append("Strike price cannot be negative")
        if self.premium < 0:
            errors.append("Premium cannot be negative")
        if self.commission < 0:
            errors.append("Commission cannot be negative")
        if self.closing_cost < 0:
            errors.append("Closing cost cannot be negative")
        return errors


def can_transition(current: TradeStatus, target: TradeStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def _require_transition(trade: Trade, target: TradeStatus, action: str):
    if trade.is_terminal:
        raise PreconditionError(
            f"Cannot {action} {trade.ticker} trade, it is already {trade.status.value}"
        )
    if not can_transition(trade.status, target):
        raise PreconditionError(
            f"Cannot {action} {trade.ticker} trade while it is {trade.status.value}"
        )


def _require_valid(trade: Trade):
    errors = validate_trade(trade)
    if errors:
        raise TradeValidationError(errors)


def open_trade(trade: Trade) -> LifecycleResult:
    """Validate a new trade and put it in the Open state."""
    _require_valid(trade)
    opened = trade.copy(
        id=None,
        status=TradeStatus.OPEN,
        total_premium=trade.premium_received,
        close_date=None,
    )
    return LifecycleResult(opened, HistoryEvent.from_trade(EventType.CREATION, opened))


def import_trade(trade: Trade) -> LifecycleResult:
    """
    Validate a trade read from a file and keep the state it was saved in.

    Status, close date and close price come through unchanged so that an
    exported ledger imports back as it was. The event is still a Creation.
    """
    _require_valid(trade)
    imported = trade.copy(
        id=None,
        total_premium=max(trade.effective_total_premium, trade.premium_received),
    )
    return LifecycleResult(imported, HistoryEvent.from_trade(EventType.CREATION, imported))


def edit_trade(current: Trade, replacement: Trade) -> LifecycleResult:
    """
    Replace every field of an existing trade.

    The replacement corrects the current leg, so its premium swaps out the
    old leg's premium inside the running total instead of adding to it.
    Status is taken as given: edit is the sanctioned way to fix mistakes,
    including on terminal trades.
    """
    _require_valid(replacement)
    total = current.effective_total_premium - current.premium_received + replacement.premium_received
    edited = replacement.copy(
        id=current.id,
        total_premium=max(total, replacement.premium_received),
    )
    return LifecycleResult(edited, HistoryEvent.from_trade(EventType.EDIT, edited))


def roll_trade(current: Trade, leg: RollLeg) -> LifecycleResult:
    """
    Close the current leg and open ``leg`` in its place.

    The premium and costs of the new leg are added to the running totals;
    the event records only those incremental amounts.
    """
    _require_transition(current, TradeStatus.ROLLED, "roll")
    errors = leg.validate()
    if errors:
        raise TradeValidationError(errors)

    rolled = current.copy(
        total_premium=current.effective_total_premium + leg.premium,
        premium_received=leg.premium,
        strike_price=leg.strike_price,
        start_date=leg.start_date,
        expiration_date=leg.expiration_date,
        close_date=leg.start_date,
        commission=current.commission + leg.commission,
        closing_cost=current.closing_cost + leg.closing_cost,
        status=TradeStatus.ROLLED,
    )
    event = HistoryEvent.from_trade(
        EventType.ROLL,
        rolled,
        premium=leg.premium,
        commission=leg.commission,
        closing_cost=leg.closing_cost,
    )
    return LifecycleResult(rolled, event)


def _check_costs(commission: float, closing_cost: float):
    errors = []
    if commission < 0:
        errors.append("Commission cannot be negative")
    if closing_cost < 0:
        errors.append("Closing cost cannot be negative")
    if errors:
        raise TradeValidationError(errors)


def close_trade(current: Trade, close_date: Optional[date], commission: float,
                closing_cost: float, close_price: Optional[float] = None) -> LifecycleResult:
    """Close the position with its final costs. Premium fields are left alone."""
    _require_transition(current, TradeStatus.CLOSED, "close")
    _check_costs(commission, closing_cost)
    closed = current.copy(
        close_date=close_date,
        commission=commission,
        closing_cost=closing_cost,
        close_price=current.close_price if close_price is None else close_price,
        status=TradeStatus.CLOSED,
    )
    event = HistoryEvent.from_trade(EventType.CLOSE, closed, premium=closed.effective_total_premium)
    return LifecycleResult(closed, event)


def expire_trade(current: Trade, close_date: Optional[date] = None) -> LifecycleResult:
    """Mark the option as expired worthless, by default on its expiration date."""
    _require_transition(current, TradeStatus.EXPIRED, "expire")
    expired = current.copy(
        close_date=close_date or current.expiration_date,
        status=TradeStatus.EXPIRED,
    )
    event = HistoryEvent.from_trade(EventType.CLOSE, expired, premium=expired.effective_total_premium)
    return LifecycleResult(expired, event)


def cancel_trade(current: Trade, close_date: Optional[date] = None) -> LifecycleResult:
    _require_transition(current, TradeStatus.CANCELLED, "cancel")
    cancelled = current.copy(close_date=close_date, status=TradeStatus.CANCELLED)
    event = HistoryEvent.from_trade(EventType.CLOSE, cancelled, premium=cancelled.effective_total_premium)
    return LifecycleResult(cancelled, event)


def delete_trade(current: Trade) -> HistoryEvent:
    """Deletion leaves no trade behind, only the event with its final state."""
    return HistoryEvent.from_trade(EventType.DELETION, current, premium=current.effective_total_premium)
