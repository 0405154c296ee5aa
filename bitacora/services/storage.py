"""
Storage backends for trades and history events.

The backend is chosen once at startup by ``create_stores`` and handed to the
services that need it; nothing in the package reaches for a module-level
store.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone
from itertools import count
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from bitacora.core.database import SessionLocal
from bitacora.core.errors import PersistenceError, TradeNotFoundError
from bitacora.models.history_event import HistoryEventRecord
from bitacora.models.ledger import EventType, HistoryEvent, Trade, TradeStatus
from bitacora.models.trade import TradeRecord

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[List[Trade]], None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TradeStore(ABC):
    """Trade persistence with change notification"""

    def __init__(self):
        self._subscribers: List[SnapshotCallback] = []

    @abstractmethod
    def add(self, trade: Trade) -> Trade:
        """Insert a new trade and return it with its assigned id."""

    @abstractmethod
    def update(self, trade: Trade) -> Trade:
        pass

    @abstractmethod
    def remove(self, trade_id) -> None:
        pass

    @abstractmethod
    def get(self, trade_id) -> Optional[Trade]:
        pass

    @abstractmethod
    def list(self) -> List[Trade]:
        """All trades, newest first."""

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """
        Register ``callback`` for the full snapshot after every change.

        The callback receives the current snapshot immediately. Returns a
        function that removes the subscription.
        """
        self._subscribers.append(callback)
        callback(self.list())

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self):
        if not self._subscribers:
            return
        snapshot = self.list()
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"Trade subscriber failed: {e}")


class EventStore(ABC):
    """Append-only history persistence"""

    @abstractmethod
    def append(self, event: HistoryEvent) -> HistoryEvent:
        """Persist the event and return it with id and timestamp assigned."""

    @abstractmethod
    def list(self) -> List[HistoryEvent]:
        """All events, newest first."""


class InMemoryTradeStore(TradeStore):
    """Dict-backed store for tests and throwaway sessions"""

    def __init__(self):
        super().__init__()
        self._trades: Dict[int, Trade] = {}
        self._ids = count(1)

    def add(self, trade: Trade) -> Trade:
        saved = trade.copy(id=next(self._ids))
        self._trades[saved.id] = saved
        self._notify()
        return saved

    def update(self, trade: Trade) -> Trade:
        if trade.id not in self._trades:
            raise TradeNotFoundError(trade.id)
        self._trades[trade.id] = trade
        self._notify()
        return trade

    def remove(self, trade_id) -> None:
        if self._trades.pop(trade_id, None) is None:
            raise TradeNotFoundError(trade_id)
        self._notify()

    def get(self, trade_id) -> Optional[Trade]:
        return self._trades.get(trade_id)

    def list(self) -> List[Trade]:
        return [self._trades[key] for key in sorted(self._trades, reverse=True)]


class InMemoryEventStore(EventStore):

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._events: List[HistoryEvent] = []
        self._ids = count(1)
        self._clock = clock

    def append(self, event: HistoryEvent) -> HistoryEvent:
        saved = replace(event, id=next(self._ids), occurred_at=event.occurred_at or self._clock())
        self._events.append(saved)
        return saved

    def list(self) -> List[HistoryEvent]:
        return sorted(self._events, key=lambda e: (e.occurred_at, e.id), reverse=True)


def _trade_from_record(row: TradeRecord) -> Trade:
    return Trade(
        id=row.id,
        ticker=row.ticker,
        strategy=row.strategy or "",
        start_date=row.start_date,
        expiration_date=row.expiration_date,
        close_date=row.close_date,
        share_count=row.share_count or 0,
        strike_price=row.strike_price or 0.0,
        premium_received=row.premium_received or 0.0,
        total_premium=row.total_premium,
        commission=row.commission or 0.0,
        closing_cost=row.closing_cost or 0.0,
        status=TradeStatus(row.status),
        close_price=row.close_price,
        note=row.note,
    )


def _apply_trade(row: TradeRecord, trade: Trade):
    row.ticker = trade.ticker
    row.strategy = trade.strategy
    row.start_date = trade.start_date
    row.expiration_date = trade.expiration_date
    row.close_date = trade.close_date
    row.share_count = trade.share_count
    row.strike_price = trade.strike_price
    row.premium_received = trade.premium_received
    row.total_premium = trade.total_premium
    row.commission = trade.commission
    row.closing_cost = trade.closing_cost
    row.status = trade.status.value
    row.close_price = trade.close_price
    row.note = trade.note


def _event_from_record(row: HistoryEventRecord) -> HistoryEvent:
    return HistoryEvent(
        id=row.id,
        occurred_at=row.occurred_at,
        event_type=EventType(row.event_type),
        trade_id=row.trade_id,
        ticker=row.ticker,
        premium=row.premium or 0.0,
        commission=row.commission or 0.0,
        closing_cost=row.closing_cost or 0.0,
        strike_price=row.strike_price or 0.0,
        status=TradeStatus(row.status),
        note=row.note,
    )


class SqlTradeStore(TradeStore):
    """SQLAlchemy-backed trade store, one session per operation"""

    def __init__(self, session_factory):
        super().__init__()
        self.session_factory = session_factory

    def add(self, trade: Trade) -> Trade:
        db = self.session_factory()
        try:
            row = TradeRecord()
            _apply_trade(row, trade)
            db.add(row)
            db.commit()
            db.refresh(row)
            saved = _trade_from_record(row)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error saving trade for {trade.ticker}: {e}")
            raise PersistenceError("Could not save trade") from e
        finally:
            db.close()
        self._notify()
        return saved

    def update(self, trade: Trade) -> Trade:
        db = self.session_factory()
        try:
            row = db.get(TradeRecord, trade.id)
            if row is None:
                raise TradeNotFoundError(trade.id)
            _apply_trade(row, trade)
            db.commit()
            db.refresh(row)
            saved = _trade_from_record(row)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error updating trade {trade.id}: {e}")
            raise PersistenceError("Could not update trade") from e
        finally:
            db.close()
        self._notify()
        return saved

    def remove(self, trade_id) -> None:
        db = self.session_factory()
        try:
            row = db.get(TradeRecord, trade_id)
            if row is None:
                raise TradeNotFoundError(trade_id)
            db.delete(row)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error deleting trade {trade_id}: {e}")
            raise PersistenceError("Could not delete trade") from e
        finally:
            db.close()
        self._notify()

    def get(self, trade_id) -> Optional[Trade]:
        db = self.session_factory()
        try:
            row = db.get(TradeRecord, trade_id)
            return _trade_from_record(row) if row is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Error loading trade {trade_id}: {e}")
            raise PersistenceError("Could not load trade") from e
        finally:
            db.close()

    def list(self) -> List[Trade]:
        db = self.session_factory()
        try:
            rows = db.query(TradeRecord).order_by(TradeRecord.id.desc()).all()
            return [_trade_from_record(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Error loading trades: {e}")
            raise PersistenceError("Could not load trades") from e
        finally:
            db.close()


class SqlEventStore(EventStore):

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def append(self, event: HistoryEvent) -> HistoryEvent:
        db = self.session_factory()
        try:
            row = HistoryEventRecord(
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
            if event.occurred_at is not None:
                row.occurred_at = event.occurred_at
            db.add(row)
            db.commit()
            db.refresh(row)
            return _event_from_record(row)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error writing {event.event_type.value} event for {event.ticker}: {e}")
            raise PersistenceError("Could not write history event") from e
        finally:
            db.close()

    def list(self) -> List[HistoryEvent]:
        db = self.session_factory()
        try:
            rows = (
                db.query(HistoryEventRecord)
                .order_by(HistoryEventRecord.occurred_at.desc(), HistoryEventRecord.id.desc())
                .all()
            )
            return [_event_from_record(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Error loading history: {e}")
            raise PersistenceError("Could not load history") from e
        finally:
            db.close()


def create_stores(settings, session_factory=None) -> Tuple[TradeStore, EventStore]:
    """Build the configured backend pair."""
    if settings.STORAGE_BACKEND == "memory":
        logger.info("Using in-memory storage backend")
        return InMemoryTradeStore(), InMemoryEventStore()

    if session_factory is None:
        session_factory = SessionLocal
    logger.info("Using SQL storage backend")
    return SqlTradeStore(session_factory), SqlEventStore(session_factory)
