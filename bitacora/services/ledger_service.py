"""
Write path for the ledger: lifecycle transitions, persistence and history
"""
import logging
from dataclasses import replace
from datetime import date
from typing import Iterable, List, Optional

from bitacora.core.errors import PersistenceError, TradeNotFoundError, TradeValidationError
from bitacora.models.ledger import HistoryEvent, Trade
from bitacora.services import lifecycle
from bitacora.services.history import HistoryLog
from bitacora.services.kpi import PortfolioKPIs, TickerSummary, compute_kpis, compute_ticker_summaries
from bitacora.services.normalization import validate_trade
from bitacora.services.storage import TradeStore

logger = logging.getLogger(__name__)


class LedgerService:
    """
    Applies lifecycle operations against a trade store.

    Each operation validates first, persists the new trade state second and
    writes the history event last. A failed trade write raises before any
    event is recorded, and a failed history write undoes the trade write
    before raising. No state is kept here between calls.
    """

    def __init__(self, trade_store: TradeStore, history_log: HistoryLog):
        self.trade_store = trade_store
        self.history_log = history_log
        logger.info("Ledger service initialized")

    # Reads
    def list_trades(self) -> List[Trade]:
        return self.trade_store.list()

    def get_trade(self, trade_id) -> Trade:
        trade = self.trade_store.get(trade_id)
        if trade is None:
            raise TradeNotFoundError(trade_id)
        return trade

    def kpis(self) -> PortfolioKPIs:
        return compute_kpis(self.list_trades())

    def ticker_summaries(self) -> List[TickerSummary]:
        return compute_ticker_summaries(self.list_trades())

    def history(self) -> List[HistoryEvent]:
        return self.history_log.list_events()

    # Writes
    def create(self, trade: Trade) -> Trade:
        saved = self._add(lifecycle.open_trade(trade))
        logger.info(f"Created {saved.ticker} trade {saved.id}")
        return saved

    def edit(self, trade_id, replacement: Trade) -> Trade:
        current = self.get_trade(trade_id)
        result = lifecycle.edit_trade(current, replacement)
        return self._commit(current, result)

    def roll(self, trade_id, leg: lifecycle.RollLeg) -> Trade:
        current = self.get_trade(trade_id)
        result = lifecycle.roll_trade(current, leg)
        return self._commit(current, result)

    def close(self, trade_id, close_date: Optional[date], commission: float, closing_cost: float,
              close_price: Optional[float] = None) -> Trade:
        current = self.get_trade(trade_id)
        result = lifecycle.close_trade(current, close_date, commission, closing_cost, close_price)
        return self._commit(current, result)

    def expire(self, trade_id, close_date: Optional[date] = None) -> Trade:
        current = self.get_trade(trade_id)
        return self._commit(current, lifecycle.expire_trade(current, close_date))

    def cancel(self, trade_id, close_date: Optional[date] = None) -> Trade:
        current = self.get_trade(trade_id)
        return self._commit(current, lifecycle.cancel_trade(current, close_date))

    def delete(self, trade_id) -> HistoryEvent:
        current = self.get_trade(trade_id)
        # a removed trade always has its Deletion event
        recorded = self.history_log.record(lifecycle.delete_trade(current))
        self.trade_store.remove(trade_id)
        logger.info(f"Deleted {current.ticker} trade {trade_id}")
        return recorded

    def import_trades(self, trades: Iterable[Trade]) -> List[Trade]:
        """
        Add every trade in order, after checking that all of them are valid.

        Imported trades keep their status and close details; see
        ``lifecycle.import_trade``.
        """
        trades = list(trades)
        errors = []
        for row, trade in enumerate(trades, start=1):
            errors.extend(f"Row {row}: {message}" for message in validate_trade(trade))
        if errors:
            raise TradeValidationError(errors)

        created = []
        for trade in trades:
            created.append(self._add(lifecycle.import_trade(trade)))
        logger.info(f"Imported {len(created)} trades")
        return created

    def _add(self, result: lifecycle.LifecycleResult) -> Trade:
        saved = self.trade_store.add(result.trade)
        try:
            self.history_log.record(replace(result.event, trade_id=saved.id))
        except PersistenceError:
            logger.error(f"History write failed, removing {saved.ticker} trade {saved.id}")
            self.trade_store.remove(saved.id)
            raise
        return saved

    def _commit(self, current: Trade, result: lifecycle.LifecycleResult) -> Trade:
        saved = self.trade_store.update(result.trade)
        try:
            self.history_log.record(result.event)
        except PersistenceError:
            logger.error(f"History write failed, restoring {current.ticker} trade {current.id}")
            self.trade_store.update(current)
            raise
        logger.info(f"{result.event.event_type.value}: {saved.ticker} trade {saved.id} -> {saved.status.value}")
        return saved
