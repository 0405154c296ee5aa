"""
History of lifecycle events
"""
import logging
from typing import List

from bitacora.models.ledger import HistoryEvent
from bitacora.services.storage import EventStore

logger = logging.getLogger(__name__)


class HistoryLog:
    """Append-only audit trail of trade lifecycle actions"""

    def __init__(self, event_store: EventStore):
        self.event_store = event_store

    def record(self, event: HistoryEvent) -> HistoryEvent:
        saved = self.event_store.append(event)
        logger.info(f"History: {saved.event_type.value} {saved.ticker} (trade {saved.trade_id})")
        return saved

    def list_events(self) -> List[HistoryEvent]:
        """Every event, most recent first."""
        return self.event_store.list()

    def events_for_ticker(self, ticker: str) -> List[HistoryEvent]:
        wanted = ticker.strip().upper()
        return [event for event in self.list_events() if event.ticker == wanted]
