"""
Error taxonomy for ledger operations
"""
from typing import Iterable, List


class LedgerError(Exception):
    """Base class for every error raised by the ledger services."""

    error_code = "ledger.error"


class TradeValidationError(LedgerError, ValueError):
    """User input failed required-field or non-negativity checks."""

    error_code = "trade.invalid"

    def __init__(self, messages: Iterable[str]):
        self.messages: List[str] = [str(m) for m in messages]
        super().__init__("; ".join(self.messages) or "Invalid trade")


class PreconditionError(LedgerError, ValueError):
    """A lifecycle operation is not allowed from the trade's current status."""

    error_code = "trade.invalid_transition"


class TradeNotFoundError(LedgerError, LookupError):
    error_code = "trade.not_found"

    def __init__(self, trade_id):
        self.trade_id = trade_id
        super().__init__(f"Trade {trade_id} not found")


class PersistenceError(LedgerError):
    """Storage was unavailable or rejected a write."""

    error_code = "storage.unavailable"
