"""
CSV import/export of trades
"""
import csv
import io
import logging
from typing import Iterable, List

import pandas as pd
from pandas.errors import EmptyDataError

from bitacora.models.ledger import Trade
from bitacora.services.normalization import normalize_trade

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "start_date",
    "expiration_date",
    "close_date",
    "ticker",
    "strategy",
    "shares",
    "strike",
    "premium_received",
    "commission",
    "closing_cost",
    "status",
    "close_price",
    "note",
]


def _iso(value) -> str:
    return value.isoformat() if value else ""


def _row(trade: Trade) -> list:
    return [
        _iso(trade.start_date),
        _iso(trade.expiration_date),
        _iso(trade.close_date),
        trade.ticker,
        trade.strategy,
        trade.share_count,
        trade.strike_price,
        trade.premium_received,
        trade.commission,
        trade.closing_cost,
        trade.status.value,
        "" if trade.close_price is None else trade.close_price,
        trade.note or "",
    ]


def export_csv(trades: Iterable[Trade]) -> str:
    """
    Serialize trades to CSV with a fixed header.

    Fields holding a comma, quote or newline are quoted and inner quotes
    doubled. Storage ids are not exported.
    """
    frame = pd.DataFrame([_row(trade) for trade in trades], columns=CSV_COLUMNS, dtype=object)
    return frame.to_csv(index=False, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)


def import_csv(text: str) -> List[Trade]:
    """
    Parse CSV text into trades.

    Any header naming accepted by ``normalize_trade`` works, so files from
    the older Spanish-labelled exports import too. Blank rows are skipped.
    """
    if not text or not text.strip():
        return []
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except EmptyDataError:
        return []

    frame.columns = [str(column).strip() for column in frame.columns]
    trades = []
    for record in frame.to_dict("records"):
        if not any(str(value).strip() for value in record.values()):
            continue
        trades.append(normalize_trade(record))
    logger.info(f"Parsed {len(trades)} trades from CSV")
    return trades
