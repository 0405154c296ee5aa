"""
Conversion of raw persisted or submitted rows into canonical Trade values
"""
import logging
import math
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from bitacora.models.ledger import Trade, TradeStatus

logger = logging.getLogger(__name__)

# Canonical field -> accepted source names, first present wins.
FIELD_ALIASES: Dict[str, Sequence[str]] = {
    "id": ("id",),
    "ticker": ("ticker", "tickerSymbol", "ticker_symbol", "symbol"),
    "strategy": ("strategy", "estrategia"),
    "start_date": ("start_date", "startDate", "fecha_inicio", "fechaInicio"),
    "expiration_date": ("expiration_date", "expirationDate", "fecha_vencimiento", "fechaVencimiento"),
    "close_date": ("close_date", "closeDate", "fecha_cierre", "fechaCierre"),
    "share_count": ("share_count", "shareCount", "shares", "acciones"),
    "strike_price": ("strike_price", "strikePrice", "strike"),
    "premium_received": ("premium_received", "premiumReceived", "premium", "prima_recibida", "primaRecibida"),
    "total_premium": ("total_premium", "totalPremium", "prima_total", "primaTotal"),
    "commission": ("commission", "comision"),
    "closing_cost": ("closing_cost", "closingCost", "costo_cierre", "costoCierre"),
    "status": ("status", "estado"),
    "close_price": ("close_price", "closePrice", "precio_cierre", "precioCierre"),
    "note": ("note", "notes", "notas", "nota"),
}

STATUS_ALIASES: Dict[str, TradeStatus] = {
    "open": TradeStatus.OPEN,
    "abierta": TradeStatus.OPEN,
    "closed": TradeStatus.CLOSED,
    "cerrada": TradeStatus.CLOSED,
    "rolled": TradeStatus.ROLLED,
    "rolada": TradeStatus.ROLLED,
    "expired": TradeStatus.EXPIRED,
    "vencida": TradeStatus.EXPIRED,
    "expirada": TradeStatus.EXPIRED,
    "cancelled": TradeStatus.CANCELLED,
    "canceled": TradeStatus.CANCELLED,
    "cancelada": TradeStatus.CANCELLED,
}


def _pick(raw: Mapping[str, Any], canonical: str) -> Any:
    for name in FIELD_ALIASES[canonical]:
        if name in raw:
            return raw[name]
    return None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return isinstance(value, float) and math.isnan(value)


def to_float(value: Any) -> float:
    """Numeric coercion that maps blanks and garbage to 0."""
    if _is_blank(value) or isinstance(value, bool):
        return 0.0
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def to_int(value: Any) -> int:
    return int(to_float(value))


def optional_float(value: Any) -> Optional[float]:
    if _is_blank(value):
        return None
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_date(value: Any) -> Optional[date]:
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        logger.debug(f"Ignoring unparseable date value {value!r}")
        return None


def parse_status(value: Any) -> TradeStatus:
    if isinstance(value, TradeStatus):
        return value
    if _is_blank(value):
        return TradeStatus.OPEN
    return STATUS_ALIASES.get(str(value).strip().lower(), TradeStatus.OPEN)


def normalize_ticker(value: Any) -> str:
    return "" if _is_blank(value) else str(value).strip().upper()


def _optional_text(value: Any) -> Optional[str]:
    if _is_blank(value):
        return None
    return str(value)


def normalize_trade(raw: Mapping[str, Any]) -> Trade:
    """
    Build a canonical Trade from a raw mapping.

    Never raises: missing or malformed numbers become 0, bad dates become
    None and ``total_premium`` falls back to ``premium_received``.
    """
    premium = to_float(_pick(raw, "premium_received"))
    total = optional_float(_pick(raw, "total_premium"))
    raw_id = _pick(raw, "id")

    return Trade(
        id=None if _is_blank(raw_id) else raw_id,
        ticker=normalize_ticker(_pick(raw, "ticker")),
        strategy=str(_pick(raw, "strategy") or "").strip(),
        start_date=parse_date(_pick(raw, "start_date")),
        expiration_date=parse_date(_pick(raw, "expiration_date")),
        close_date=parse_date(_pick(raw, "close_date")),
        share_count=to_int(_pick(raw, "share_count")),
        strike_price=to_float(_pick(raw, "strike_price")),
        premium_received=premium,
        total_premium=premium if total is None else total,
        commission=to_float(_pick(raw, "commission")),
        closing_cost=to_float(_pick(raw, "closing_cost")),
        status=parse_status(_pick(raw, "status")),
        close_price=optional_float(_pick(raw, "close_price")),
        note=_optional_text(_pick(raw, "note")),
    )


def validate_trade(trade: Trade) -> List[str]:
    """Return the list of problems with a user-submitted trade (empty when valid)."""
    errors = []
    if not trade.ticker:
        errors.append("Ticker is required")
    if not trade.strategy:
        errors.append("Strategy is required")
    if trade.start_date is None:
        errors.append("Start date is required")
    if trade.expiration_date is None:
        errors.append("Expiration date is required")
    if trade.share_count <= 0:
        errors.append("Share count must be greater than 0")
    if trade.strike_price < 0:
        errors.append("Strike price cannot be negative")
    if trade.premium_received < 0:
        errors.append("Premium received cannot be negative")
    if trade.commission < 0:
        errors.append("Commission cannot be negative")
    if trade.closing_cost < 0:
        errors.append("Closing cost cannot be negative")
    return errors


def trade_to_record(trade: Trade) -> Dict[str, Any]:
    """Canonical snake_case mapping of a trade, dates as ISO strings."""
    return {
        "id": trade.id,
        "ticker": trade.ticker,
        "strategy": trade.strategy,
        "start_date": trade.start_date.isoformat() if trade.start_date else None,
        "expiration_date": trade.expiration_date.isoformat() if trade.expiration_date else None,
        "close_date": trade.close_date.isoformat() if trade.close_date else None,
        "share_count": trade.share_count,
        "strike_price": trade.strike_price,
        "premium_received": trade.premium_received,
        "total_premium": trade.effective_total_premium,
        "commission": trade.commission,
        "closing_cost": trade.closing_cost,
        "status": trade.status.value,
        "close_price": trade.close_price,
        "note": trade.note,
    }
