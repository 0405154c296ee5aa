"""
API routes for the options ledger
"""
from fastapi import APIRouter, HTTPException, Depends, Query, Request, status
from fastapi.responses import PlainTextResponse
from typing import Annotated, Dict, List, Optional, Any
from datetime import datetime, timezone
import logging

from pydantic import BaseModel

from bitacora.api.schemas import (
    CloseIn,
    CsvImportResponse,
    ErrorDetail,
    HistoryEventOut,
    KPIOut,
    QuoteOut,
    RollIn,
    TerminateIn,
    TickerSummaryOut,
    TradeIn,
    TradeOut,
    summary_out,
)
from bitacora.api.security import require_api_key
from bitacora.core.errors import (
    LedgerError,
    PersistenceError,
    PreconditionError,
    TradeNotFoundError,
    TradeValidationError,
)
from bitacora.services.csv_service import export_csv, import_csv
from bitacora.services.kpi import compute_kpis, compute_ticker_summaries, rank_by_roi
from bitacora.services.ledger_service import LedgerService
from bitacora.services.normalization import normalize_ticker, parse_status
from bitacora.services.price_service import PriceService

logger = logging.getLogger(__name__)

# Create router
api_router = APIRouter(dependencies=[Depends(require_api_key)])


class CsvImportIn(BaseModel):
    csv: str


def get_ledger(request: Request) -> LedgerService:
    ledger = getattr(request.app.state, "ledger", None)
    if ledger is None:
        raise HTTPException(status_code=503, detail="Ledger service not available")
    return ledger


def get_price_service(request: Request) -> Optional[PriceService]:
    return getattr(request.app.state, "price_service", None)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error(status_code: int, error: LedgerError, message: Optional[str] = None,
           errors: Optional[List[str]] = None) -> HTTPException:
    detail = ErrorDetail(error_code=error.error_code, message=message or str(error), errors=errors)
    return HTTPException(status_code=status_code, detail=detail.model_dump(exclude_none=True))


def _to_http(error: LedgerError) -> HTTPException:
    if isinstance(error, TradeValidationError):
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, error, "Trade is invalid", error.messages)
    if isinstance(error, PreconditionError):
        return _error(status.HTTP_409_CONFLICT, error)
    if isinstance(error, TradeNotFoundError):
        return _error(status.HTTP_404_NOT_FOUND, error)
    if isinstance(error, PersistenceError):
        logger.error(f"Storage failure: {error}")
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, error, "Storage is unavailable, nothing was saved")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, error)


# Trade Routes
@api_router.get("/trades")
async def list_trades(ledger: LedgerService = Depends(get_ledger)):
    """List all trades, newest first"""
    try:
        trades = ledger.list_trades()
    except LedgerError as e:
        raise _to_http(e)
    return {
        "trades": [TradeOut.from_trade(t).model_dump(mode="json") for t in trades],
        "count": len(trades),
        "timestamp": _timestamp(),
    }

@api_router.get("/trades/{trade_id}")
async def get_trade(trade_id: int, ledger: LedgerService = Depends(get_ledger)):
    try:
        return TradeOut.from_trade(ledger.get_trade(trade_id)).model_dump(mode="json")
    except LedgerError as e:
        raise _to_http(e)

@api_router.post("/trades", status_code=status.HTTP_201_CREATED)
async def create_trade(payload: TradeIn, ledger: LedgerService = Depends(get_ledger)):
    """Create a trade in the Open state"""
    try:
        trade = ledger.create(payload.to_trade())
    except LedgerError as e:
        raise _to_http(e)
    return TradeOut.from_trade(trade).model_dump(mode="json")

@api_router.put("/trades/{trade_id}")
async def edit_trade(trade_id: int, payload: TradeIn, ledger: LedgerService = Depends(get_ledger)):
    """Replace every field of a trade"""
    try:
        trade = ledger.edit(trade_id, payload.to_trade())
    except LedgerError as e:
        raise _to_http(e)
    return TradeOut.from_trade(trade).model_dump(mode="json")

@api_router.post("/trades/{trade_id}/roll")
async def roll_trade(trade_id: int, payload: RollIn, ledger: LedgerService = Depends(get_ledger)):
    try:
        trade = ledger.roll(trade_id, payload.to_leg())
    except LedgerError as e:
        raise _to_http(e)
    return TradeOut.from_trade(trade).model_dump(mode="json")

@api_router.post("/trades/{trade_id}/close")
async def close_trade(trade_id: int, payload: CloseIn, ledger: LedgerService = Depends(get_ledger)):
    try:
        trade = ledger.close(
            trade_id,
            payload.close_date,
            payload.commission,
            payload.closing_cost,
            payload.close_price,
        )
    except LedgerError as e:
        raise _to_http(e)
    return TradeOut.from_trade(trade).model_dump(mode="json")

@api_router.post("/trades/{trade_id}/expire")
async def expire_trade(trade_id: int, payload: TerminateIn, ledger: LedgerService = Depends(get_ledger)):
    try:
        trade = ledger.expire(trade_id, payload.close_date)
    except LedgerError as e:
        raise _to_http(e)
    return TradeOut.from_trade(trade).model_dump(mode="json")

@api_router.post("/trades/{trade_id}/cancel")
async def cancel_trade(trade_id: int, payload: TerminateIn, ledger: LedgerService = Depends(get_ledger)):
    try:
        trade = ledger.cancel(trade_id, payload.close_date)
    except LedgerError as e:
        raise _to_http(e)
    return TradeOut.from_trade(trade).model_dump(mode="json")

@api_router.delete("/trades/{trade_id}")
async def delete_trade(trade_id: int, ledger: LedgerService = Depends(get_ledger)):
    try:
        event = ledger.delete(trade_id)
    except LedgerError as e:
        raise _to_http(e)
    return {
        "message": f"Trade {trade_id} deleted",
        "event": HistoryEventOut.from_event(event).model_dump(mode="json"),
    }

# Analytics Routes
@api_router.get("/kpis")
async def get_kpis(
    status_filter: Annotated[Optional[str], Query(alias="status")] = None,
    ledger: LedgerService = Depends(get_ledger),
):
    """Portfolio KPIs, optionally restricted to one status"""
    try:
        trades = ledger.list_trades()
    except LedgerError as e:
        raise _to_http(e)
    if status_filter:
        wanted = parse_status(status_filter)
        trades = [t for t in trades if t.status == wanted]
    kpis = compute_kpis(trades)
    return {
        "kpis": KPIOut(**kpis.to_dict()).model_dump(),
        "timestamp": _timestamp(),
    }

@api_router.get("/tickers")
async def get_ticker_summaries(
    with_quotes: bool = False,
    ledger: LedgerService = Depends(get_ledger),
    price_service: Optional[PriceService] = Depends(get_price_service),
):
    """Per-ticker totals ranked by ROI, highest first"""
    try:
        trades = ledger.list_trades()
    except LedgerError as e:
        raise _to_http(e)
    summaries = rank_by_roi(compute_ticker_summaries(trades))

    quotes: Dict[str, Dict[str, Any]] = {}
    if with_quotes and price_service is not None:
        quotes = await price_service.get_quotes(s.ticker for s in summaries)

    results: List[TickerSummaryOut] = [summary_out(s, quotes.get(s.ticker)) for s in summaries]
    return {
        "tickers": [r.model_dump() for r in results],
        "count": len(results),
        "timestamp": _timestamp(),
    }

@api_router.get("/tickers/{ticker}/quote")
async def get_quote(ticker: str, price_service: Optional[PriceService] = Depends(get_price_service)):
    """Price and name lookup; nulls when the oracle has nothing"""
    symbol = normalize_ticker(ticker)
    if price_service is None:
        return QuoteOut(ticker=symbol).model_dump()
    quotes = await price_service.get_quotes([symbol])
    quote = quotes.get(symbol, {})
    return QuoteOut(ticker=symbol, price=quote.get("price"), name=quote.get("name")).model_dump()

# History Routes
@api_router.get("/history")
async def get_history(ticker: Optional[str] = None, ledger: LedgerService = Depends(get_ledger)):
    """Lifecycle events, most recent first"""
    try:
        if ticker:
            events = ledger.history_log.events_for_ticker(ticker)
        else:
            events = ledger.history()
    except LedgerError as e:
        raise _to_http(e)
    return {
        "events": [HistoryEventOut.from_event(e).model_dump(mode="json") for e in events],
        "count": len(events),
        "timestamp": _timestamp(),
    }

# CSV Routes
@api_router.get("/csv/export", response_class=PlainTextResponse)
async def export_trades_csv(ledger: LedgerService = Depends(get_ledger)):
    try:
        trades = ledger.list_trades()
    except LedgerError as e:
        raise _to_http(e)
    return PlainTextResponse(
        export_csv(trades),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="trades.csv"'},
    )

@api_router.post("/csv/import", status_code=status.HTTP_201_CREATED)
async def import_trades_csv(payload: CsvImportIn, ledger: LedgerService = Depends(get_ledger)):
    """Create one trade per CSV row; nothing is written if any row is invalid"""
    try:
        created = ledger.import_trades(import_csv(payload.csv))
    except LedgerError as e:
        raise _to_http(e)
    return CsvImportResponse(
        imported=len(created),
        trades=[TradeOut.from_trade(t) for t in created],
        timestamp=_timestamp(),
    ).model_dump(mode="json")
