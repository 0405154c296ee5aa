#!/usr/bin/env python3
"""
Command-line access to the ledger: CSV import/export and KPI reports.

Usage:
    bitacora export trades.csv
    bitacora import trades.csv
    bitacora kpis
    bitacora tickers
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from bitacora.core.config import settings
from bitacora.core.errors import LedgerError, TradeValidationError
from bitacora.services.csv_service import export_csv, import_csv
from bitacora.services.history import HistoryLog
from bitacora.services.kpi import rank_by_roi
from bitacora.services.ledger_service import LedgerService
from bitacora.services.storage import create_stores

logger = logging.getLogger(__name__)


def build_ledger(config=settings) -> LedgerService:
    trade_store, event_store = create_stores(config)
    return LedgerService(trade_store, HistoryLog(event_store))


def cmd_export(ledger: LedgerService, args) -> int:
    text = export_csv(ledger.list_trades())
    if args.path == "-":
        sys.stdout.write(text)
    else:
        Path(args.path).write_text(text, encoding="utf-8")
        print(f"Exported trades to {args.path}")
    return 0


def cmd_import(ledger: LedgerService, args) -> int:
    path = Path(args.path)
    if not path.exists():
        raise SystemExit(f"CSV not found: {path}")
    trades = import_csv(path.read_text(encoding="utf-8"))
    if args.dry_run:
        print(f"{len(trades)} trades parsed, nothing written (dry run)")
        return 0
    created = ledger.import_trades(trades)
    print(f"Imported {len(created)} trades")
    return 0


def cmd_kpis(ledger: LedgerService, args) -> int:
    kpis = ledger.kpis()
    print("Portfolio KPIs:")
    for key, value in kpis.to_dict().items():
        print(f"  {key}: {value:.2f}" if isinstance(value, float) else f"  {key}: {value}")
    return 0


def cmd_tickers(ledger: LedgerService, args) -> int:
    summaries = rank_by_roi(ledger.ticker_summaries())
    print(f"{'ticker':<8}{'trades':>8}{'net':>12}{'capital':>14}{'roi %':>9}{'break-even':>12}")
    for s in summaries:
        print(
            f"{s.ticker:<8}{s.trade_count:>8}{s.net_gain:>12.2f}{s.capital_invested:>14.2f}"
            f"{s.roi:>9.2f}{s.break_even_price:>12.2f}"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Options ledger utilities")
    sub = parser.add_subparsers(dest="command", required=True)

    export_parser = sub.add_parser("export", help="Write all trades to CSV")
    export_parser.add_argument("path", nargs="?", default="-", help="Output file, '-' for stdout")
    export_parser.set_defaults(handler=cmd_export)

    import_parser = sub.add_parser("import", help="Create trades from a CSV file")
    import_parser.add_argument("path", help="CSV file to import")
    import_parser.add_argument("--dry-run", action="store_true", help="Parse only")
    import_parser.set_defaults(handler=cmd_import)

    sub.add_parser("kpis", help="Print portfolio KPIs").set_defaults(handler=cmd_kpis)
    sub.add_parser("tickers", help="Print per-ticker ROI ranking").set_defaults(handler=cmd_tickers)
    return parser


def main(argv: Optional[List[str]] = None, ledger: Optional[LedgerService] = None) -> int:
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL), format='%(levelname)s - %(message)s')
    args = build_parser().parse_args(argv)
    ledger = ledger or build_ledger()
    try:
        return args.handler(ledger, args)
    except TradeValidationError as e:
        for message in e.messages:
            print(f"❌ {message}", file=sys.stderr)
        return 2
    except LedgerError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
