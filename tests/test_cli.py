from datetime import date

from bitacora.cli import main
from bitacora.models.ledger import Trade
from bitacora.services.history import HistoryLog
from bitacora.services.ledger_service import LedgerService
from bitacora.services.storage import InMemoryEventStore, InMemoryTradeStore


def make_ledger():
    return LedgerService(InMemoryTradeStore(), HistoryLog(InMemoryEventStore()))


def seed(ledger):
    ledger.create(Trade(
        ticker="AAPL", strategy="CSP", start_date=date(2025, 1, 1), expiration_date=date(2025, 2, 1),
        share_count=100, strike_price=200.0, premium_received=500.0, commission=2.0,
    ))


def test_export_then_import_between_ledgers(tmp_path):
    source = make_ledger()
    seed(source)
    path = tmp_path / "trades.csv"
    assert main(["export", str(path)], ledger=source) == 0

    target = make_ledger()
    assert main(["import", str(path)], ledger=target) == 0
    assert [t.ticker for t in target.list_trades()] == ["AAPL"]


def test_import_dry_run_writes_nothing(tmp_path):
    source = make_ledger()
    seed(source)
    path = tmp_path / "trades.csv"
    main(["export", str(path)], ledger=source)

    target = make_ledger()
    assert main(["import", str(path), "--dry-run"], ledger=target) == 0
    assert target.list_trades() == []


def test_invalid_import_returns_error_code(tmp_path, capsys):
    path = tmp_path / "bad.csv"
    path.write_text("ticker,shares\nAAPL,0\n", encoding="utf-8")
    assert main(["import", str(path)], ledger=make_ledger()) == 2
    assert "Row 1" in capsys.readouterr().err


def test_kpis_and_tickers_reports(capsys):
    ledger = make_ledger()
    seed(ledger)
    assert main(["kpis"], ledger=ledger) == 0
    assert main(["tickers"], ledger=ledger) == 0
    out = capsys.readouterr().out
    assert "overall_roi: 2.49" in out
    assert "AAPL" in out
