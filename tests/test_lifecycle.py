from datetime import date

import pytest

from bitacora.core.errors import PreconditionError, TradeValidationError
from bitacora.models.ledger import EventType, Trade, TradeStatus
from bitacora.services.lifecycle import (
    RollLeg,
    can_transition,
    cancel_trade,
    close_trade,
    delete_trade,
    edit_trade,
    expire_trade,
    import_trade,
    open_trade,
    roll_trade,
)


def new_trade(**overrides):
    fields = dict(
        ticker="INTC",
        strategy="CSP",
        start_date=date(2025, 1, 1),
        expiration_date=date(2025, 1, 17),
        share_count=100,
        strike_price=22.0,
        premium_received=35.0,
        commission=1.3,
        closing_cost=0.0,
    )
    fields.update(overrides)
    return Trade(**fields)


def leg(premium, strike=21.0, start=date(2025, 1, 17), expiration=date(2025, 2, 21), commission=1.0):
    return RollLeg(
        start_date=start,
        expiration_date=expiration,
        strike_price=strike,
        premium=premium,
        commission=commission,
    )


def opened(**overrides):
    return open_trade(new_trade(**overrides)).trade.copy(id=1)


def test_open_sets_status_and_total_premium():
    result = open_trade(new_trade(status=TradeStatus.CLOSED, close_date=date(2025, 1, 5)))
    assert result.trade.status is TradeStatus.OPEN
    assert result.trade.total_premium == 35.0
    assert result.trade.close_date is None
    assert result.event.event_type is EventType.CREATION
    assert result.event.premium == 35.0


def test_open_reports_every_validation_problem():
    bad = new_trade(ticker="", strategy="", share_count=0, strike_price=-1, premium_received=-5,
                    commission=-1, closing_cost=-2, start_date=None, expiration_date=None)
    with pytest.raises(TradeValidationError) as exc:
        open_trade(bad)
    assert len(exc.value.messages) == 9


def test_two_rolls_accumulate_total_premium():
    trade = opened()
    first = roll_trade(trade, leg(20.0)).trade
    second = roll_trade(first, leg(15.0, start=date(2025, 2, 21), expiration=date(2025, 3, 21))).trade
    assert second.total_premium == pytest.approx(35.0 + 20.0 + 15.0)
    assert second.premium_received == 15.0
    assert second.total_premium >= second.premium_received


def test_roll_updates_leg_fields_and_event_carries_increment_only():
    trade = opened()
    result = roll_trade(trade, leg(20.0, strike=21.0))
    rolled = result.trade
    assert rolled.status is TradeStatus.ROLLED
    assert rolled.strike_price == 21.0
    assert rolled.start_date == date(2025, 1, 17)
    assert rolled.expiration_date == date(2025, 2, 21)
    assert rolled.close_date == date(2025, 1, 17)
    assert rolled.commission == pytest.approx(2.3)
    assert result.event.event_type is EventType.ROLL
    assert result.event.premium == 20.0
    assert result.event.commission == 1.0


@pytest.mark.parametrize("status", [TradeStatus.CLOSED, TradeStatus.EXPIRED, TradeStatus.CANCELLED])
def test_roll_rejected_on_terminal_status(status):
    trade = opened().copy(status=status)
    with pytest.raises(PreconditionError):
        roll_trade(trade, leg(20.0))


def test_roll_leg_validation():
    with pytest.raises(TradeValidationError) as exc:
        roll_trade(opened(), RollLeg(start_date=None, expiration_date=None, strike_price=-1, premium=-1))
    assert len(exc.value.messages) == 4


def test_roll_requires_start_date_of_new_leg():
    with pytest.raises(TradeValidationError) as exc:
        roll_trade(opened(), leg(20.0, start=None))
    assert exc.value.messages == ["Start date of the new leg is required"]


def test_edit_without_roll_replaces_premium():
    trade = opened()
    result = edit_trade(trade, new_trade(premium_received=50.0))
    assert result.trade.total_premium == 50.0
    assert result.trade.id == 1
    assert result.event.event_type is EventType.EDIT


def test_edit_after_roll_corrects_only_current_leg():
    rolled = roll_trade(opened(), leg(20.0)).trade
    result = edit_trade(rolled, rolled.copy(premium_received=25.0))
    assert result.trade.total_premium == pytest.approx(35.0 + 25.0)
    assert result.trade.premium_received == 25.0


def test_edit_may_reopen_terminal_trade():
    closed = close_trade(opened(), date(2025, 1, 10), 1.3, 5.0).trade
    result = edit_trade(closed, closed.copy(status=TradeStatus.OPEN))
    assert result.trade.status is TradeStatus.OPEN


def test_close_sets_costs_and_keeps_premium():
    rolled = roll_trade(opened(), leg(20.0)).trade
    result = close_trade(rolled, date(2025, 2, 1), 3.0, 5.0)
    closed = result.trade
    assert closed.status is TradeStatus.CLOSED
    assert closed.close_date == date(2025, 2, 1)
    assert closed.commission == 3.0
    assert closed.closing_cost == 5.0
    assert closed.total_premium == rolled.total_premium
    assert closed.premium_received == rolled.premium_received
    assert result.event.event_type is EventType.CLOSE
    assert result.event.premium == pytest.approx(55.0)


def test_close_rejected_when_already_closed():
    closed = close_trade(opened(), date(2025, 1, 10), 1.3, 0.0).trade
    with pytest.raises(PreconditionError) as exc:
        close_trade(closed, date(2025, 1, 11), 1.3, 0.0)
    assert "already Closed" in str(exc.value)


def test_close_rejects_negative_costs():
    with pytest.raises(TradeValidationError):
        close_trade(opened(), date(2025, 1, 10), -1.0, 0.0)


def test_expire_defaults_close_date_to_expiration():
    result = expire_trade(opened())
    assert result.trade.status is TradeStatus.EXPIRED
    assert result.trade.close_date == date(2025, 1, 17)
    assert result.event.event_type is EventType.CLOSE
    assert result.event.status is TradeStatus.EXPIRED


def test_cancel_only_from_open():
    assert cancel_trade(opened(), date(2025, 1, 2)).trade.status is TradeStatus.CANCELLED
    rolled = roll_trade(opened(), leg(20.0)).trade
    with pytest.raises(PreconditionError):
        cancel_trade(rolled)


def test_delete_event_captures_final_state():
    rolled = roll_trade(opened(), leg(20.0)).trade
    event = delete_trade(rolled)
    assert event.event_type is EventType.DELETION
    assert event.trade_id == 1
    assert event.premium == pytest.approx(55.0)
    assert event.status is TradeStatus.ROLLED


def test_transition_table():
    assert can_transition(TradeStatus.OPEN, TradeStatus.CANCELLED)
    assert can_transition(TradeStatus.ROLLED, TradeStatus.ROLLED)
    assert not can_transition(TradeStatus.ROLLED, TradeStatus.CANCELLED)
    assert not can_transition(TradeStatus.EXPIRED, TradeStatus.CLOSED)


def test_import_keeps_saved_status_and_close_details():
    saved = new_trade(status=TradeStatus.CLOSED, close_date=date(2025, 1, 10), close_price=21.5)
    result = import_trade(saved.copy(id=7))
    assert result.trade.status is TradeStatus.CLOSED
    assert result.trade.close_date == date(2025, 1, 10)
    assert result.trade.close_price == 21.5
    assert result.trade.total_premium == 35.0
    assert result.trade.id is None
    assert result.event.event_type is EventType.CREATION
    assert result.event.status is TradeStatus.CLOSED


def test_import_rejects_invalid_rows():
    with pytest.raises(TradeValidationError):
        import_trade(new_trade(ticker=""))
