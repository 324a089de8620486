from decimal import Decimal

import pytest

from src.models.errors import AuthError, NetworkError, ValidationError, ValidationErrorKind
from src.models.schemas import Outcome

from conftest import NOW, make_market


def test_place_wager_refreshes_after_placement(trader, service):
    market = service.add_market(make_market())
    service.calls.clear()

    receipt = trader.desk.place(market, Outcome.YES, 1000, now=NOW)

    assert [c[0] for c in service.calls] == ["place_bet", "get_current_user", "get_market"]
    assert receipt.result.bet.odds == Decimal("2.4")
    assert receipt.user.balance == 4000
    assert receipt.market.odds_yes == Decimal("2.3")
    assert receipt.updated_odds.odds_no == Decimal("1.9")
    assert trader.desk.history[-1][1] == "placed"
    assert trader.desk.history[-1][0].payout == 2400


def test_locked_market_rejected_without_network(trader, service):
    market = service.add_market(make_market(isLocked=True))
    service.calls.clear()

    with pytest.raises(ValidationError) as err:
        trader.desk.place(market, Outcome.YES, 1000, now=NOW)

    assert err.value.kind is ValidationErrorKind.MARKET_NOT_TRADABLE
    assert service.calls == []
    assert trader.desk.history[-1][1] == "rejected:MarketNotTradable"


def test_stake_above_balance_rejected(trader, service):
    market = service.add_market(make_market())
    with pytest.raises(ValidationError) as err:
        trader.desk.place(market, Outcome.NO, 5001, now=NOW)
    assert err.value.kind is ValidationErrorKind.INSUFFICIENT_BALANCE
    assert service.network_calls("place_bet") == []


def test_non_positive_stake_rejected(trader, service):
    market = service.add_market(make_market())
    with pytest.raises(ValidationError) as err:
        trader.desk.place(market, Outcome.NO, 0, now=NOW)
    assert err.value.kind is ValidationErrorKind.BELOW_MINIMUM


def test_expired_market_rejected_even_if_unlocked(trader, service):
    market = service.add_market(make_market(end_time=NOW))
    with pytest.raises(ValidationError):
        trader.desk.place(market, Outcome.YES, 100, now=NOW)


def test_anonymous_wager_requires_login(paisa, service):
    market = service.add_market(make_market())
    with pytest.raises(AuthError):
        paisa.desk.place(market, Outcome.YES, 100, now=NOW)
    assert service.network_calls("place_bet") == []


def test_service_failure_propagates_and_is_not_retried(trader, service):
    market = service.add_market(make_market())
    service.fail_next = ("place_bet", NetworkError("gateway timeout", status_code=504))

    with pytest.raises(NetworkError):
        trader.desk.place(market, Outcome.YES, 1000, now=NOW)

    assert len(service.network_calls("place_bet")) == 1
    assert service.network_calls("get_market") == []
    assert trader.desk.history[-1][1] == "failed"


def test_market_reload_failure_still_reports_placed_wager(trader, service, caplog):
    market = service.add_market(make_market())
    service.fail_next = ("get_market", NetworkError("gateway timeout", status_code=504))

    receipt = trader.desk.place(market, Outcome.YES, 1000, now=NOW)

    assert receipt.market is None
    assert receipt.user.balance == 4000
    assert receipt.result.bet.amount == 1000
    assert len(service.bets) == 1
    assert len(service.network_calls("place_bet")) == 1
    assert trader.desk.history[-1][1] == "placed"
    assert "market reload failed" in caplog.text
