from src.models.errors import NetworkError
from src.models.schemas import MarketStatus
from src.runner import run_one_cycle

from conftest import NOW, make_market


def test_cycle_counts_board(paisa, service):
    service.add_market(make_market(1))
    service.add_market(make_market(2, isLocked=True))

    counts = run_one_cycle(paisa, now=NOW)

    assert counts[MarketStatus.ACTIVE] == 1
    assert counts[MarketStatus.LOCKED] == 1


def test_stop_file_skips_refresh(paisa, service, tmp_path):
    (tmp_path / "stop").write_text("")
    assert run_one_cycle(paisa, now=NOW) is None
    assert service.network_calls("list_markets") == []


def test_refresh_failure_is_logged_not_raised(paisa, service, caplog):
    service.fail_next = ("list_markets", NetworkError("unreachable"))
    assert run_one_cycle(paisa, now=NOW) is None
    assert "refresh failed" in caplog.text
