from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from src.data.token_store import MemoryTokenStore
from src.engine.market_state import payout_at
from src.models.errors import AuthError, AuthErrorKind, NetworkError
from src.models.schemas import (
    Bet,
    BetStatus,
    LeaderboardEntry,
    Market,
    MarketOdds,
    PlaceBetResult,
    Transaction,
    TransactionType,
    User,
)
from src.runner import build_app
from src.config import Settings

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_market(market_id: int = 1, **overrides) -> Market:
    fields = {
        "id": market_id,
        "title": "Will India win the final?",
        "description": "Resolves YES if India lifts the trophy.",
        "catagory": "Sports",
        "end_time": NOW + timedelta(hours=1),
        "isOpen": True,
        "isLocked": False,
        "outcome": None,
        "Oddsyes": 2.40,
        "Oddsno": 1.80,
    }
    fields.update(overrides)
    return Market.model_validate(fields)


class FakeService:
    """In-memory stand-in for PaisaClient that behaves like the real service."""

    def __init__(self):
        self.token_provider = None
        self.on_unauthorized = None
        self.calls = []
        self.markets = {}
        self.bets = []
        self.transactions = []
        self.accounts = {"trader@example.com": "hunter22", "admin@example.com": "root-pass"}
        self.users = {
            "token-trader": User(id=1, email="trader@example.com", balance=5000, isAdmin=False),
            "token-admin": User(id=2, email="admin@example.com", balance=10000, isAdmin=True),
        }
        self.fail_next = None

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if self.fail_next is not None and self.fail_next[0] == name:
            exc = self.fail_next[1]
            self.fail_next = None
            raise exc

    def _current(self) -> User:
        token = self.token_provider() if self.token_provider else None
        if token not in self.users:
            if token and self.on_unauthorized:
                self.on_unauthorized()
            raise AuthError(AuthErrorKind.SESSION_EXPIRED, "Unauthorized")
        return self.users[token]

    def add_market(self, market: Market) -> Market:
        self.markets[market.id] = market
        return market

    def signup(self, email, password):
        self._record("signup", email)
        if "@" not in email:
            raise NetworkError("Invalid input", status_code=400)
        self.accounts[email] = password

    def signin(self, email, password):
        self._record("signin", email)
        if self.accounts.get(email) != password:
            raise NetworkError("Invalid email or password", status_code=401)
        return "token-admin" if email.startswith("admin") else "token-trader"

    def get_current_user(self):
        self._record("get_current_user")
        return self._current()

    def list_markets(self):
        self._record("list_markets")
        return list(self.markets.values())

    def open_markets(self):
        self._record("open_markets")
        return [m for m in self.markets.values() if m.is_open and not m.is_locked and m.outcome is None]

    def markets_by_category(self, category):
        self._record("markets_by_category", category)
        return [m for m in self.markets.values() if m.category is category]

    def get_market(self, market_id):
        self._record("get_market", market_id)
        if market_id not in self.markets:
            raise NetworkError("Market not found", status_code=404)
        return self.markets[market_id]

    def lock_market(self, market_id):
        self._record("lock_market", market_id)
        market = self.markets[market_id].model_copy(update={"is_locked": True})
        self.markets[market_id] = market
        return market

    def resolve_market(self, market_id, outcome):
        self._record("resolve_market", market_id, outcome)
        market = self.markets[market_id]
        if market.outcome is not None:
            raise NetworkError("Market already resolved", status_code=400)
        self.markets[market_id] = market.model_copy(update={"outcome": outcome})
        settled = []
        for bet in self.bets:
            if bet.market_id != market_id:
                settled.append(bet)
                continue
            won = bet.outcome_chosen is outcome
            settled.append(bet.model_copy(update={"status": BetStatus.WON if won else BetStatus.LOST}))
            if won:
                self.transactions.append(
                    Transaction(id=len(self.transactions) + 1, type=TransactionType.BET_WON,
                                amount=payout_at(bet.amount, bet.odds), userId=bet.user_id)
                )
        self.bets = settled

    def place_bet(self, market_id, outcome, stake):
        self._record("place_bet", market_id, outcome, stake)
        user = self._current()
        market = self.markets[market_id]
        odds = market.odds_yes if outcome.value == "YES" else market.odds_no
        odds = odds or Decimal("2.00")
        self.bets.append(
            Bet(id=len(self.bets) + 1, userId=user.id, marketId=market_id,
                outcome_chosen=outcome, amount=stake, odds=odds)
        )
        token = self.token_provider()
        self.users[token] = user.model_copy(update={"balance": user.balance - stake})
        # Money on YES shortens YES odds
        new_yes, new_no = (odds - Decimal("0.10"), (market.odds_no or Decimal("2.00")) + Decimal("0.10"))
        if outcome.value == "NO":
            new_yes, new_no = (market.odds_yes or Decimal("2.00")) + Decimal("0.10"), odds - Decimal("0.10")
        self.markets[market_id] = market.model_copy(update={"odds_yes": new_yes, "odds_no": new_no})
        return PlaceBetResult(
            message="Bet placed successfully",
            bet={"amount": stake, "outcome_chosen": outcome, "odds": odds},
            updatedMarketOdds=MarketOdds(oddsYes=new_yes, oddsNo=new_no),
        )

    def list_market_bets(self, market_id):
        self._record("list_market_bets", market_id)
        return [bet for bet in self.bets if bet.market_id == market_id]

    def list_user_bets(self):
        self._record("list_user_bets")
        user = self._current()
        return [bet for bet in self.bets if bet.user_id == user.id]

    def list_transactions(self):
        self._record("list_transactions")
        user = self._current()
        return [tx for tx in self.transactions if tx.user_id == user.id]

    def leaderboard(self):
        self._record("leaderboard")
        return [LeaderboardEntry(userId=1, email="trader@example.com", totalWinnings=2400)]

    def create_market(self, draft):
        self._record("create_market", draft.title)
        market_id = max(self.markets, default=0) + 1
        return self.add_market(
            make_market(market_id, title=draft.title, description=draft.description,
                        end_time=draft.end_time, catagory=draft.category.value,
                        Oddsyes=None, Oddsno=None)
        )

    def network_calls(self, name=None):
        return [c for c in self.calls if name is None or c[0] == name]


@pytest.fixture
def service():
    return FakeService()


@pytest.fixture
def store():
    return MemoryTokenStore()


@pytest.fixture
def paisa(service, store, tmp_path):
    settings = Settings(db_path=str(tmp_path / "paisa.db"), stop_file=str(tmp_path / "stop"))
    return build_app(settings, store=store, client=service)


@pytest.fixture
def trader(paisa, store):
    store.save_token("token-trader")
    paisa.session.init()
    return paisa


@pytest.fixture
def admin(paisa, store):
    store.save_token("token-admin")
    paisa.session.init()
    return paisa
