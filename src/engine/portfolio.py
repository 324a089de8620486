from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_DOWN, Decimal
from typing import Dict, Iterable, List, Optional, Sequence, TypeVar

from src.engine.market_state import status
from src.models.schemas import (
    Bet,
    BetStatus,
    Category,
    Market,
    MarketStatus,
    Transaction,
    TransactionType,
)

CURRENCY_SYMBOL = "₹"
MINOR_UNITS = 100

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

T = TypeVar("T")


def format_amount(minor_units: int, symbol: str = CURRENCY_SYMBOL) -> str:
    """Render an integer paise amount for display. Nothing else divides by 100."""
    major = (Decimal(abs(minor_units)) / MINOR_UNITS).quantize(Decimal("0.01"), rounding=ROUND_DOWN)
    sign = "-" if minor_units < 0 else ""
    return f"{sign}{symbol}{major:,.2f}"


@dataclass(frozen=True)
class BetStats:
    total_bets: int
    won: int
    lost: int
    pending: int
    win_rate: float  # percent of settled bets
    total_wagered: int
    total_winnings: int


def bet_stats(bets: Sequence[Bet], transactions: Iterable[Transaction]) -> BetStats:
    won = sum(1 for bet in bets if bet.status is BetStatus.WON)
    lost = sum(1 for bet in bets if bet.status is BetStatus.LOST)
    pending = sum(1 for bet in bets if bet.status is BetStatus.PENDING)
    settled = won + lost
    return BetStats(
        total_bets=len(bets),
        won=won,
        lost=lost,
        pending=pending,
        win_rate=(won / settled * 100) if settled else 0.0,
        total_wagered=sum(bet.amount for bet in bets),
        total_winnings=total_winnings(transactions),
    )


def total_winnings(transactions: Iterable[Transaction]) -> int:
    return sum(tx.amount for tx in transactions if tx.type is TransactionType.BET_WON)


def net_flow(transactions: Iterable[Transaction]) -> int:
    """Signed sum of ledger entries; credits positive, debits negative."""
    return sum(tx.signed_amount for tx in transactions)


def sort_newest_first(items: Iterable[T]) -> List[T]:
    return sorted(items, key=lambda item: item.created_at or _EPOCH, reverse=True)


def status_counts(markets: Iterable[Market], now: datetime) -> Dict[MarketStatus, int]:
    counts = {s: 0 for s in MarketStatus}
    for market in markets:
        counts[status(market, now)] += 1
    return counts


def filter_markets(
    markets: Iterable[Market],
    now: datetime,
    search: Optional[str] = None,
    category: Optional[Category] = None,
    market_status: Optional[MarketStatus] = None,
) -> List[Market]:
    """Board filter: text match on title/description, category, derived status."""
    needle = (search or "").strip().lower()
    selected = []
    for market in markets:
        if needle and needle not in market.title.lower() and needle not in market.description.lower():
            continue
        if category is not None and market.category is not Category(category):
            continue
        if market_status is not None and status(market, now) is not MarketStatus(market_status):
            continue
        selected.append(market)
    return selected
