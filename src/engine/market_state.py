from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_FLOOR, Decimal
from typing import Optional

from src.models.errors import ValidationError, ValidationErrorKind
from src.models.schemas import Market, MarketStatus, Outcome

DEFAULT_ODDS = Decimal("2.00")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def _derive(market: Market, expired: bool) -> MarketStatus:
    # Order matters: an outcome beats every flag, expiry counts as a lock.
    if market.outcome is not None:
        return MarketStatus.RESOLVED
    if market.is_locked or expired:
        return MarketStatus.LOCKED
    if market.is_open:
        return MarketStatus.ACTIVE
    return MarketStatus.CLOSED


def status(market: Market, now: datetime) -> MarketStatus:
    """Display status of a market at ``now``."""
    return _derive(market, expired=market.end_time <= _aware(now))


def lifecycle_status(market: Market) -> MarketStatus:
    """Status from the service-owned flags alone, ignoring the clock.

    Anything that moves money is gated on this rather than on ``status`` so
    that a local clock can never trigger a transition.
    """
    return _derive(market, expired=False)


def tradable(market: Market, now: datetime) -> bool:
    return (
        market.is_open
        and not market.is_locked
        and market.end_time > _aware(now)
        and market.outcome is None
    )


def odds_for(market: Market, outcome: Outcome) -> Decimal:
    """Odds shown for ``outcome``; 2.00 until the service publishes live odds."""
    odds = market.odds_yes if Outcome(outcome) is Outcome.YES else market.odds_no
    return DEFAULT_ODDS if odds is None else odds


def payout_at(stake: int, odds: Decimal) -> int:
    """floor(stake * odds) in minor units. The only rounding point for payouts."""
    return int((Decimal(stake) * odds).to_integral_value(rounding=ROUND_FLOOR))


def projected_payout(stake: int, outcome: Outcome, market: Market) -> int:
    return payout_at(stake, odds_for(market, outcome))


def projected_profit(stake: int, outcome: Outcome, market: Market) -> int:
    return projected_payout(stake, outcome, market) - stake


def validate_wager(market: Market, stake: int, balance: int, now: Optional[datetime] = None) -> None:
    """Reject a wager the service would refuse anyway, without calling it."""
    now = now or utcnow()
    if isinstance(stake, bool) or not isinstance(stake, int) or stake < 1:
        raise ValidationError(ValidationErrorKind.BELOW_MINIMUM, f"Stake must be a positive whole amount, got {stake!r}")
    if stake > balance:
        raise ValidationError(
            ValidationErrorKind.INSUFFICIENT_BALANCE,
            f"Stake {stake} exceeds available balance {balance}",
        )
    if not tradable(market, now):
        raise ValidationError(
            ValidationErrorKind.MARKET_NOT_TRADABLE,
            f"Market {market.id} is {status(market, now).value} and not accepting wagers",
        )


@dataclass(frozen=True)
class WagerQuote:
    market_id: int
    outcome: Outcome
    stake: int
    odds: Decimal
    payout: int

    @property
    def profit(self) -> int:
        return self.payout - self.stake


def quote(market: Market, outcome: Outcome, stake: int) -> WagerQuote:
    odds = odds_for(market, outcome)
    return WagerQuote(
        market_id=market.id,
        outcome=Outcome(outcome),
        stake=stake,
        odds=odds,
        payout=payout_at(stake, odds),
    )
