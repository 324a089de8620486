from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from src.api.paisa_client import PaisaClient
from src.engine.market_state import lifecycle_status, payout_at
from src.models.errors import InvalidTransition
from src.models.schemas import (
    Bet,
    Market,
    MarketDraft,
    MarketStatus,
    MarketUpdate,
    Outcome,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutcomeExposure:
    """What the ledger will owe if ``outcome`` wins."""

    outcome: Outcome
    bet_count: int
    total_staked: int
    total_payout: int


@dataclass(frozen=True)
class ResolutionPreview:
    market: Market
    bets: List[Bet]
    exposure: Dict[Outcome, OutcomeExposure] = field(default_factory=dict)

    @property
    def total_staked(self) -> int:
        return sum(e.total_staked for e in self.exposure.values())


def exposure_for(bets: List[Bet], outcome: Outcome) -> OutcomeExposure:
    # Each bet pays at the odds it was placed at, not the market's current odds.
    winners = [bet for bet in bets if bet.outcome_chosen is outcome]
    return OutcomeExposure(
        outcome=outcome,
        bet_count=len(winners),
        total_staked=sum(bet.amount for bet in winners),
        total_payout=sum(payout_at(bet.amount, bet.odds) for bet in winners),
    )


class SettlementWorkflow:
    """Administrative market transitions: lock, then resolve.

    Guards are evaluated on a freshly fetched snapshot using the service's
    own flags, and every successful call is followed by another fetch; no
    market is ever modified locally. Lock and resolve are separate calls on
    purpose and neither is retried.
    """

    def __init__(self, client: PaisaClient) -> None:
        self.client = client

    def _require(self, market_id: int, expected: MarketStatus, action: str) -> Market:
        market = self.client.get_market(market_id)
        current = lifecycle_status(market)
        if current is not expected:
            logger.warning("Refusing to %s market %s: status is %s", action, market_id, current.value)
            raise InvalidTransition(market_id, current.value, action)
        return market

    def lock(self, market_id: int) -> Market:
        """Lock an ACTIVE market.

        Only the service's flags are checked, so an expired but unlocked
        market can still be locked.
        """
        self._require(market_id, MarketStatus.ACTIVE, "lock")
        self.client.lock_market(market_id)
        logger.info("Market %s locked", market_id)
        return self.client.get_market(market_id)

    def review(self, market_id: int) -> ResolutionPreview:
        """Snapshot of a locked market and what each outcome would pay out."""
        market = self._require(market_id, MarketStatus.LOCKED, "review")
        bets = self.client.list_market_bets(market_id)
        return ResolutionPreview(
            market=market,
            bets=bets,
            exposure={outcome: exposure_for(bets, outcome) for outcome in Outcome},
        )

    def resolve(self, market_id: int, outcome: Outcome) -> Market:
        """Fix the winning outcome. Irreversible; settlement happens server-side."""
        outcome = Outcome(outcome)
        self._require(market_id, MarketStatus.LOCKED, "resolve")
        self.client.resolve_market(market_id, outcome)
        logger.info("Market %s resolved as %s", market_id, outcome.value)
        return self.client.get_market(market_id)

    def create_market(self, draft: MarketDraft) -> Market:
        market = self.client.create_market(draft)
        logger.info("Market %s created: %s", market.id, market.title)
        return market

    def update_market(self, market_id: int, update: MarketUpdate) -> Market:
        self._require(market_id, MarketStatus.ACTIVE, "update")
        return self.client.update_market(market_id, update)
