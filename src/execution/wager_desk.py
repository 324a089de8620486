from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from src.api.paisa_client import PaisaClient
from src.engine.market_state import WagerQuote, quote, utcnow, validate_wager
from src.models.errors import PredictError, ValidationError
from src.models.schemas import Market, MarketOdds, Outcome, PlaceBetResult, User
from src.session.manager import SessionManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WagerReceipt:
    result: PlaceBetResult
    market: Optional[Market]
    user: Optional[User]

    @property
    def updated_odds(self) -> Optional[MarketOdds]:
        return self.result.updated_odds


WagerLog = Tuple[WagerQuote, str]


class WagerDesk:
    """Check a wager locally, send it, then reload balance and market.

    The reloads run strictly after the placement call returns so the fresh
    snapshot always includes the wager just placed. Nothing is retried: a
    failed placement may or may not have reached the service, and only the
    trader can decide to send it again.
    """

    def __init__(self, client: PaisaClient, session: SessionManager) -> None:
        self.client = client
        self.session = session
        self.history: List[WagerLog] = []

    def place(
        self,
        market: Market,
        outcome: Outcome,
        stake: int,
        now: Optional[datetime] = None,
    ) -> WagerReceipt:
        """Place a wager against the snapshot the trader is looking at."""
        user = self.session.require_user()
        ticket = quote(market, outcome, stake) if isinstance(stake, int) else None

        try:
            validate_wager(market, stake, user.balance, now or utcnow())
        except ValidationError as exc:
            if ticket is not None:
                self.history.append((ticket, f"rejected:{exc.kind.value}"))
            logger.info("Wager on market %s rejected locally: %s", market.id, exc.message)
            raise

        try:
            result = self.client.place_bet(market.id, outcome, stake)
        except PredictError:
            self.history.append((ticket, "failed"))
            raise

        self.history.append((ticket, "placed"))
        logger.info(
            "Placed %s wager of %d on market %s at %sx",
            result.bet.outcome_chosen.value,
            result.bet.amount,
            market.id,
            result.bet.odds,
        )

        # The wager stands from here on; a failed reload must not read as a failed placement.
        refreshed_user = self.session.refresh_user()
        try:
            refreshed_market: Optional[Market] = self.client.get_market(market.id)
        except PredictError as exc:
            logger.warning("Wager on market %s placed but market reload failed: %s", market.id, exc)
            refreshed_market = None
        return WagerReceipt(result=result, market=refreshed_market, user=refreshed_user)
