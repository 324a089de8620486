from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

import schedule

from src.api.paisa_client import PaisaClient
from src.config import Settings, configure_logging
from src.data.token_store import SQLiteTokenStore, TokenStore
from src.engine.market_state import utcnow
from src.engine.portfolio import status_counts
from src.execution.settlement import SettlementWorkflow
from src.execution.wager_desk import WagerDesk
from src.models.errors import PredictError
from src.models.schemas import MarketStatus
from src.session.manager import SessionManager

logger = logging.getLogger(__name__)


@dataclass
class App:
    settings: Settings
    store: TokenStore
    client: PaisaClient
    session: SessionManager
    desk: WagerDesk
    settlement: SettlementWorkflow

    def close(self) -> None:
        self.store.close()


def build_app(settings: Settings, store: Optional[TokenStore] = None, client: Optional[PaisaClient] = None) -> App:
    store = store or SQLiteTokenStore(settings.db_path)
    client = client or PaisaClient(base_url=settings.api_url, timeout=settings.timeout)
    session = SessionManager(client, store)
    return App(
        settings=settings,
        store=store,
        client=client,
        session=session,
        desk=WagerDesk(client, session),
        settlement=SettlementWorkflow(client),
    )


def run_one_cycle(app: App, now: Optional[datetime] = None) -> Optional[Dict[MarketStatus, int]]:
    """Refresh the market board once and log the status counts."""
    if os.path.exists(app.settings.stop_file):
        logger.warning("Stop file %s present; skipping refresh", app.settings.stop_file)
        return None

    try:
        markets = app.client.list_markets()
    except PredictError as exc:
        logger.error("Market board refresh failed: %s", exc)
        return None

    counts = status_counts(markets, now or utcnow())
    logger.info(
        "Board: %d markets (%d active, %d locked, %d resolved, %d closed)",
        len(markets),
        counts[MarketStatus.ACTIVE],
        counts[MarketStatus.LOCKED],
        counts[MarketStatus.RESOLVED],
        counts[MarketStatus.CLOSED],
    )
    return counts


def watch(app: App) -> None:
    minutes = app.settings.watch_minutes
    logger.info("Watching market board (every %d minutes)", minutes)
    schedule.every(minutes).minutes.do(run_one_cycle, app=app)
    run_one_cycle(app)
    while not os.path.exists(app.settings.stop_file):  # pragma: no cover - runtime path
        schedule.run_pending()
        time.sleep(1)
    schedule.clear()


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings)
    app = build_app(settings)
    try:
        app.session.init()
        watch(app)
    finally:
        app.close()


if __name__ == "__main__":
    main()
