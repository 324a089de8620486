from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from src.api.paisa_client import DEFAULT_API_URL

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    db_path: str = "data/paisa.db"
    timeout: float = 10.0
    log_level: str = "INFO"
    watch_minutes: int = 5
    stop_file: str = "data/stop.watching"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_url=os.getenv("PAISA_API_URL", DEFAULT_API_URL),
            db_path=os.getenv("PAISA_DB_PATH", "data/paisa.db"),
            timeout=float(os.getenv("PAISA_TIMEOUT", "10")),
            log_level=os.getenv("PAISA_LOG_LEVEL", "INFO").upper(),
            watch_minutes=int(os.getenv("PAISA_WATCH_MINUTES", "5")),
            stop_file=os.getenv("PAISA_STOP_FILE", "data/stop.watching"),
        )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
    )
