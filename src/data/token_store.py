from __future__ import annotations

import logging
import os
import sqlite3
import time
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"


class TokenStore:
    """Durable home of the session token. Subclasses pick the medium."""

    def load_token(self) -> Optional[str]:
        raise NotImplementedError

    def save_token(self, token: str) -> None:
        raise NotImplementedError

    def clear_token(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class MemoryTokenStore(TokenStore):
    """Process-local store; nothing survives a restart."""

    def __init__(self, token: Optional[str] = None) -> None:
        self.token = token

    def load_token(self) -> Optional[str]:
        return self.token

    def save_token(self, token: str) -> None:
        self.token = token

    def clear_token(self) -> None:
        self.token = None


class SQLiteTokenStore(TokenStore):
    """Lightweight SQLite persistence for client session state."""

    def __init__(self, db_path: str = "data/paisa.db") -> None:
        self.db_path = db_path
        Path(os.path.dirname(self.db_path) or ".").mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path)
        self._create_tables()

    def _create_tables(self) -> None:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS session (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at INTEGER NOT NULL
            )
            """
        )
        self.conn.commit()

    def load_token(self) -> Optional[str]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM session WHERE key = ?", (TOKEN_KEY,))
        row = cursor.fetchone()
        if row is None:
            return None
        (token,) = row
        return token

    def save_token(self, token: str) -> None:
        ts_ms = int(time.time() * 1000)
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO session (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value=excluded.value,
                updated_at=excluded.updated_at
            """,
            (TOKEN_KEY, token, ts_ms),
        )
        self.conn.commit()
        logger.debug("Session token stored in %s", self.db_path)

    def clear_token(self) -> None:
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM session WHERE key = ?", (TOKEN_KEY,))
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()
