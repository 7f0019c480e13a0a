from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional


# =========================
# Time helpers
# =========================
def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# =========================
# Database class
# =========================
class DB:
    """
    SQLite file holding the desk's trade history (`trade_logs`, one row per
    executed or failed order) and its audit trail (`events`).
    Path defaults to settings.DB_PATH.
    """

    def __init__(self, path: Optional[str] = None):
        if path is None:
            from tickerdeck.core.config import settings

            path = settings.DB_PATH
        self.path = path

        folder = os.path.dirname(self.path)
        if folder:
            os.makedirs(folder, exist_ok=True)

        self._init()

    # -------------------------
    # Connection manager
    # -------------------------
    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.path, timeout=30, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    # -------------------------
    # Init / migrations
    # -------------------------
    def _init(self) -> None:
        conn = sqlite3.connect(self.path, timeout=30)
        try:
            # =========================
            # Executed trades (one row per order)
            # =========================
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS trade_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp_utc TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    action TEXT NOT NULL,               -- buy/sell
                    ticker TEXT NOT NULL,
                    shares INTEGER NOT NULL,
                    quantity INTEGER NOT NULL,
                    success INTEGER NOT NULL,
                    error TEXT,
                    message_id TEXT
                )
                """
            )

            # =========================
            # Events (desk audit log)
            # =========================
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp_utc TEXT NOT NULL,
                    user_id TEXT,
                    message_id TEXT,
                    event_type TEXT NOT NULL,
                    action TEXT,
                    details_json TEXT
                )
                """
            )

            # =========================
            # Indexes
            # =========================
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_trade_logs_time ON trade_logs(timestamp_utc)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_trade_logs_user ON trade_logs(user_id)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_events_time ON events(timestamp_utc)"
            )

            conn.commit()

        finally:
            conn.close()
