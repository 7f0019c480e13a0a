from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from tickerdeck.persistence.db import DB, utc_now_iso


class EventLogger:
    """
    Minimal event logger that writes to the `events` table.
    """
    def __init__(self, db: DB):
        self.db = db

    def log(
        self,
        *,
        event_type: str,
        user_id: Optional[str] = None,
        message_id: Optional[str] = None,
        action: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        payload = json.dumps(details or {}, separators=(",", ":"), ensure_ascii=False)

        with self.db.connect() as conn:
            conn.execute(
                """
                INSERT INTO events (timestamp_utc, user_id, message_id, event_type, action, details_json)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (utc_now_iso(), user_id, message_id, event_type, action, payload),
            )

    def tail(self, limit: int = 50) -> List[Dict[str, Any]]:
        with self.db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM events ORDER BY id DESC LIMIT ?", (int(limit),)
            ).fetchall()

        out: List[Dict[str, Any]] = []
        for r in rows:
            item = dict(r)
            try:
                item["details"] = json.loads(item.pop("details_json") or "{}")
            except json.JSONDecodeError:
                item["details"] = {}
            out.append(item)
        return out
