from __future__ import annotations

import csv
import io
from typing import Any, Dict, List, Optional, Tuple

from tickerdeck.persistence.db import DB
from tickerdeck.trading.models import TradingLog

# sortable column -> SQL column
SORT_COLUMNS = {
    "timestamp": "timestamp_utc",
    "action": "action",
    "ticker": "ticker",
    "shares": "shares",
    "quantity": "quantity",
}

CSV_HEADERS = ["Timestamp", "Action", "Ticker", "Shares", "Quantity", "Success", "Error"]


def _where(
    user_id: Optional[str],
    start: Optional[str],
    end: Optional[str],
    ticker: Optional[str],
    action: Optional[str],
) -> Tuple[str, list]:
    where: List[str] = []
    params: list = []

    if user_id:
        where.append("user_id = ?")
        params.append(user_id)
    if start:
        where.append("timestamp_utc >= ?")
        params.append(start)
    if end:
        where.append("timestamp_utc <= ?")
        params.append(end)
    if ticker:
        where.append("LOWER(ticker) = LOWER(?)")
        params.append(ticker)
    if action:
        where.append("action = ?")
        params.append(action)

    if not where:
        return "", params
    return " WHERE " + " AND ".join(where), params


class TradeLogStore:
    """Append-only history of executed (and failed) orders."""

    def __init__(self, db: DB):
        self.db = db

    def record(self, entry: TradingLog) -> None:
        with self.db.connect() as conn:
            conn.execute(
                """
                INSERT INTO trade_logs(timestamp_utc, user_id, action, ticker, shares, quantity, success, error, message_id)
                VALUES (?,?,?,?,?,?,?,?,?)
                """,
                (
                    entry.timestamp,
                    entry.user_id,
                    entry.action,
                    entry.ticker,
                    int(entry.shares),
                    int(entry.quantity),
                    1 if entry.success else 0,
                    entry.error,
                    entry.message_id,
                ),
            )

    def query(
        self,
        user_id: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
        ticker: Optional[str] = None,
        action: Optional[str] = None,
        limit: Optional[int] = None,
        sort: str = "timestamp",
        order: str = "desc",
    ) -> List[TradingLog]:
        """
        Filters are combined with AND; timestamps compare as ISO strings.
        Ticker match is case-insensitive. Default order is newest first;
        `sort` must be one of SORT_COLUMNS and `order` asc or desc.
        """
        column = SORT_COLUMNS.get(sort)
        if column is None:
            raise ValueError(f"Unknown sort column: {sort}")
        direction = (order or "").upper()
        if direction not in ("ASC", "DESC"):
            raise ValueError(f"Unknown sort order: {order}")

        clause, params = _where(user_id, start, end, ticker, action)
        sql = "SELECT * FROM trade_logs" + clause
        # id keeps rows with equal sort keys in insertion order
        sql += f" ORDER BY {column} {direction}, id {direction}"
        if limit:
            sql += " LIMIT ?"
            params.append(int(limit))

        with self.db.connect() as conn:
            rows = conn.execute(sql, params).fetchall()

        return [
            TradingLog(
                timestamp=r["timestamp_utc"],
                user_id=r["user_id"],
                action=r["action"],
                ticker=r["ticker"],
                shares=int(r["shares"]),
                quantity=int(r["quantity"]),
                success=bool(r["success"]),
                error=r["error"],
                message_id=r["message_id"],
            )
            for r in rows
        ]

    def stats(
        self,
        user_id: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
        ticker: Optional[str] = None,
        action: Optional[str] = None,
    ) -> Dict[str, Any]:
        clause, params = _where(user_id, start, end, ticker, action)
        sql = (
            "SELECT COUNT(*) AS total,"
            " COALESCE(SUM(success), 0) AS ok,"
            " COALESCE(SUM(CASE WHEN action = 'buy' THEN 1 ELSE 0 END), 0) AS buys,"
            " COALESCE(SUM(CASE WHEN action = 'sell' THEN 1 ELSE 0 END), 0) AS sells"
            " FROM trade_logs" + clause
        )
        with self.db.connect() as conn:
            row = conn.execute(sql, params).fetchone()

        total = int(row["total"])
        ok = int(row["ok"])
        return {
            "total_trades": total,
            "successful_trades": ok,
            "buy_trades": int(row["buys"]),
            "sell_trades": int(row["sells"]),
            "success_rate": round(ok * 100.0 / total, 1) if total else 0.0,
        }


def to_csv(logs: List[TradingLog]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for entry in logs:
        writer.writerow(
            [
                entry.timestamp,
                entry.action,
                entry.ticker,
                entry.shares,
                entry.quantity,
                "true" if entry.success else "false",
                entry.error or "",
            ]
        )
    return buf.getvalue()
