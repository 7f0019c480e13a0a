# tickerdeck/trading/executor.py
from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, List

from tickerdeck.persistence.db import utc_now_iso
from tickerdeck.persistence.trade_log import TradeLogStore
from tickerdeck.trading.models import TradeResponse, TradingAction, TradingLog

log = logging.getLogger("tickerdeck.executor")

ACTIONS = {"buy", "sell"}


class TradeExecutor:
    """
    Executes a TradingAction as `quantity` separate orders.
    Every order is written to the trade log with quantity=1; a storage
    failure is recorded as one failed row covering the whole action.
    """

    def __init__(self, trade_log: TradeLogStore):
        self.trade_log = trade_log

    def execute(self, action: TradingAction, user_id: str) -> TradeResponse:
        if (
            action.action not in ACTIONS
            or not action.ticker
            or not action.shares
            or not action.quantity
        ):
            return TradeResponse(
                success=False,
                message="Invalid trading action",
                error="Missing required fields",
            )

        orders: List[Dict[str, Any]] = []
        try:
            for i in range(int(action.quantity)):
                self.trade_log.record(
                    TradingLog(
                        timestamp=utc_now_iso(),
                        user_id=user_id,
                        action=action.action,
                        ticker=action.ticker,
                        shares=int(action.shares),
                        quantity=1,
                        success=True,
                        message_id=action.message_id,
                    )
                )
                orders.append(
                    {
                        "order_number": i + 1,
                        "action": action.action,
                        "ticker": action.ticker,
                        "shares": int(action.shares),
                    }
                )
        except sqlite3.Error as e:
            log.error("trade %s %s failed: %s", action.action, action.ticker, e)
            self._record_failure(action, user_id, str(e))
            return TradeResponse(
                success=False,
                message="Trading action failed",
                action=action.action,
                ticker=action.ticker,
                shares=int(action.shares),
                quantity=int(action.quantity),
                error=str(e),
                orders=orders,
            )

        log.info(
            "%s %sx %s shares of %s",
            action.action.upper(),
            action.quantity,
            action.shares,
            action.ticker,
        )
        return TradeResponse(
            success=True,
            message=(
                f"{action.action.upper()} order executed: "
                f"{action.quantity}x {action.shares} shares of {action.ticker}"
            ),
            action=action.action,
            ticker=action.ticker,
            shares=int(action.shares),
            quantity=int(action.quantity),
            timestamp=utc_now_iso(),
            orders=orders,
        )

    def _record_failure(self, action: TradingAction, user_id: str, error: str) -> None:
        try:
            self.trade_log.record(
                TradingLog(
                    timestamp=utc_now_iso(),
                    user_id=user_id,
                    action=action.action,
                    ticker=action.ticker,
                    shares=int(action.shares),
                    quantity=int(action.quantity),
                    success=False,
                    error=error,
                    message_id=action.message_id,
                )
            )
        except sqlite3.Error as e:
            log.error("could not record failed trade: %s", e)
