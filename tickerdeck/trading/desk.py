# tickerdeck/trading/desk.py
from __future__ import annotations

import logging
import sqlite3
import time
from typing import Any, Callable, Dict, List, Optional

from tickerdeck.hotkeys.interpreter import DEFAULT_CONFIG, InterpreterConfig
from tickerdeck.hotkeys.models import to_dict
from tickerdeck.hotkeys.scheduler import DebounceScheduler
from tickerdeck.hotkeys.session import HotkeyEffects, HotkeySession, KeyEvent
from tickerdeck.persistence.db import utc_now_iso
from tickerdeck.persistence.logger import EventLogger
from tickerdeck.trading.executor import TradeExecutor
from tickerdeck.trading.models import TradeResponse, TradingAction, TradingMessage

log = logging.getLogger("tickerdeck.desk")


class TradingDesk:
    """
    Popup host around a HotkeySession.

    Holds the active market message, the selected ticker (1-based) and the
    per-trade share amount, and turns hotkey effects into executed trades.
    """

    def __init__(
        self,
        executor: TradeExecutor,
        scheduler: DebounceScheduler,
        user_id: str = "local",
        share_amount: int = 100,
        config: InterpreterConfig = DEFAULT_CONFIG,
        events: Optional[EventLogger] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.executor = executor
        self.user_id = user_id
        self.share_amount = int(share_amount)
        self.selected_ticker = 1
        self.message: Optional[TradingMessage] = None
        self._tickers: List[str] = []
        self.last_response: Optional[TradeResponse] = None
        self.events = events
        self._clock = clock
        self._shown_at: Optional[float] = None

        self.session = HotkeySession(
            HotkeyEffects(
                on_buy=self.on_buy,
                on_sell=self.on_sell,
                on_ticker_change=self.on_ticker_change,
                on_share_change=self.on_share_change,
                on_disable_temporary=self.dismiss,
            ),
            scheduler,
            total_tickers=self.total_tickers,
            config=config,
        )

    # -------------------------
    # Popup
    # -------------------------
    @property
    def tickers(self) -> List[str]:
        return list(self._tickers)

    def total_tickers(self) -> int:
        # hotkeys only act on an open popup
        return len(self._tickers) if self.message else 0

    def show_message(self, message: TradingMessage) -> bool:
        """
        Take the message's tickers and open the popup.
        Returns False when the message has no title or content; the tickers
        are still taken but no popup is shown.
        """
        if message.tickers:
            self._tickers = list(message.tickers)
            if self.selected_ticker > len(self._tickers):
                self.selected_ticker = 1

        if not message.has_text():
            log.info("message %s not shown: no title or content", message.id)
            return False

        self.message = message
        self._shown_at = self._clock()
        log.info("message %s from %s tickers=%s", message.id, message.sender, message.tickers)
        self._event("MESSAGE", details={"sender": message.sender, "tickers": message.tickers})
        return True

    def dismiss(self) -> None:
        if self.message is None:
            return
        self._event("DISMISS")
        self.message = None
        self._shown_at = None

    # -------------------------
    # Keyboard
    # -------------------------
    def press(self, key: str) -> Dict[str, Any]:
        self.session.press(key)
        return self.snapshot()

    def handle_event(self, event: KeyEvent) -> bool:
        return self.session.handle_event(event)

    # -------------------------
    # Hotkey effects
    # -------------------------
    def on_buy(self, quantity: int) -> None:
        self._trade("buy", quantity)

    def on_sell(self, quantity: int) -> None:
        self._trade("sell", quantity)

    def on_ticker_change(self, index: int) -> None:
        if 1 <= index <= self.total_tickers():
            self.selected_ticker = index
            self._event("TICKER", details={"index": index})

    def on_share_change(self, amount: int) -> None:
        if amount > 0:
            self.share_amount = int(amount)
            self._event("SHARES", details={"amount": amount})

    # -------------------------
    # Pointer equivalents
    # -------------------------
    def select_ticker(self, index: int) -> bool:
        # ticker buttons are disabled while the share amount is being edited
        if self.session.state.is_changing_shares:
            return False
        if not 1 <= index <= self.total_tickers():
            return False
        self.on_ticker_change(index)
        return True

    def set_share_amount(self, amount: int) -> bool:
        if amount <= 0:
            return False
        self.on_share_change(amount)
        return True

    # -------------------------
    # Internals
    # -------------------------
    def _trade(self, side: str, quantity: int) -> None:
        tickers = self.tickers
        if self.message is None or not tickers:
            log.info("%s x%s ignored: no active message", side, quantity)
            return

        index = self.selected_ticker - 1
        ticker = tickers[index] if 0 <= index < len(tickers) else tickers[0]
        timing_ms = None
        if self._shown_at is not None:
            timing_ms = int((self._clock() - self._shown_at) * 1000)

        action = TradingAction(
            action=side,
            ticker=ticker,
            shares=self.share_amount,
            quantity=int(quantity),
            timestamp=utc_now_iso(),
            message_id=self.message.id if self.message else None,
            timing_ms=timing_ms,
        )
        self.last_response = self.executor.execute(action, self.user_id)
        self._event(
            "TRADE",
            action=side,
            details={
                "ticker": ticker,
                "shares": self.share_amount,
                "quantity": quantity,
                "timing_ms": timing_ms,
                "success": self.last_response.success,
            },
        )

    def _event(self, event_type: str, action: Optional[str] = None, details: Optional[dict] = None) -> None:
        if self.events is None:
            return
        try:
            self.events.log(
                event_type=event_type,
                user_id=self.user_id,
                message_id=self.message.id if self.message else None,
                action=action,
                details=details,
            )
        except sqlite3.Error as e:
            log.error("event %s not stored: %s", event_type, e)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "hotkeys": to_dict(self.session.state),
            "selected_ticker": self.selected_ticker,
            "tickers": self.tickers,
            "ticker": self.tickers[self.selected_ticker - 1] if self.selected_ticker <= self.total_tickers() else None,
            "share_amount": self.share_amount,
            "message": None if self.message is None else {
                "id": self.message.id,
                "sender": self.message.sender,
                "name": self.message.name,
                "tickers": self.tickers,
                "text": self.message.notification_text(),
            },
            "last_response": self.last_response.to_dict() if self.last_response else None,
        }
