# tickerdeck/hotkeys/session.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Callable, Optional, Union

from tickerdeck.hotkeys.interpreter import (
    DEFAULT_CONFIG,
    InterpreterConfig,
    fire_timer,
    process_key,
)
from tickerdeck.hotkeys.keys import KeyKind
from tickerdeck.hotkeys.models import (
    CancelTimer,
    ChangeShares,
    DisableTemporary,
    Effect,
    ExecuteBuy,
    ExecuteSell,
    HotkeyState,
    ScheduleTimer,
    SelectTicker,
    TimerDomain,
    Transition,
    check_invariants,
    initial_state,
)
from tickerdeck.hotkeys.scheduler import DebounceScheduler

log = logging.getLogger("tickerdeck.session")


@dataclass
class HotkeyEffects:
    on_buy: Callable[[int], None]
    on_sell: Callable[[int], None]
    on_ticker_change: Callable[[int], None]
    on_share_change: Callable[[int], None]
    on_disable_temporary: Callable[[], None]


class KeyTarget(str, Enum):
    DOCUMENT = "document"
    TEXT_INPUT = "text_input"
    SHARE_INPUT = "share_input"


@dataclass(frozen=True)
class KeyEvent:
    key: str
    target: KeyTarget = KeyTarget.DOCUMENT


SHARE_FIELD_KINDS = {KeyKind.DIGIT, KeyKind.CONFIRM, KeyKind.CANCEL}


class HotkeySession:
    """
    Owns the live HotkeyState for one operator.

    Keys and timer fires both run the pure interpreter against the latest
    state held here; the session then executes timer commands and calls the
    effect callbacks. Everything runs on the caller's (single) event loop.
    """

    def __init__(
        self,
        effects: HotkeyEffects,
        scheduler: DebounceScheduler,
        total_tickers: Union[int, Callable[[], int]] = 0,
        config: InterpreterConfig = DEFAULT_CONFIG,
        state: Optional[HotkeyState] = None,
    ):
        self.effects = effects
        self.scheduler = scheduler
        self.config = config
        self._total_tickers = total_tickers
        self._state = state or initial_state()

    @property
    def state(self) -> HotkeyState:
        return self._state

    def total_tickers(self) -> int:
        if callable(self._total_tickers):
            return int(self._total_tickers())
        return int(self._total_tickers)

    # -------------------------
    # Input
    # -------------------------
    def press(self, key: str) -> HotkeyState:
        transition = process_key(key, self._state, self.total_tickers(), self.config)
        if transition.state is not self._state or transition.effects:
            log.debug("key=%r -> effects=%s", key, transition.effects)
        self._apply(transition)
        return self._state

    def should_forward(self, event: KeyEvent) -> bool:
        if event.target == KeyTarget.DOCUMENT:
            return True
        if event.target != KeyTarget.SHARE_INPUT:
            return False
        if not self._state.is_changing_shares:
            return False
        return self.config.bindings.classify(event.key) in SHARE_FIELD_KINDS

    def handle_event(self, event: KeyEvent) -> bool:
        """Returns True when the event reached the interpreter."""
        if not self.should_forward(event):
            return False
        self.press(event.key)
        return True

    def reset(self) -> None:
        self.scheduler.cancel_all()
        self._state = initial_state()

    # -------------------------
    # Timers + effects
    # -------------------------
    def _on_timer(self, domain: TimerDomain, token: Optional[int]) -> None:
        self._apply(fire_timer(domain, self._state, token))

    def _apply(self, transition: Transition) -> None:
        self._state = transition.state

        violations = check_invariants(self._state)
        if violations:
            log.warning("hotkey state invariants violated: %s", violations)

        for cmd in transition.timers:
            if isinstance(cmd, CancelTimer):
                self.scheduler.cancel(cmd.domain)
            elif isinstance(cmd, ScheduleTimer):
                self.scheduler.schedule(
                    cmd.domain, cmd.delay_ms, partial(self._on_timer, cmd.domain, cmd.token)
                )

        for effect in transition.effects:
            self._dispatch(effect)

    def _dispatch(self, effect: Effect) -> None:
        if isinstance(effect, ExecuteBuy):
            self.effects.on_buy(effect.quantity)
        elif isinstance(effect, ExecuteSell):
            self.effects.on_sell(effect.quantity)
        elif isinstance(effect, SelectTicker):
            self.effects.on_ticker_change(effect.index)
        elif isinstance(effect, ChangeShares):
            self.effects.on_share_change(effect.amount)
        elif isinstance(effect, DisableTemporary):
            self.effects.on_disable_temporary()
