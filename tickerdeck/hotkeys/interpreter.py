# tickerdeck/hotkeys/interpreter.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

from tickerdeck.hotkeys.keys import KeyBindings, KeyKind
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
    TimerCommand,
    TimerDomain,
    Transition,
)
from tickerdeck.hotkeys.resolution import parse_share_amount, parse_ticker, resolve_digit


@dataclass(frozen=True)
class InterpreterConfig:
    bindings: KeyBindings = field(default_factory=KeyBindings)
    trade_debounce_ms: int = 100
    ticker_buffer_timeout_ms: int = 1500
    disable_window_ms: int = 500

    @classmethod
    def from_settings(cls, s) -> "InterpreterConfig":
        return cls(
            bindings=KeyBindings.from_names(
                buy=s.BUY_KEYS,
                sell=s.SELL_KEYS,
                change=s.CHANGE_KEYS,
                confirm=s.CONFIRM_KEYS,
                cancel=s.CANCEL_KEYS,
            ),
            trade_debounce_ms=int(s.TRADE_DEBOUNCE_MS),
            ticker_buffer_timeout_ms=int(s.TICKER_BUFFER_TIMEOUT_MS),
            disable_window_ms=int(s.DISABLE_WINDOW_MS),
        )


DEFAULT_CONFIG = InterpreterConfig()


# --------------------------- Helpers ---------------------------


def _clear_number_buffer(state: HotkeyState) -> Tuple[HotkeyState, List[TimerCommand]]:
    timers: List[TimerCommand] = []
    if state.number_buffer_timer is not None:
        timers.append(CancelTimer(TimerDomain.NUMBER_BUFFER))
    return replace(state, number_buffer="", number_buffer_timer=None), timers


def _reset_trade_counters(state: HotkeyState) -> Tuple[HotkeyState, List[TimerCommand]]:
    timers: List[TimerCommand] = []
    if state.buy_count > 0:
        timers.append(CancelTimer(TimerDomain.BUY))
    if state.sell_count > 0:
        timers.append(CancelTimer(TimerDomain.SELL))
    return replace(state, buy_count=0, sell_count=0), timers


def _arm_number_buffer(
    state: HotkeyState, buffer: str, cfg: InterpreterConfig
) -> Tuple[HotkeyState, ScheduleTimer]:
    token = state.next_timer_token
    st = replace(
        state,
        number_buffer=buffer,
        number_buffer_timer=token,
        next_timer_token=token + 1,
    )
    return st, ScheduleTimer(TimerDomain.NUMBER_BUFFER, cfg.ticker_buffer_timeout_ms, token)


# --------------------------- Key handlers ---------------------------


def _on_trade_key(state: HotkeyState, side: str, cfg: InterpreterConfig) -> Transition:
    # buy/sell are inert while the share amount is being edited
    if state.is_changing_shares:
        return Transition(state)

    timers: List[TimerCommand] = []
    if side == "buy":
        if state.sell_count > 0:
            timers.append(CancelTimer(TimerDomain.SELL))
        st = replace(state, buy_count=state.buy_count + 1, sell_count=0)
        domain = TimerDomain.BUY
    else:
        if state.buy_count > 0:
            timers.append(CancelTimer(TimerDomain.BUY))
        st = replace(state, sell_count=state.sell_count + 1, buy_count=0)
        domain = TimerDomain.SELL

    st, cleared = _clear_number_buffer(st)
    timers.extend(cleared)
    timers.append(CancelTimer(domain))
    timers.append(ScheduleTimer(domain, cfg.trade_debounce_ms))
    return Transition(st, (), tuple(timers))


def _on_change_key(state: HotkeyState) -> Transition:
    st, timers = _reset_trade_counters(state)
    st, cleared = _clear_number_buffer(st)
    timers.extend(cleared)
    st = replace(st, is_changing_shares=True, share_change_buffer="")
    return Transition(st, (), tuple(timers))


def _on_confirm_key(state: HotkeyState, total_tickers: int) -> Transition:
    if state.is_changing_shares:
        if not state.share_change_buffer:
            return Transition(state)
        amount = parse_share_amount(state.share_change_buffer)
        effects: Tuple[Effect, ...] = (ChangeShares(amount),) if amount is not None else ()
        st = replace(state, is_changing_shares=False, share_change_buffer="")
        return Transition(st, effects)

    if state.number_buffer:
        selected = parse_ticker(state.number_buffer, total_tickers)
        effects = (SelectTicker(selected),) if selected is not None else ()
        st, timers = _clear_number_buffer(state)
        return Transition(st, effects, tuple(timers))

    return Transition(state)


def _on_cancel_key(state: HotkeyState, cfg: InterpreterConfig) -> Transition:
    if state.is_changing_shares:
        return Transition(replace(state, share_change_buffer=state.share_change_buffer[:-1]))

    if state.number_buffer:
        remaining = state.number_buffer[:-1]
        st, timers = _clear_number_buffer(state)
        if remaining:
            st, arm = _arm_number_buffer(st, remaining, cfg)
            timers.append(arm)
        return Transition(st, (), tuple(timers))

    st = replace(state, disabled=True)
    return Transition(
        st,
        (DisableTemporary(),),
        (CancelTimer(TimerDomain.DISABLE), ScheduleTimer(TimerDomain.DISABLE, cfg.disable_window_ms)),
    )


def _on_digit_key(
    state: HotkeyState, digit: str, total_tickers: int, cfg: InterpreterConfig
) -> Transition:
    if state.is_changing_shares:
        return Transition(replace(state, share_change_buffer=state.share_change_buffer + digit))

    # no active message -> nothing to select
    if total_tickers <= 0:
        return Transition(state)

    st, timers = _reset_trade_counters(state)
    buffer, selected = resolve_digit(state.number_buffer, digit, total_tickers)
    st, cleared = _clear_number_buffer(st)
    timers.extend(cleared)

    if selected is None:
        return Transition(st, (), tuple(timers))

    st, arm = _arm_number_buffer(st, buffer, cfg)
    timers.append(arm)
    return Transition(st, (SelectTicker(selected),), tuple(timers))


# --------------------------- Public API ---------------------------


def process_key(
    key: str,
    state: HotkeyState,
    total_tickers: int,
    cfg: InterpreterConfig = DEFAULT_CONFIG,
) -> Transition:
    """
    Route one raw key event.

    Host should:
      - keep the returned state as the live state
      - execute the timer commands (cancel before schedule, in order)
      - dispatch the effects to its callbacks, in order
    A disabled state is returned untouched with no effects and no timers.
    """
    if state.disabled:
        return Transition(state)

    kind = cfg.bindings.classify(key)

    if kind == KeyKind.BUY:
        return _on_trade_key(state, "buy", cfg)
    if kind == KeyKind.SELL:
        return _on_trade_key(state, "sell", cfg)
    if kind == KeyKind.CHANGE:
        return _on_change_key(state)
    if kind == KeyKind.CONFIRM:
        return _on_confirm_key(state, total_tickers)
    if kind == KeyKind.CANCEL:
        return _on_cancel_key(state, cfg)
    if kind == KeyKind.DIGIT:
        return _on_digit_key(state, key, total_tickers, cfg)

    return Transition(state)


def fire_timer(
    domain: TimerDomain, state: HotkeyState, token: Optional[int] = None
) -> Transition:
    """
    Apply a fired timer to the *live* state.

    Flushes act only if their counter is still non-zero; a number-buffer
    expiry whose token no longer matches the state is stale and ignored.
    Buffer expiry only clears the buffer: the selection was already applied
    when each digit landed.
    """
    if domain == TimerDomain.BUY:
        if state.buy_count <= 0:
            return Transition(state)
        return Transition(replace(state, buy_count=0), (ExecuteBuy(state.buy_count),))

    if domain == TimerDomain.SELL:
        if state.sell_count <= 0:
            return Transition(state)
        return Transition(replace(state, sell_count=0), (ExecuteSell(state.sell_count),))

    if domain == TimerDomain.NUMBER_BUFFER:
        if token is not None and token != state.number_buffer_timer:
            return Transition(state)
        if not state.number_buffer and state.number_buffer_timer is None:
            return Transition(state)
        return Transition(replace(state, number_buffer="", number_buffer_timer=None))

    if domain == TimerDomain.DISABLE:
        if not state.disabled:
            return Transition(state)
        return Transition(replace(state, disabled=False))

    return Transition(state)
