"""
tickerdeck/hotkeys/models.py

Value types shared by the hotkey interpreter and its host.

- HotkeyState is immutable; every transition returns a new instance
- Effects describe calls the host makes on its callbacks
- Timer commands describe what the host asks its scheduler to do
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union


class TimerDomain(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    NUMBER_BUFFER = "NUMBER_BUFFER"
    DISABLE = "DISABLE"


@dataclass(frozen=True)
class HotkeyState:
    buy_count: int = 0
    sell_count: int = 0
    number_buffer: str = ""
    is_changing_shares: bool = False
    share_change_buffer: str = ""
    disabled: bool = False
    # Opaque token of the pending number-buffer expiry timer (None = no timer).
    number_buffer_timer: Optional[int] = None
    next_timer_token: int = 1


def initial_state() -> HotkeyState:
    return HotkeyState()


# --------------------------- Effects ---------------------------


@dataclass(frozen=True)
class ExecuteBuy:
    quantity: int


@dataclass(frozen=True)
class ExecuteSell:
    quantity: int


@dataclass(frozen=True)
class SelectTicker:
    index: int  # 1-based


@dataclass(frozen=True)
class ChangeShares:
    amount: int


@dataclass(frozen=True)
class DisableTemporary:
    pass


Effect = Union[ExecuteBuy, ExecuteSell, SelectTicker, ChangeShares, DisableTemporary]


# --------------------------- Timers ---------------------------


@dataclass(frozen=True)
class ScheduleTimer:
    domain: TimerDomain
    delay_ms: int
    token: Optional[int] = None


@dataclass(frozen=True)
class CancelTimer:
    domain: TimerDomain


TimerCommand = Union[ScheduleTimer, CancelTimer]


@dataclass(frozen=True)
class Transition:
    state: HotkeyState
    effects: Tuple[Effect, ...] = ()
    timers: Tuple[TimerCommand, ...] = ()


# --------------------------- Helpers ---------------------------


def derive_mode(state: HotkeyState) -> str:
    if state.disabled:
        return "disabled"
    if state.is_changing_shares:
        return "shares"
    if state.number_buffer:
        return "ticker"
    return "idle"


def check_invariants(state: HotkeyState) -> List[str]:
    """Returns the list of violated state invariants (empty when consistent)."""
    violations: List[str] = []

    if state.buy_count < 0 or state.sell_count < 0:
        violations.append("trade counters must be >= 0")
    if state.buy_count > 0 and state.sell_count > 0:
        violations.append("buy_count and sell_count are mutually exclusive")
    if state.is_changing_shares and state.number_buffer:
        violations.append("number_buffer must be empty in share-edit mode")
    if state.number_buffer and not state.number_buffer.isdigit():
        violations.append("number_buffer must contain digits only")
    if state.share_change_buffer and not state.share_change_buffer.isdigit():
        violations.append("share_change_buffer must contain digits only")
    if not state.is_changing_shares and state.share_change_buffer:
        violations.append("share_change_buffer must be empty outside share-edit mode")
    if state.number_buffer_timer is not None and not state.number_buffer:
        violations.append("number_buffer_timer set without a number_buffer")

    return violations


def to_dict(state: HotkeyState) -> dict:
    return {
        "buy_count": state.buy_count,
        "sell_count": state.sell_count,
        "number_buffer": state.number_buffer,
        "is_changing_shares": state.is_changing_shares,
        "share_change_buffer": state.share_change_buffer,
        "disabled": state.disabled,
        "number_buffer_timer": state.number_buffer_timer,
        "mode": derive_mode(state),
    }
