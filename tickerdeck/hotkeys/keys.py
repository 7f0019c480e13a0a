# tickerdeck/hotkeys/keys.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Tuple

DIGITS = "0123456789"


class KeyKind(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    CHANGE = "CHANGE"
    CONFIRM = "CONFIRM"
    CANCEL = "CANCEL"
    DIGIT = "DIGIT"
    OTHER = "OTHER"


def normalize_key(key: str) -> str:
    return (key or "").lower()


def is_digit_key(key: str) -> bool:
    return len(key or "") == 1 and key in DIGITS


def _keys(values: Iterable[str]) -> Tuple[str, ...]:
    return tuple(normalize_key(v) for v in values if v)


@dataclass(frozen=True)
class KeyBindings:
    buy: Tuple[str, ...] = ("b",)
    sell: Tuple[str, ...] = ("s",)
    change: Tuple[str, ...] = ("c",)
    confirm: Tuple[str, ...] = ("enter",)
    cancel: Tuple[str, ...] = ("backspace", "escape")

    @classmethod
    def from_names(
        cls,
        buy: Iterable[str],
        sell: Iterable[str],
        change: Iterable[str],
        confirm: Iterable[str],
        cancel: Iterable[str],
    ) -> "KeyBindings":
        return cls(
            buy=_keys(buy),
            sell=_keys(sell),
            change=_keys(change),
            confirm=_keys(confirm),
            cancel=_keys(cancel),
        )

    def classify(self, key: str) -> KeyKind:
        # digits win over bindings so ticker entry can never be shadowed
        if is_digit_key(key):
            return KeyKind.DIGIT
        k = normalize_key(key)
        if k in self.buy:
            return KeyKind.BUY
        if k in self.sell:
            return KeyKind.SELL
        if k in self.change:
            return KeyKind.CHANGE
        if k in self.confirm:
            return KeyKind.CONFIRM
        if k in self.cancel:
            return KeyKind.CANCEL
        return KeyKind.OTHER
