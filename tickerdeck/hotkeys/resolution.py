# tickerdeck/hotkeys/resolution.py
from __future__ import annotations

from typing import Optional, Tuple

from tickerdeck.hotkeys.keys import DIGITS


def _is_ascii_number(text: str) -> bool:
    return bool(text) and all(ch in DIGITS for ch in text)


def parse_ticker(text: str, total_tickers: int) -> Optional[int]:
    """1-based ticker index if `text` names one of `total_tickers`, else None."""
    if not _is_ascii_number(text):
        return None
    value = int(text)
    if 1 <= value <= total_tickers:
        return value
    return None


def parse_share_amount(text: str) -> Optional[int]:
    if not _is_ascii_number(text):
        return None
    value = int(text)
    return value if value > 0 else None


def resolve_digit(buffer: str, digit: str, total_tickers: int) -> Tuple[str, Optional[int]]:
    """
    Cascading ticker resolution for one typed digit.

    Tries `buffer + digit`, then every shorter suffix of `buffer` followed by
    `digit`, ending with `digit` alone. The first candidate inside
    [1, total_tickers] becomes the new buffer and its value is returned.
    When nothing fits the buffer is cleared and no ticker is selected.

    With 12 tickers, typing "1", "2", "3" selects 1, then 12, then 3
    ("123" and "23" are out of range).
    """
    for i in range(len(buffer) + 1):
        candidate = buffer[i:] + digit
        selected = parse_ticker(candidate, total_tickers)
        if selected is not None:
            return candidate, selected
    return "", None
