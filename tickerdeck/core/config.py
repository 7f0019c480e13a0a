# tickerdeck/core/config.py
from __future__ import annotations

import json
from typing import Any, Dict, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _parse_keys(v: Any) -> List[str]:
    """
    Accepts:
      - list: ["backspace","escape"]
      - csv:  "backspace,escape"
      - json: '["backspace","escape"]'
    Returns lowercase, trimmed key names.
    """
    if v is None:
        return []
    if isinstance(v, (list, tuple)):
        return [str(x).strip().lower() for x in v if str(x).strip()]
    s = str(v).strip()
    if not s:
        return []
    if s.startswith("["):
        try:
            arr = json.loads(s)
            return [str(x).strip().lower() for x in arr if str(x).strip()]
        except json.JSONDecodeError:
            # fall back to csv parse
            pass
    return [p.strip().lower() for p in s.split(",") if p.strip()]


class Settings(BaseSettings):
    """Runtime configuration loaded from .env / environment variables."""

    # enable_decoding=False keeps pydantic-settings from json-decoding the list fields.
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        enable_decoding=False,
    )

    # --- Key bindings ---
    BUY_KEYS: List[str] = Field(default_factory=lambda: ["b"])
    SELL_KEYS: List[str] = Field(default_factory=lambda: ["s"])
    CHANGE_KEYS: List[str] = Field(default_factory=lambda: ["c"])
    CONFIRM_KEYS: List[str] = Field(default_factory=lambda: ["enter"])
    CANCEL_KEYS: List[str] = Field(default_factory=lambda: ["backspace", "escape"])

    # --- Debounce windows (milliseconds) ---
    TRADE_DEBOUNCE_MS: int = 100
    TICKER_BUFFER_TIMEOUT_MS: int = 1500
    DISABLE_WINDOW_MS: int = 500

    # --- Desk ---
    DEFAULT_SHARE_AMOUNT: int = 100
    OPERATOR_ID: str = "local"

    # --- Storage / logging ---
    DB_PATH: str = "data/tickerdeck.db"
    LOG_LEVEL: str = "INFO"

    @field_validator(
        "BUY_KEYS", "SELL_KEYS", "CHANGE_KEYS", "CONFIRM_KEYS", "CANCEL_KEYS",
        mode="before",
    )
    @classmethod
    def parse_keys(cls, v: Any) -> List[str]:
        return _parse_keys(v)

    def model_post_init(self, __context: Any) -> None:
        self.LOG_LEVEL = (self.LOG_LEVEL or "INFO").upper().strip()
        self.OPERATOR_ID = (self.OPERATOR_ID or "local").strip()

    def key_bindings(self) -> Dict[str, List[str]]:
        return {
            "buy": list(self.BUY_KEYS),
            "sell": list(self.SELL_KEYS),
            "change": list(self.CHANGE_KEYS),
            "confirm": list(self.CONFIRM_KEYS),
            "cancel": list(self.CANCEL_KEYS),
        }

    def validate_runtime(self) -> List[str]:
        """
        Fail-fast validation. Returns warnings (non-fatal).
        Raises ValueError for fatal misconfiguration.
        """
        errors: List[str] = []
        warnings: List[str] = []

        # Bindings sanity
        seen: Dict[str, str] = {}
        for command, keys in self.key_bindings().items():
            if not keys:
                errors.append(f"{command.upper()}_KEYS must not be empty.")
            for key in keys:
                if len(key) == 1 and key.isdigit():
                    errors.append(
                        f"{command.upper()}_KEYS contains digit '{key}'; digits select tickers."
                    )
                owner = seen.get(key)
                if owner and owner != command:
                    errors.append(
                        f"Key '{key}' is bound to both '{owner}' and '{command}'."
                    )
                seen[key] = command

        # Timing sanity
        if self.TRADE_DEBOUNCE_MS <= 0:
            errors.append("TRADE_DEBOUNCE_MS must be > 0.")
        if self.TICKER_BUFFER_TIMEOUT_MS <= 0:
            errors.append("TICKER_BUFFER_TIMEOUT_MS must be > 0.")
        if self.DISABLE_WINDOW_MS <= 0:
            errors.append("DISABLE_WINDOW_MS must be > 0.")

        if self.TRADE_DEBOUNCE_MS >= 1000:
            warnings.append(
                f"TRADE_DEBOUNCE_MS ({self.TRADE_DEBOUNCE_MS}) delays every trade by a second or more."
            )
        if 0 < self.TICKER_BUFFER_TIMEOUT_MS <= self.TRADE_DEBOUNCE_MS:
            warnings.append(
                "TICKER_BUFFER_TIMEOUT_MS is not longer than TRADE_DEBOUNCE_MS; "
                "multi-digit tickers will be hard to type."
            )

        # Desk sanity
        if self.DEFAULT_SHARE_AMOUNT <= 0:
            errors.append("DEFAULT_SHARE_AMOUNT must be > 0.")

        if self.LOG_LEVEL not in LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {sorted(LOG_LEVELS)}.")

        if errors:
            msg = "Config validation failed:\n" + "\n".join([f"- {e}" for e in errors])
            raise ValueError(msg)

        return warnings


# Pydantic v2 + postponed annotations safety
Settings.model_rebuild()
settings = Settings()
