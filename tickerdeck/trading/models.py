# tickerdeck/trading/models.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class TradingMessage:
    id: str
    sender: str
    name: str
    tickers: List[str] = field(default_factory=list)
    title: Optional[str] = None
    content: Optional[str] = None
    timestamp: Optional[str] = None

    def validate(self) -> List[str]:
        missing: List[str] = []
        if not self.sender:
            missing.append("sender")
        if not self.name:
            missing.append("name")
        if not self.tickers:
            missing.append("tickers")
        return missing

    def has_text(self) -> bool:
        return bool((self.title or "").strip() or (self.content or "").strip())

    def notification_text(self) -> str:
        if self.title and self.content:
            return f"{self.title}: {self.content}"
        if self.title:
            return f"title: {self.title}"
        if self.content:
            return f"content: {self.content}"
        return ""


@dataclass
class TradingAction:
    action: str  # "buy" | "sell"
    ticker: str
    shares: int
    quantity: int
    timestamp: str
    message_id: Optional[str] = None
    timing_ms: Optional[int] = None


@dataclass
class TradingLog:
    timestamp: str
    user_id: str
    action: str  # "buy" | "sell"
    ticker: str
    shares: int
    quantity: int
    success: bool
    error: Optional[str] = None
    message_id: Optional[str] = None


@dataclass
class TradeResponse:
    success: bool
    message: str
    action: Optional[str] = None
    ticker: Optional[str] = None
    shares: Optional[int] = None
    quantity: Optional[int] = None
    timestamp: Optional[str] = None
    error: Optional[str] = None
    orders: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
