"""Domain models for a single relayed signal."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(slots=True)
class TradeSignal:
    side: str
    symbol: str
    price: Decimal
    raw: str | None = None


@dataclass(slots=True)
class PositionInfo:
    symbol: str
    amount: Decimal
    entry_price: Decimal
    mark_price: Decimal | None = None

    @property
    def is_open(self) -> bool:
        return self.amount != 0

    @property
    def direction(self) -> str:
        return "long" if self.amount > 0 else "short"

    def is_opposite_to(self, side: str) -> bool:
        return (self.amount > 0 and side == "SELL") or (self.amount < 0 and side == "BUY")


@dataclass(slots=True)
class OrderResult:
    order_id: str
    symbol: str
    side: str
    quantity: Decimal
    status: str = "NEW"


@dataclass(slots=True)
class SignalOutcome:
    signal: TradeSignal
    order: OrderResult
    mark_price: Decimal
    closed_position: PositionInfo | None = None
    realized_pnl: Decimal | None = None
