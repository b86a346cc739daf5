"""Pre-order checks on a computed quantity."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from app.config import AppConfig
from app.models import TradeSignal
from app.state import SignalCounters


@dataclass(slots=True)
class RiskDecision:
    allowed: bool
    reason: str


class RiskManager:
    """Evaluates pre-entry checks in a single layer."""

    def __init__(self, config: AppConfig, logger) -> None:
        self.config = config
        self.logger = logger

    def evaluate(
        self,
        signal: TradeSignal,
        quantity: Decimal,
        min_qty: Decimal,
        counters: SignalCounters,
    ) -> RiskDecision:
        if quantity <= 0:
            self.logger.info(
                "RiskManager: quantity rounds to zero symbol={} price={} usdt={} reason=zero_quantity",
                signal.symbol,
                signal.price,
                self.config.trading.usdt_amount,
            )
            return RiskDecision(False, "zero_quantity")

        if min_qty > 0 and quantity < min_qty:
            self.logger.info(
                "RiskManager: qty below min_qty symbol={} qty={} min_qty={} reason=below_min_qty",
                signal.symbol,
                quantity,
                min_qty,
            )
            return RiskDecision(False, "below_min_qty")

        limit = self.config.trading.max_orders_per_day
        if limit > 0:
            executed = counters.get("executed")
            if executed >= limit:
                self.logger.info(
                    "RiskManager: daily order limit reached executed={} limit={} reason=daily_limit",
                    executed,
                    limit,
                )
                return RiskDecision(False, "daily_limit")

        return RiskDecision(True, "ok")
