"""Shared fixtures: config builder, recording notifier and paper engine."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import pytest
from loguru import logger

from app.config import AppConfig
from app.exchange_client import BinanceFuturesClient
from app.models import OrderResult, PositionInfo
from app.state import SignalCounters
from app.trade_engine import TradeEngine


class RecordingNotifier:
    enabled = True

    def __init__(self) -> None:
        self.messages: list[str] = []

    async def send_message(self, text: str) -> bool:
        self.messages.append(text)
        return True


class FakeExchange:
    """Scriptable exchange double recording every order."""

    def __init__(
        self,
        step_size: str = "0.001",
        min_qty: str = "0",
        mark_price: Decimal | None = Decimal("100"),
        position: PositionInfo | None = None,
        fail_reduce_only: bool = False,
    ) -> None:
        self.step_size = Decimal(step_size)
        self.min_qty = Decimal(min_qty)
        self.mark_price = mark_price
        self.position = position
        self.fail_reduce_only = fail_reduce_only
        self.orders: list[dict[str, Any]] = []
        self.leverage: dict[str, int] = {}

    async def ping(self) -> bool:
        return True

    async def apply_market_price(self, symbol: str, price: Decimal) -> None:
        return None

    async def get_step_size(self, symbol: str) -> tuple[Decimal, Decimal]:
        return self.step_size, self.min_qty

    async def get_position(self, symbol: str) -> PositionInfo | None:
        return self.position

    async def set_leverage(self, symbol: str, leverage: int) -> None:
        self.leverage[symbol] = leverage

    async def get_mark_price(self, symbol: str) -> Decimal | None:
        return self.mark_price

    async def place_market_order(self, symbol: str, side: str, quantity: Decimal, reduce_only: bool = False) -> OrderResult:
        if reduce_only and self.fail_reduce_only:
            raise RuntimeError("reduce only rejected")
        self.orders.append({"symbol": symbol, "side": side, "quantity": quantity, "reduce_only": reduce_only})
        return OrderResult(order_id=str(1000 + len(self.orders)), symbol=symbol, side=side, quantity=quantity)


def build_config(**sections: dict[str, Any]) -> AppConfig:
    data: dict[str, Any] = {"mode": "paper", "logging": {"public_ip_check": False}}
    for key, value in sections.items():
        data[key] = value
    return AppConfig.model_validate(data)


@pytest.fixture
def config() -> AppConfig:
    return build_config()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def paper_engine(config: AppConfig, notifier: RecordingNotifier) -> TradeEngine:
    exchange = BinanceFuturesClient(mode="paper")
    return TradeEngine(config=config, exchange=exchange, notifier=notifier, logger=logger, counters=SignalCounters())
