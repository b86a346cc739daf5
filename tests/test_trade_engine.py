from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest
from loguru import logger

from app.errors import ExchangeError, SignalRejected
from app.models import PositionInfo, TradeSignal
from app.trade_engine import TradeEngine
from conftest import FakeExchange, RecordingNotifier, build_config


def _signal(side: str, price: str, symbol: str = "BTCUSDT") -> TradeSignal:
    return TradeSignal(side=side, symbol=symbol, price=Decimal(price))


def _engine(config, exchange, notifier=None) -> TradeEngine:
    return TradeEngine(config=config, exchange=exchange, notifier=notifier or RecordingNotifier(), logger=logger)


def test_buy_opens_position_in_paper_mode(paper_engine) -> None:
    outcome = asyncio.run(paper_engine.process_signal(_signal("BUY", "100")))

    assert outcome.order.side == "BUY"
    assert outcome.order.quantity == Decimal("2")
    assert outcome.mark_price == Decimal("100")
    assert outcome.closed_position is None
    position = asyncio.run(paper_engine.exchange.get_position("BTCUSDT"))
    assert position.amount == Decimal("2")
    assert paper_engine.exchange._client.get_leverage("BTCUSDT") == 3
    assert paper_engine.counters.get("executed") == 1
    assert "New trade executed" in paper_engine.notifier.messages[-1]
    assert "Order ID: 1" in paper_engine.notifier.messages[-1]


def test_opposite_signal_closes_then_reverses(paper_engine) -> None:
    asyncio.run(paper_engine.process_signal(_signal("BUY", "100")))
    outcome = asyncio.run(paper_engine.process_signal(_signal("SELL", "110")))

    assert outcome.closed_position is not None
    assert outcome.closed_position.amount == Decimal("2")
    assert outcome.realized_pnl == Decimal("20")
    assert outcome.order.quantity == Decimal("1.81")

    position = asyncio.run(paper_engine.exchange.get_position("BTCUSDT"))
    assert position.amount == Decimal("-1.81")
    assert position.entry_price == Decimal("110")

    messages = paper_engine.notifier.messages
    assert any("Previous position closed" in m and "SELL BTCUSDT" in m for m in messages)
    assert any("PnL: +20.00 USDT" in m for m in messages)
    assert paper_engine.counters.get("closed_positions") == 1


def test_same_direction_signal_does_not_close(config) -> None:
    exchange = FakeExchange(position=PositionInfo("BTCUSDT", Decimal("0.5"), Decimal("90")))
    engine = _engine(config, exchange)

    outcome = asyncio.run(engine.process_signal(_signal("BUY", "100")))

    assert outcome.closed_position is None
    assert [o["reduce_only"] for o in exchange.orders] == [False]


def test_short_position_closed_by_buy_reports_loss(config) -> None:
    exchange = FakeExchange(
        position=PositionInfo("BTCUSDT", Decimal("-1.5"), Decimal("90")),
        mark_price=Decimal("100"),
    )
    notifier = RecordingNotifier()
    engine = _engine(config, exchange, notifier)

    outcome = asyncio.run(engine.process_signal(_signal("BUY", "100")))

    assert exchange.orders[0] == {"symbol": "BTCUSDT", "side": "BUY", "quantity": Decimal("1.5"), "reduce_only": True}
    assert exchange.orders[1]["side"] == "BUY"
    assert exchange.orders[1]["quantity"] == Decimal("2")
    assert outcome.realized_pnl == Decimal("-15")
    assert any("PnL: -15.00 USDT" in m for m in notifier.messages)


def test_close_failure_does_not_block_new_order(config) -> None:
    exchange = FakeExchange(
        position=PositionInfo("BTCUSDT", Decimal("1"), Decimal("90")),
        fail_reduce_only=True,
    )
    engine = _engine(config, exchange)

    outcome = asyncio.run(engine.process_signal(_signal("SELL", "100")))

    assert outcome.closed_position is None
    assert len(exchange.orders) == 1
    assert exchange.orders[0]["side"] == "SELL"


def test_close_opposite_can_be_disabled() -> None:
    config = build_config(trading={"close_opposite": False})
    exchange = FakeExchange(position=PositionInfo("BTCUSDT", Decimal("1"), Decimal("90")))
    engine = _engine(config, exchange)

    asyncio.run(engine.process_signal(_signal("SELL", "100")))

    assert [o["reduce_only"] for o in exchange.orders] == [False]


def test_invalid_mark_price_raises_without_order(config) -> None:
    exchange = FakeExchange(mark_price=None)
    engine = _engine(config, exchange)

    with pytest.raises(ExchangeError, match="invalid mark price"):
        asyncio.run(engine.process_signal(_signal("BUY", "100")))
    assert exchange.orders == []
    assert exchange.leverage == {"BTCUSDT": 3}


def test_zero_quantity_is_rejected(config) -> None:
    exchange = FakeExchange(step_size="1")
    engine = _engine(config, exchange)

    with pytest.raises(SignalRejected) as excinfo:
        asyncio.run(engine.process_signal(_signal("BUY", "65000")))
    assert excinfo.value.reason == "zero_quantity"
    assert exchange.orders == []


def test_calculate_pnl_signed_amount() -> None:
    long = PositionInfo("BTCUSDT", Decimal("2"), Decimal("100"))
    short = PositionInfo("BTCUSDT", Decimal("-2"), Decimal("100"))
    assert TradeEngine.calculate_pnl(long, Decimal("105")) == Decimal("10")
    assert TradeEngine.calculate_pnl(short, Decimal("105")) == Decimal("-10")
