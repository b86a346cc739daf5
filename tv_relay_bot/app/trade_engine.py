"""Trade engine: turns one parsed signal into exchange orders."""

from __future__ import annotations

from decimal import Decimal

from app.config import AppConfig
from app.errors import ExchangeError, SignalRejected
from app.exchange_client import BinanceFuturesClient
from app.models import PositionInfo, SignalOutcome, TradeSignal
from app.notifier import TelegramNotifier, format_new_trade, format_pnl, format_position_closed
from app.quantity import compute_quantity
from app.risk_manager import RiskManager
from app.state import SignalCounters


class TradeEngine:
    """Executes one signal at a time: close opposite, set leverage, open."""

    def __init__(
        self,
        config: AppConfig,
        exchange: BinanceFuturesClient,
        notifier: TelegramNotifier,
        logger,
        counters: SignalCounters | None = None,
        risk_manager: RiskManager | None = None,
    ) -> None:
        self.config = config
        self.exchange = exchange
        self.notifier = notifier
        self.logger = logger
        self.counters = counters or SignalCounters()
        self.risk_manager = risk_manager or RiskManager(config=config, logger=logger)

    async def process_signal(self, signal: TradeSignal) -> SignalOutcome:
        trading = self.config.trading
        symbol = signal.symbol
        self.logger.info("TradeEngine: signal side={} symbol={} price={}", signal.side, symbol, signal.price)

        # paper fills need a reference price; the live client ignores this
        await self.exchange.apply_market_price(symbol, signal.price)

        step_size, min_qty = await self.exchange.get_step_size(symbol)
        quantity = compute_quantity(trading.usdt_amount, signal.price, step_size)

        decision = self.risk_manager.evaluate(signal, quantity, min_qty, self.counters)
        if not decision.allowed:
            raise SignalRejected(decision.reason)

        closed: PositionInfo | None = None
        pnl: Decimal | None = None
        position = await self.exchange.get_position(symbol)
        if (
            trading.close_opposite
            and position is not None
            and position.is_open
            and position.is_opposite_to(signal.side)
        ):
            closed, pnl = await self._close_opposite(position)

        await self.exchange.set_leverage(symbol, trading.leverage)

        mark_price = await self.exchange.get_mark_price(symbol)
        if mark_price is None or mark_price <= 0:
            raise ExchangeError("invalid mark price", payload={"symbol": symbol, "mark_price": str(mark_price)})

        order = await self.exchange.place_market_order(symbol, signal.side, quantity)
        self.counters.record("executed")
        self.logger.info(
            "TradeEngine: order placed id={} side={} symbol={} qty={} mark={}",
            order.order_id,
            order.side,
            symbol,
            quantity,
            mark_price,
        )

        await self.notifier.send_message(format_new_trade(signal, order, mark_price))
        return SignalOutcome(
            signal=signal,
            order=order,
            mark_price=mark_price,
            closed_position=closed,
            realized_pnl=pnl,
        )

    async def _close_opposite(self, position: PositionInfo) -> tuple[PositionInfo | None, Decimal | None]:
        symbol = position.symbol
        close_side = "SELL" if position.amount > 0 else "BUY"
        qty = abs(position.amount)
        try:
            await self.exchange.place_market_order(symbol, close_side, qty, reduce_only=True)
            self.counters.record("closed_positions")
            self.logger.info("TradeEngine: closed {} position symbol={} qty={}", position.direction, symbol, qty)
            await self.notifier.send_message(format_position_closed(symbol, close_side, qty))

            close_price = await self.exchange.get_mark_price(symbol)
            if close_price is None:
                self.logger.warning("TradeEngine: no mark price after close symbol={}, skip PnL", symbol)
                return position, None
            pnl = self.calculate_pnl(position, close_price)
            self.logger.info("TradeEngine: close pnl symbol={} entry={} close={} pnl={}", symbol, position.entry_price, close_price, pnl)
            await self.notifier.send_message(format_pnl(position, close_price, pnl))
            return position, pnl
        except Exception as exc:  # noqa: BLE001
            self.logger.error("TradeEngine: closing opposite position failed symbol={} err={}", symbol, exc)
            return None, None

    @staticmethod
    def calculate_pnl(position: PositionInfo, close_price: Decimal) -> Decimal:
        """Signed amount makes the same formula hold for longs and shorts."""
        return (close_price - position.entry_price) * position.amount
