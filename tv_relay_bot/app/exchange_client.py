"""Unified Binance futures client wrapper (paper/live)."""

from __future__ import annotations

import asyncio
import itertools
from decimal import Decimal
from typing import Any

from app.binance_client_real import BinanceFuturesClientReal
from app.errors import ExchangeError
from app.models import OrderResult, PositionInfo


class _BinanceFuturesClientPaper:
    """In-memory exchange: fills market orders at the last known mark price."""

    VALID_SIDES = {"BUY", "SELL"}

    def __init__(self, default_step_size: str = "0.01") -> None:
        self.default_step_size = Decimal(default_step_size)
        self._step_by_symbol: dict[str, tuple[Decimal, Decimal]] = {}
        self._leverage_by_symbol: dict[str, int] = {}
        self._mark_by_symbol: dict[str, Decimal] = {}
        self._positions: dict[str, PositionInfo] = {}
        self._order_ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def ping(self) -> bool:
        return True

    async def get_step_size(self, symbol: str) -> tuple[Decimal, Decimal]:
        return self._step_by_symbol.get(symbol, (self.default_step_size, Decimal("0")))

    async def get_position(self, symbol: str) -> PositionInfo | None:
        pos = self._positions.get(symbol)
        if pos is None:
            return None
        return PositionInfo(symbol, pos.amount, pos.entry_price, self._mark_by_symbol.get(symbol))

    async def set_leverage(self, symbol: str, leverage: int) -> None:
        self._leverage_by_symbol[symbol] = int(leverage)

    def get_leverage(self, symbol: str) -> int | None:
        return self._leverage_by_symbol.get(symbol)

    async def get_mark_price(self, symbol: str) -> Decimal | None:
        return self._mark_by_symbol.get(symbol)

    async def apply_market_price(self, symbol: str, price: Decimal) -> None:
        self._mark_by_symbol[symbol] = Decimal(str(price))

    def set_symbol_rules(self, symbol: str, step_size: str, min_qty: str = "0") -> None:
        self._step_by_symbol[symbol] = (Decimal(step_size), Decimal(min_qty))

    async def place_market_order(
        self,
        symbol: str,
        side: str,
        quantity: Decimal,
        reduce_only: bool = False,
    ) -> OrderResult:
        async with self._lock:
            side = side.upper()
            if side not in self.VALID_SIDES:
                raise ValueError("invalid side")
            if quantity <= 0:
                raise ExchangeError("quantity must be positive", payload={"code": -4003, "msg": "Quantity less than or equal to zero."})
            price = self._mark_by_symbol.get(symbol)
            if price is None:
                raise ExchangeError("market price unavailable", payload={"symbol": symbol})

            self._apply_fill(symbol, side, quantity, price, reduce_only)
            return OrderResult(
                order_id=str(next(self._order_ids)),
                symbol=symbol,
                side=side,
                quantity=quantity,
                status="FILLED",
            )

    def _apply_fill(self, symbol: str, side: str, qty: Decimal, price: Decimal, reduce_only: bool) -> None:
        signed_qty = qty if side == "BUY" else -qty
        pos = self._positions.get(symbol)
        size = pos.amount if pos else Decimal("0")
        entry = pos.entry_price if pos else Decimal("0")

        if reduce_only:
            if size > 0:
                size = max(Decimal("0"), size + signed_qty) if signed_qty < 0 else size
            elif size < 0:
                size = min(Decimal("0"), size + signed_qty) if signed_qty > 0 else size
            if size == 0:
                self._positions.pop(symbol, None)
            else:
                self._positions[symbol] = PositionInfo(symbol, size, entry)
            return

        new_size = size + signed_qty
        if new_size == 0:
            self._positions.pop(symbol, None)
            return

        if size == 0 or (size > 0) == (signed_qty > 0):
            weighted = abs(size) * entry + abs(signed_qty) * price
            self._positions[symbol] = PositionInfo(symbol, new_size, weighted / abs(new_size))
        elif (size > 0) != (new_size > 0):
            # flipped through zero: remainder opens at fill price
            self._positions[symbol] = PositionInfo(symbol, new_size, price)
        else:
            self._positions[symbol] = PositionInfo(symbol, new_size, entry)


class BinanceFuturesClient:
    """Common wrapper so callers do not depend on paper/live implementation."""

    def __init__(
        self,
        mode: str,
        api_key: str | None = None,
        api_secret: str | None = None,
        logger: Any | None = None,
        base_url: str = "https://fapi.binance.com",
        default_step_size: str = "0.01",
        recv_window: int | None = None,
        timeout_sec: float = 10,
    ) -> None:
        self.mode = mode
        if mode == "live":
            if not api_key or not api_secret:
                raise ValueError("Live mode requires api_key and api_secret")
            self._client: Any = BinanceFuturesClientReal(
                api_key=api_key,
                api_secret=api_secret,
                logger=logger,
                base_url=base_url,
                default_step_size=default_step_size,
                recv_window=recv_window,
                timeout_sec=timeout_sec,
            )
        else:
            self._client = _BinanceFuturesClientPaper(default_step_size=default_step_size)

    @classmethod
    def from_config(cls, config, logger: Any | None = None) -> "BinanceFuturesClient":
        return cls(
            mode=config.mode,
            api_key=config.binance.api_key,
            api_secret=config.binance.api_secret,
            logger=logger,
            base_url=config.binance.base_url,
            default_step_size=config.trading.default_step_size,
            recv_window=config.binance.recv_window,
            timeout_sec=config.binance.timeout_sec,
        )

    async def ping(self) -> bool:
        return await self._client.ping()

    async def get_step_size(self, symbol: str) -> tuple[Decimal, Decimal]:
        return await self._client.get_step_size(symbol)

    async def get_position(self, symbol: str) -> PositionInfo | None:
        return await self._client.get_position(symbol)

    async def set_leverage(self, symbol: str, leverage: int) -> None:
        await self._client.set_leverage(symbol, leverage)

    async def get_mark_price(self, symbol: str) -> Decimal | None:
        return await self._client.get_mark_price(symbol)

    async def place_market_order(
        self,
        symbol: str,
        side: str,
        quantity: Decimal,
        reduce_only: bool = False,
    ) -> OrderResult:
        return await self._client.place_market_order(symbol, side, quantity, reduce_only=reduce_only)

    async def apply_market_price(self, symbol: str, price: Decimal) -> None:
        if hasattr(self._client, "apply_market_price"):
            await self._client.apply_market_price(symbol, price)
