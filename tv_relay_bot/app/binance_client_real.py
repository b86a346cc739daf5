"""Real Binance USDT-M Futures client with best-effort async wrappers."""

from __future__ import annotations

import asyncio
import json
from decimal import Decimal
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from loguru import logger as default_logger

from app.binance_sign import build_query, signed_query
from app.errors import ExchangeError
from app.models import OrderResult, PositionInfo
from app.quantity import format_decimal


class BinanceFuturesClientReal:
    """Thin async wrapper over the Binance Futures REST API."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        logger: Any | None = None,
        base_url: str = "https://fapi.binance.com",
        default_step_size: str = "0.01",
        recv_window: int | None = None,
        timeout_sec: float = 10,
    ) -> None:
        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = base_url.rstrip("/")
        self.logger = logger or default_logger
        self.default_step_size = Decimal(default_step_size)
        self.recv_window = recv_window
        self.timeout_sec = timeout_sec
        self._lot_size_cache: dict[str, tuple[Decimal, Decimal]] = {}

    async def ping(self) -> bool:
        try:
            await self._request("GET", "/fapi/v1/ping")
            return True
        except Exception as exc:  # noqa: BLE001
            self._log_error("ping", exc)
            return False

    async def get_step_size(self, symbol: str) -> tuple[Decimal, Decimal]:
        """Return (stepSize, minQty) from the LOT_SIZE filter."""
        cached = self._lot_size_cache.get(symbol)
        if cached is not None:
            return cached
        try:
            data = await self._request("GET", "/fapi/v1/exchangeInfo")
            rows = data.get("symbols") if isinstance(data, dict) else None
            info = next((row for row in rows or [] if row.get("symbol") == symbol), None)
            if info is None:
                raise ExchangeError(f"no exchange info for {symbol}")
            lot_size = next((f for f in info.get("filters") or [] if f.get("filterType") == "LOT_SIZE"), None)
            if lot_size is None:
                raise ExchangeError(f"no LOT_SIZE filter for {symbol}")
            rules = (Decimal(str(lot_size["stepSize"])), Decimal(str(lot_size.get("minQty") or "0")))
            self._lot_size_cache[symbol] = rules
            return rules
        except Exception as exc:  # noqa: BLE001
            self._log_error("get_step_size", exc)
            return self.default_step_size, Decimal("0")

    async def get_position(self, symbol: str) -> PositionInfo | None:
        try:
            data = await self._signed_request("GET", "/fapi/v2/positionRisk", {"symbol": symbol})
            rows = data if isinstance(data, list) else []
            row = next((r for r in rows if r.get("symbol") == symbol), None)
            if row is None:
                return None
            mark = row.get("markPrice")
            return PositionInfo(
                symbol=symbol,
                amount=Decimal(str(row.get("positionAmt") or "0")),
                entry_price=Decimal(str(row.get("entryPrice") or "0")),
                mark_price=Decimal(str(mark)) if mark not in (None, "") else None,
            )
        except Exception as exc:  # noqa: BLE001
            self._log_error("get_position", exc)
            return None

    async def set_leverage(self, symbol: str, leverage: int) -> None:
        try:
            await self._signed_request("POST", "/fapi/v1/leverage", {"symbol": symbol, "leverage": int(leverage)})
        except Exception as exc:  # noqa: BLE001
            self._log_error("set_leverage", exc)

    async def get_mark_price(self, symbol: str) -> Decimal | None:
        try:
            data = await self._request("GET", "/fapi/v1/premiumIndex", {"symbol": symbol})
            price = data.get("markPrice") if isinstance(data, dict) else None
            if price is None:
                raise ExchangeError("mark price missing", payload=data)
            return Decimal(str(price))
        except Exception as exc:  # noqa: BLE001
            self._log_error("get_mark_price", exc)
            return None

    async def place_market_order(
        self,
        symbol: str,
        side: str,
        quantity: Decimal,
        reduce_only: bool = False,
    ) -> OrderResult:
        side = side.upper()
        if side not in {"BUY", "SELL"}:
            raise ValueError("invalid side")
        params: dict[str, object] = {
            "symbol": symbol,
            "side": side,
            "type": "MARKET",
            "quantity": format_decimal(quantity),
            "reduceOnly": "true" if reduce_only else None,
        }
        try:
            data = await self._signed_request("POST", "/fapi/v1/order", params)
        except ExchangeError as exc:
            self._log_error("place_market_order", exc)
            raise
        order_id = data.get("orderId") if isinstance(data, dict) else None
        if order_id is None:
            raise ExchangeError("exchange order id missing", payload=data)
        return OrderResult(
            order_id=str(order_id),
            symbol=symbol,
            side=side,
            quantity=quantity,
            status=str(data.get("status") or "NEW"),
        )

    async def _request(self, method: str, path: str, params: dict[str, object] | None = None) -> Any:
        query = build_query(params or {})
        return await asyncio.to_thread(self._request_sync, method, path, query, {})

    async def _signed_request(self, method: str, path: str, params: dict[str, object] | None = None) -> Any:
        query, signature = signed_query(params or {}, self.api_secret, recv_window=self.recv_window)
        headers = {"X-MBX-APIKEY": self.api_key}
        return await asyncio.to_thread(self._request_sync, method, path, f"{query}&signature={signature}", headers)

    def _request_sync(self, method: str, path: str, query: str, headers: dict[str, str]) -> Any:
        url = f"{self.base_url}{path}"
        if query:
            url = f"{url}?{query}"
        method = method.upper()
        data = b"" if method == "POST" else None

        req = Request(url=url, data=data, method=method, headers=headers)
        try:
            with urlopen(req, timeout=self.timeout_sec) as resp:
                raw = resp.read().decode("utf-8")
        except HTTPError as exc:
            raw = exc.read().decode("utf-8", errors="ignore")
            raise ExchangeError(f"HTTPError {exc.code} {path}", status=exc.code, payload=_decode(raw)) from exc
        except URLError as exc:
            raise ExchangeError(f"URLError {path}: {exc.reason}") from exc
        except TimeoutError as exc:
            raise ExchangeError(f"timeout {path}: {exc}") from exc

        payload = _decode(raw)
        if isinstance(payload, dict) and isinstance(payload.get("code"), int) and payload["code"] < 0:
            raise ExchangeError(f"API error code={payload['code']} msg={payload.get('msg')}", payload=payload)
        return payload

    def _log_error(self, scope: str, exc: Exception) -> None:
        if hasattr(self.logger, "error"):
            self.logger.error("Binance client error [{}]: {}", scope, exc)


def _decode(raw: str) -> Any:
    try:
        return json.loads(raw or "{}")
    except json.JSONDecodeError:
        return {"raw": raw}
