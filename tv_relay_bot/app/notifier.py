"""Telegram Bot API notifier and status message formatting."""

from __future__ import annotations

import asyncio
import json
from decimal import Decimal
from typing import Any
from urllib.request import Request, urlopen

from loguru import logger as default_logger

from app.models import OrderResult, PositionInfo, TradeSignal
from app.quantity import format_decimal


TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramNotifier:
    """Posts plain-text messages to one chat. Never raises."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        logger: Any | None = None,
        timeout_sec: float = 8,
        api_url: str = TELEGRAM_API_URL,
    ) -> None:
        self.bot_token = (bot_token or "").strip()
        self.chat_id = str(chat_id or "").strip()
        self.logger = logger or default_logger
        self.timeout_sec = timeout_sec
        self.api_url = api_url.rstrip("/")

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    async def send_message(self, text: str) -> bool:
        if not self.enabled:
            self.logger.debug("Telegram notifier disabled, skip message: {}", text)
            return False
        try:
            await asyncio.to_thread(self._post_sync, text)
            return True
        except Exception as exc:  # noqa: BLE001
            self.logger.error("Telegram notify failed: {}", exc)
            return False

    def _post_sync(self, text: str) -> None:
        url = f"{self.api_url}/bot{self.bot_token}/sendMessage"
        payload = json.dumps({"chat_id": self.chat_id, "text": text}).encode("utf-8")
        req = Request(url=url, data=payload, method="POST", headers={"Content-Type": "application/json"})
        with urlopen(req, timeout=self.timeout_sec) as resp:
            resp.read()


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def format_new_trade(signal: TradeSignal, order: OrderResult, mark_price: Decimal) -> str:
    return (
        "🚀 New trade executed:\n"
        f"- Side: {signal.side}\n"
        f"- Symbol: {signal.symbol}\n"
        f"- Approx. price: ${_money(mark_price)}\n"
        f"- Quantity: {format_decimal(order.quantity)}\n"
        f"- Order ID: {order.order_id}"
    )


def format_position_closed(symbol: str, close_side: str, quantity: Decimal) -> str:
    return (
        "🔄 Previous position closed:\n"
        f"- {close_side} {symbol}\n"
        f"- Quantity: {format_decimal(quantity)}"
    )


def format_pnl(position: PositionInfo, close_price: Decimal, pnl: Decimal) -> str:
    # sign is decided on the printed cents so -0.001 reads as +0.00
    cents = pnl.quantize(Decimal("0.01"))
    if cents >= 0:
        pnl_line = f"✅ PnL: +{_money(abs(cents))} USDT"
    else:
        pnl_line = f"❌ PnL: -{_money(abs(cents))} USDT"
    return (
        "📊 Result:\n"
        f"- Entry: ${format_decimal(position.entry_price)}\n"
        f"- Close: ${_money(close_price)}\n"
        f"{pnl_line}"
    )


def format_error(details: Any) -> str:
    if not isinstance(details, str):
        details = json.dumps(details, ensure_ascii=False, default=str)
    return f"❌ Error processing signal: {details}"
