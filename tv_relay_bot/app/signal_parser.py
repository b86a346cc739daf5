"""Parser for incoming webhook alerts."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from app.errors import SignalParseError
from app.models import TradeSignal


# thousands separators are rejected rather than read as a decimal point
_NUMBER_RE = r"(\d+(?:\.\d+)?)(?![\d,]|\.\d)"
_CONNECTOR_RE = r"\s+(?:a|at|@)\s+"

_SIDE_ALIASES = {
    "buy": "BUY",
    "long": "BUY",
    "sell": "SELL",
    "short": "SELL",
}

_EXCHANGE_PREFIX_RE = re.compile(r"^[A-Z0-9_]+:")
_KNOWN_SUFFIXES = (".P", "PERP")


def normalize_symbol(symbol: str) -> str:
    """Map chart tickers like ``BINANCE:BTCUSDT.P`` or ``BTC/USDT`` to ``BTCUSDT``."""
    value = (symbol or "").strip().upper()
    value = _EXCHANGE_PREFIX_RE.sub("", value)
    for suffix in _KNOWN_SUFFIXES:
        if value.endswith(suffix):
            value = value[: -len(suffix)]
    value = re.sub(r"[/\-_\s]", "", value)
    if not value or not value.isalnum():
        raise SignalParseError(f"invalid symbol: {symbol!r}")
    return value


def map_side(side: str) -> str:
    mapped = _SIDE_ALIASES.get(str(side or "").strip().lower())
    if mapped is None:
        raise SignalParseError(f"invalid side: {side!r}")
    return mapped


def parse_price(value: Any) -> Decimal:
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise SignalParseError(f"invalid price: {value!r}") from exc
    if not price.is_finite() or price <= 0:
        raise SignalParseError(f"invalid price: {value!r}")
    return price


class SignalParser:
    """Turn alert text or JSON into a TradeSignal."""

    _PATTERNS = {
        "BUY": re.compile(r"BUY\s*-\s*(.+?)" + _CONNECTOR_RE + _NUMBER_RE),
        "SELL": re.compile(r"SELL\s*-\s*(.+?)" + _CONNECTOR_RE + _NUMBER_RE),
    }

    def parse_text(self, message: str) -> TradeSignal:
        text = (message or "").strip()
        if not text:
            raise SignalParseError("empty message")

        if "BUY" in text:
            side = "BUY"
        elif "SELL" in text:
            side = "SELL"
        else:
            raise SignalParseError("unrecognized message")

        match = self._PATTERNS[side].search(text)
        if not match:
            raise SignalParseError(f"message does not match {side} pattern")

        return TradeSignal(
            side=side,
            symbol=normalize_symbol(match.group(1)),
            price=parse_price(match.group(2)),
            raw=text,
        )

    def parse_payload(self, payload: Any) -> TradeSignal:
        if isinstance(payload, str):
            return self.parse_text(payload)
        if not isinstance(payload, dict):
            raise SignalParseError("payload must be a JSON object")

        message = payload.get("message")
        if message:
            return self.parse_text(str(message))

        side = payload.get("side") or payload.get("action")
        symbol = payload.get("symbol") or payload.get("ticker")
        price = payload.get("price") or payload.get("close")
        if side is None or symbol is None or price is None:
            raise SignalParseError("payload requires message or side/symbol/price")

        return TradeSignal(
            side=map_side(str(side)),
            symbol=normalize_symbol(str(symbol)),
            price=parse_price(price),
            raw=None,
        )
