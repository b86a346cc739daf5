"""Webhook endpoint receiving chart alerts and relaying them to the exchange."""

from __future__ import annotations

import hmac
import json
import os
from pathlib import Path
from typing import Any

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from app.config import AppConfig, load_config
from app.errors import ExchangeError, SignalParseError, SignalRejected
from app.exchange_client import BinanceFuturesClient
from app.health import HealthMonitor, get_public_ip
from app.logger import setup_logger
from app.notifier import TelegramNotifier, format_error
from app.quantity import format_decimal
from app.signal_parser import SignalParser
from app.state import SignalCounters
from app.trade_engine import TradeEngine


def config_path() -> Path:
    """Config file named by CONFIG_PATH, else `config.yml` in the working directory."""
    return Path(os.getenv("CONFIG_PATH") or "config.yml").resolve()


def _error(status_code: int, detail: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "detail": detail})


async def _read_payload(request: Request) -> Any:
    body = (await request.body()).decode("utf-8", errors="replace").strip()
    if not body:
        raise SignalParseError("empty body")
    content_type = request.headers.get("content-type", "")
    if "json" in content_type or body[:1] in "{[":
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            if "json" in content_type:
                raise SignalParseError(f"invalid JSON: {exc.msg}") from exc
    # plain-text alerts carry the message directly
    return {"message": body}


def _redact(payload: Any) -> Any:
    if isinstance(payload, dict) and "passphrase" in payload:
        return {**payload, "passphrase": "***"}
    return payload


def _secret_ok(expected: str, request: Request, payload: Any) -> bool:
    if not expected:
        return True
    provided = request.headers.get("X-Webhook-Secret")
    if provided is None and isinstance(payload, dict):
        provided = payload.get("passphrase")
    return provided is not None and hmac.compare_digest(str(provided), expected)


def create_app(
    config: AppConfig | None = None,
    engine: TradeEngine | None = None,
    health_monitor: HealthMonitor | None = None,
) -> FastAPI:
    config = config or load_config(config_path())
    if engine is None:
        exchange = BinanceFuturesClient.from_config(config, logger=logger)
        notifier = TelegramNotifier(config.telegram.bot_token, config.telegram.chat_id, logger=logger)
        engine = TradeEngine(config=config, exchange=exchange, notifier=notifier, logger=logger, counters=SignalCounters())
    health_monitor = health_monitor or HealthMonitor(exchange=engine.exchange, logger=logger)
    parser = SignalParser()

    app = FastAPI(title="tv_relay_bot webhook")
    app.state.config = config
    app.state.engine = engine

    @app.on_event("startup")
    async def startup_event() -> None:
        logger.info("Relay started mode={} usdt_amount={} leverage={}", config.mode, config.trading.usdt_amount, config.trading.leverage)
        if not engine.notifier.enabled:
            logger.warning("Telegram notifications disabled: TELEGRAM_BOT_TOKEN/TELEGRAM_CHAT_ID not set")
        if config.logging.public_ip_check:
            ip = await get_public_ip(logger=logger)
            if ip:
                logger.info("Public IP {} (whitelist it for the API key)", ip)

    async def handle_webhook(request: Request) -> JSONResponse:
        counters = engine.counters
        counters.record("received")
        try:
            payload = await _read_payload(request)
        except SignalParseError as exc:
            counters.record("rejected")
            logger.warning("Webhook rejected: {}", exc)
            return _error(400, str(exc))

        if not _secret_ok(config.webhook.secret, request, payload):
            counters.record("rejected")
            logger.warning("Webhook rejected: bad secret")
            return _error(403, "forbidden")
        logger.info("Webhook body: {}", _redact(payload))

        try:
            signal = parser.parse_payload(payload)
        except SignalParseError as exc:
            counters.record("rejected")
            logger.warning("Webhook rejected: {}", exc)
            return _error(400, str(exc))

        try:
            outcome = await engine.process_signal(signal)
        except SignalRejected as exc:
            counters.record("rejected")
            logger.warning("Signal rejected symbol={} reason={}", signal.symbol, exc.reason)
            return _error(422, exc.reason)
        except Exception as exc:  # noqa: BLE001
            counters.record("failed")
            logger.exception("Signal processing failed: {}", exc)
            details = exc.details() if isinstance(exc, ExchangeError) else str(exc)
            await engine.notifier.send_message(format_error(details))
            return _error(500, "internal error")

        return JSONResponse(
            status_code=200,
            content={
                "status": "ok",
                "order_id": outcome.order.order_id,
                "symbol": outcome.order.symbol,
                "side": outcome.order.side,
                "quantity": format_decimal(outcome.order.quantity),
                "mark_price": str(outcome.mark_price),
                "closed_position": outcome.closed_position is not None,
            },
        )

    app.add_api_route("/", handle_webhook, methods=["POST"])
    app.add_api_route("/webhook", handle_webhook, methods=["POST"])

    @app.get("/health")
    async def health() -> dict[str, Any]:
        await health_monitor.check_once()
        return {
            "status": "ok",
            "mode": config.mode,
            **health_monitor.snapshot(),
            "counters": engine.counters.snapshot(),
        }

    return app


def run() -> None:
    load_dotenv()
    config = load_config(config_path())
    setup_logger(Path(config.logging.log_dir), config.logging.level)
    uvicorn.run(create_app(config), host=config.server.host, port=config.server.port)
