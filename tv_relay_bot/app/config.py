"""Configuration loading and validation."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class BinanceConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    api_key: str = ""
    api_secret: str = ""
    base_url: str = "https://fapi.binance.com"
    recv_window: int | None = Field(default=None, ge=1, le=60000)
    timeout_sec: float = Field(default=10, gt=0)


class TelegramConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    bot_token: str = ""
    chat_id: str = ""

    @field_validator("chat_id", mode="before")
    @classmethod
    def _chat_id_to_str(cls, value: object) -> object:
        # numeric chat ids are common in YAML
        if isinstance(value, int):
            return str(value)
        return value


class TradingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    usdt_amount: float = Field(default=200, gt=0)
    leverage: int = Field(default=3, ge=1, le=125)
    default_step_size: str = Field(default="0.01", pattern=r"^\d+(\.\d+)?$")
    close_opposite: bool = True
    max_orders_per_day: int = Field(default=0, ge=0)

    @field_validator("default_step_size", mode="before")
    @classmethod
    def _step_to_str(cls, value: object) -> object:
        # unquoted YAML numbers; str() keeps 0.01 exact
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class WebhookConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    secret: str = ""


class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: str = Field(default="INFO", pattern=r"^(TRACE|DEBUG|INFO|SUCCESS|WARNING|ERROR|CRITICAL)$")
    log_dir: str = "logs"
    public_ip_check: bool = True


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mode: str = Field(default="paper", pattern=r"^(paper|live)$")
    binance: BinanceConfig = Field(default_factory=BinanceConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    trading: TradingConfig = Field(default_factory=TradingConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# env var -> (section, key); section None means top level
ENV_OVERRIDES: dict[str, tuple[str | None, str]] = {
    "BOT_MODE": (None, "mode"),
    "BINANCE_API_KEY": ("binance", "api_key"),
    "BINANCE_API_SECRET": ("binance", "api_secret"),
    "BINANCE_BASE_URL": ("binance", "base_url"),
    "TELEGRAM_BOT_TOKEN": ("telegram", "bot_token"),
    "TELEGRAM_CHAT_ID": ("telegram", "chat_id"),
    "ORDER_USDT": ("trading", "usdt_amount"),
    "LEVERAGE": ("trading", "leverage"),
    "WEBHOOK_SECRET": ("webhook", "secret"),
    "PORT": ("server", "port"),
    "LOG_LEVEL": ("logging", "level"),
}


def _apply_env(raw_data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    data = dict(raw_data)
    for var, (section, key) in ENV_OVERRIDES.items():
        value = env.get(var)
        if value is None or value.strip() == "":
            continue
        if section is None:
            data[key] = value.strip()
            continue
        nested = dict(data.get(section) or {})
        nested[key] = value.strip()
        data[section] = nested
    return data


def load_config(path: str | Path | None = "config.yml", env: Mapping[str, str] | None = None) -> AppConfig:
    """Load optional YAML config, overlay environment variables and validate schema."""
    raw_data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw_data = yaml.safe_load(fh) or {}
            if not isinstance(raw_data, dict):
                raise ValueError(f"Invalid config '{config_path}': top level must be a mapping")

    data = _apply_env(raw_data, os.environ if env is None else env)
    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid config '{path}': {exc}") from exc
