"""Exchange connectivity status and public IP lookup."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any
from urllib.request import urlopen

from app.exchange_client import BinanceFuturesClient


PUBLIC_IP_URL = "https://api.ipify.org?format=json"


@dataclass(slots=True)
class HealthStatus:
    api: str = "UNKNOWN"
    api_consecutive_errors: int = 0


class HealthMonitor:
    def __init__(self, exchange: BinanceFuturesClient, logger: Any | None = None) -> None:
        self.exchange = exchange
        self.logger = logger
        self.status = HealthStatus()

    async def check_once(self) -> None:
        try:
            ok = await self.exchange.ping()
            if not ok:
                raise RuntimeError("exchange ping returned False")
            self.status.api = "OK"
            self.status.api_consecutive_errors = 0
        except Exception as exc:  # noqa: BLE001
            self.status.api = "ERROR"
            self.status.api_consecutive_errors += 1
            if self.logger is not None:
                self.logger.error("HealthMonitor API check failed: {}", exc)

    def snapshot(self) -> dict[str, str | int]:
        return {
            "api": self.status.api,
            "api_consecutive_errors": self.status.api_consecutive_errors,
        }


def _fetch_public_ip(timeout_sec: float) -> str | None:
    with urlopen(PUBLIC_IP_URL, timeout=timeout_sec) as resp:
        data = json.loads(resp.read().decode("utf-8") or "{}")
    return data.get("ip")


async def get_public_ip(logger: Any | None = None, timeout_sec: float = 5) -> str | None:
    """Outbound IP, useful for the API key whitelist. None when unreachable."""
    try:
        return await asyncio.to_thread(_fetch_public_ip, timeout_sec)
    except Exception as exc:  # noqa: BLE001
        if logger is not None:
            logger.error("Public IP lookup failed: {}", exc)
        return None
