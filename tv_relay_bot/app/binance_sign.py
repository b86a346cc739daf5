"""Helpers for signing Binance REST API requests."""

from __future__ import annotations

import hashlib
import hmac
import time
from urllib.parse import urlencode


def build_query(params: dict[str, object]) -> str:
    """Build query string without None values, keeping parameter order."""
    filtered = [(k, v) for k, v in params.items() if v is not None]
    return urlencode(filtered, doseq=True)


def sign_payload(secret: str, payload: str) -> str:
    """Return HMAC SHA256 hex digest for payload."""
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def signed_query(
    params: dict[str, object],
    api_secret: str,
    recv_window: int | None = None,
    timestamp: int | None = None,
) -> tuple[str, str]:
    """Create query string + signature with recvWindow/timestamp appended."""
    ts = timestamp if timestamp is not None else int(time.time() * 1000)
    all_params = {**params, "recvWindow": recv_window, "timestamp": ts}
    query = build_query(all_params)
    signature = sign_payload(api_secret, query)
    return query, signature
