"""Error types raised while relaying a webhook signal."""

from __future__ import annotations

from typing import Any


class RelayError(Exception):
    """Base class for relay failures."""


class SignalParseError(RelayError):
    """Inbound alert could not be turned into a trade signal."""


class SignalRejected(RelayError):
    """Signal parsed fine but a pre-order check refused it."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ExchangeError(RelayError):
    """Exchange call failed or returned an error payload."""

    def __init__(self, message: str, status: int | None = None, payload: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.payload = payload

    def details(self) -> Any:
        return self.payload if self.payload is not None else str(self)
