"""Process-wide signal counters, reset when the UTC day rolls over."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime


COUNTER_KINDS = ("received", "executed", "rejected", "failed", "closed_positions")


def _utc_today() -> date:
    return datetime.now(UTC).date()


@dataclass(slots=True)
class SignalCounters:
    clock: Callable[[], date] = _utc_today
    window: date | None = None
    counts: dict[str, int] = field(default_factory=lambda: dict.fromkeys(COUNTER_KINDS, 0))

    def _roll(self) -> None:
        today = self.clock()
        if self.window != today:
            self.window = today
            self.counts = dict.fromkeys(COUNTER_KINDS, 0)

    def record(self, kind: str) -> int:
        if kind not in COUNTER_KINDS:
            raise KeyError(f"unknown counter: {kind}")
        self._roll()
        self.counts[kind] += 1
        return self.counts[kind]

    def get(self, kind: str) -> int:
        self._roll()
        return self.counts.get(kind, 0)

    def snapshot(self) -> dict[str, str | int]:
        self._roll()
        return {"window": self.window.isoformat(), **self.counts}
