from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """UTC wall clock truncated to milliseconds, the precision clients render."""

    def now(self) -> datetime:
        ts = datetime.now(timezone.utc)
        return ts.replace(microsecond=ts.microsecond // 1000 * 1000)
