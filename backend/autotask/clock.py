"""Wall-clock access for the engine; swapped for a fixed clock in tests."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from autotask.config import settings


class SystemClock:
    """Current time as a naive datetime in the configured local zone."""

    def __init__(self, tz_name: str | None = None) -> None:
        name = (settings.TIMEZONE if tz_name is None else tz_name).strip()
        self._tz = ZoneInfo(name) if name else None

    def now(self) -> datetime:
        if self._tz is None:
            return datetime.now()
        return datetime.now(self._tz).replace(tzinfo=None)


system_clock = SystemClock()


def get_clock() -> SystemClock:
    return system_clock
