"""Local-time helpers shared by scoring, status derivation and the sweeps.

All datetimes handled by the engine are naive and expressed in the configured
local zone (``settings.TIMEZONE``, or the host zone when empty).
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from autotask.config import settings


def local_zone() -> ZoneInfo | None:
    name = (settings.TIMEZONE or "").strip()
    return ZoneInfo(name) if name else None


def to_local_naive(value: datetime | date) -> datetime:
    """
    Normalize a deadline/submission value to a naive local datetime.

    - a bare ``date`` becomes local midnight of that calendar day
    - an aware datetime is converted to the local zone, then made naive
    - a naive datetime is assumed to already be local
    """
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    if value.tzinfo is None:
        return value
    return value.astimezone(local_zone()).replace(tzinfo=None)


def local_day(value: datetime | date) -> date:
    return to_local_naive(value).date()


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999999)


def reminder_window(now: datetime) -> tuple[datetime, datetime]:
    """Inclusive window from the start of today to the end of tomorrow."""
    return start_of_day(now), end_of_day(now + timedelta(days=1))
