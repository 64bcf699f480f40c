"""
Time windows shared by the mindshare and signal engines.
"""
from __future__ import annotations

import enum
from datetime import date, datetime, time, timedelta, timezone

from signalboard.core.errors import InvalidWindowError


class TimeWindow(str, enum.Enum):
    h24 = "24h"
    h48 = "48h"
    d7 = "7d"
    d30 = "30d"

    @property
    def hours(self) -> int:
        return _WINDOW_HOURS[self]

    @classmethod
    def parse(cls, raw: str) -> "TimeWindow":
        try:
            return cls(raw)
        except ValueError:
            raise InvalidWindowError(raw, [w.value for w in cls]) from None


_WINDOW_HOURS: dict[TimeWindow, int] = {
    TimeWindow.h24: 24,
    TimeWindow.h48: 48,
    TimeWindow.d7: 7 * 24,
    TimeWindow.d30: 30 * 24,
}

ALL_WINDOWS: tuple[TimeWindow, ...] = tuple(TimeWindow)


def as_of_instant(as_of_date: date) -> datetime:
    """End of the as-of day (UTC, exclusive upper bound of every window)."""
    return datetime.combine(as_of_date + timedelta(days=1), time.min, tzinfo=timezone.utc)


def window_bounds(window: TimeWindow, as_of_date: date) -> tuple[datetime, datetime]:
    """[start, end) for a window ending at the close of as_of_date."""
    end = as_of_instant(as_of_date)
    return end - timedelta(hours=window.hours), end


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def today_utc() -> date:
    return datetime.now(tz=timezone.utc).date()
