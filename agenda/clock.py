"""
Local-day arithmetic.

A task "belongs" to the local calendar day of its createdAt, habit logs are keyed by the
local date string, and "today" starts at local midnight. All helpers take the timezone
explicitly so they stay pure.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo


class SystemClock:
    def __init__(self, tz_name: str) -> None:
        self._tz = ZoneInfo(tz_name)

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        return datetime.now(self._tz)

    def today(self) -> date:
        return self.now().date()


def local_midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def day_bounds(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """[00:00:00.000, 23:59:59.999] of ``day`` in ``tz``."""
    start = local_midnight(day, tz)
    end = local_midnight(day + timedelta(days=1), tz) - timedelta(milliseconds=1)
    return start, end


def local_day(moment: datetime, tz: tzinfo) -> date:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=tz)
    return moment.astimezone(tz).date()


def date_string(day: date) -> str:
    return day.isoformat()


def weekday_index(day: date) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (day.weekday() + 1) % 7


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)
