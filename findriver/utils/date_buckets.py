"""
Date helpers for the metrics engine.

Bucket keys sort lexicographically in chronological order:
- diario   YYYY-MM-DD
- semanal  YYYY-WW, WW = ceil((dow(Jan 1) + 1 + days since Jan 1) / 7), Sunday = 0
- mensual  YYYY-MM
- anual    YYYY

The weekly scheme is not ISO 8601: week 1 always starts on Jan 1, so Dec 31
and the following Jan 1 never share a bucket.
"""

import math
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from findriver.core.exceptions import InvalidWindow


class Period(str, Enum):
    DAILY = "diario"
    WEEKLY = "semanal"
    MONTHLY = "mensual"
    YEARLY = "anual"


END_OF_DAY = time(23, 59, 59, 999000)


def resolve_timezone(name: Optional[str]) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def local_day(instant: datetime, tz: tzinfo = timezone.utc) -> date:
    """Calendar date of an instant as seen in ``tz``. Naive instants are UTC."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(tz).date()


def week_number(day: date) -> int:
    jan1 = date(day.year, 1, 1)
    jan1_dow = (jan1.weekday() + 1) % 7
    days_since_jan1 = (day - jan1).days
    return math.ceil((jan1_dow + 1 + days_since_jan1) / 7)


def bucket_key(instant: datetime, period: Period = Period.DAILY, tz: tzinfo = timezone.utc) -> str:
    day = local_day(instant, tz)
    period = Period(period)
    if period == Period.DAILY:
        return day.strftime("%Y-%m-%d")
    if period == Period.WEEKLY:
        return f"{day.year:04d}-{week_number(day):02d}"
    if period == Period.MONTHLY:
        return day.strftime("%Y-%m")
    return f"{day.year:04d}"


def normalize_window(
    start: Optional[date] = None,
    end: Optional[date] = None,
    tz_name: str = "UTC",
    default_days: int = 30,
    today: Optional[date] = None
) -> Tuple[datetime, datetime]:
    """
    Turn calendar dates into an inclusive [start, end] pair of UTC instants.

    Missing bounds default to a trailing ``default_days`` window ending today.
    Start is pinned to 00:00:00.000 and end to 23:59:59.999 local time.
    Raises InvalidWindow when end falls before start.
    """
    tz = resolve_timezone(tz_name)
    if today is None:
        today = datetime.now(tz).date()

    end_day = end or today
    start_day = start or (end_day - timedelta(days=default_days))

    if end_day < start_day:
        raise InvalidWindow(
            "End date is before start date",
            {"endDate": f"{end_day.isoformat()} < {start_day.isoformat()}"}
        )

    start_at = datetime.combine(start_day, time.min, tzinfo=tz).astimezone(timezone.utc)
    end_at = datetime.combine(end_day, END_OF_DAY, tzinfo=tz).astimezone(timezone.utc)
    return start_at, end_at


def optional_window(
    start: Optional[date] = None,
    end: Optional[date] = None,
    tz_name: str = "UTC",
    default_days: int = 30,
    today: Optional[date] = None
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """No dates means no date filter; any date means a normalized window."""
    if start is None and end is None:
        return None, None
    return normalize_window(start, end, tz_name=tz_name, default_days=default_days, today=today)
