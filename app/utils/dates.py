# app/utils/dates.py
"""Date helpers shared by the crawler, the backfill script and the API."""

from datetime import date, datetime, timedelta
from typing import Optional, Union

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def today_string(today: Optional[date] = None) -> str:
    return (today or date.today()).strftime(DATE_FORMAT)


def to_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value, DATE_FORMAT).date()


def date_range(start: Union[str, date], end: Union[str, date]) -> list[str]:
    """Inclusive list of YYYY-MM-DD strings from start to end. Empty if end < start."""
    current, last = to_date(start), to_date(end)
    days = []
    while current <= last:
        days.append(current.strftime(DATE_FORMAT))
        current += timedelta(days=1)
    return days


def day_bounds(day: Union[str, date]) -> tuple[datetime, datetime]:
    """[00:00:00, next day 00:00:00) for a calendar day."""
    start = datetime.combine(to_date(day), datetime.min.time())
    return start, start + timedelta(days=1)
