"""Date/time helpers anchored on UTC storage and the configured app timezone."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import settings


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """
    Normalize a datetime to aware UTC.

    Naive values are treated as UTC (SQLite returns naive datetimes even
    for timezone=True columns).
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        return ZoneInfo("UTC")


def app_timezone() -> ZoneInfo:
    return _zone(settings.APP_TIMEZONE)


def app_today(now: datetime | None = None) -> date:
    """Calendar date in APP_TIMEZONE."""
    current = as_utc(now) if now else utcnow()
    return current.astimezone(app_timezone()).date()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """UTC [start, end) covering one calendar day in APP_TIMEZONE."""
    tz = app_timezone()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def month_start(now: datetime | None = None) -> datetime:
    """UTC instant of the first day of the current month in APP_TIMEZONE."""
    today = app_today(now)
    start, _ = day_bounds(today.replace(day=1))
    return start


def previous_month_start(now: datetime | None = None) -> datetime:
    today = app_today(now).replace(day=1)
    last_month_day = today - timedelta(days=1)
    start, _ = day_bounds(last_month_day.replace(day=1))
    return start
