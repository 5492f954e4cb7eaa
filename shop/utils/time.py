"""UTC time window helpers."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def today_window_utc() -> tuple[datetime, datetime]:
    """Return today's UTC window boundaries.

    All timestamps are stored in UTC, so "today" filtering uses UTC
    boundaries as well.
    """
    now = datetime.now(timezone.utc)
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1)
    return start, end


def month_start_utc() -> datetime:
    now = datetime.now(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def day_bounds(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    """Convert an inclusive date range into ``[start, end)`` UTC datetimes."""
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc) if start else None
    upper = datetime.combine(end, time.min, tzinfo=timezone.utc) + timedelta(days=1) if end else None
    return lower, upper
