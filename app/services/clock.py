"""Civil-date clock for the single locale the service books in."""

from __future__ import annotations

from datetime import date, datetime, timedelta

from dateutil import tz


def local_today(tz_name: str, now: datetime | None = None) -> date:
    """Return the calendar date in *tz_name* at *now* (defaults to the current instant)."""
    zone = tz.gettz(tz_name)
    if zone is None:
        raise ValueError(f"Unknown timezone: {tz_name}")
    current = now or datetime.now(tz.UTC)
    if current.tzinfo is None:
        current = current.replace(tzinfo=tz.UTC)
    return current.astimezone(zone).date()


def default_booking_date(today: date) -> date:
    """The date a booking screen opens on: today, or the next Monday on weekends."""
    weekday = today.weekday()
    if weekday == 5:
        return today + timedelta(days=2)
    if weekday == 6:
        return today + timedelta(days=1)
    return today
