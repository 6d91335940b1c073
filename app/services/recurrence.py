"""Service for expanding weekly desk bookings into dated occurrences.

Three weekday conventions meet here:

* caller index: 0=Monday ... 4=Friday (weekends are not bookable),
* storage value in ``recurring_days``: 1=Monday ... 5=Friday,
* Python's ``date.weekday()`` / dateutil's ``MO``..``FR``: 0=Monday.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Iterable

from dateutil.rrule import FR, MO, TH, TU, WE, WEEKLY, rrule

from app.domain.exceptions import ReservationValidationError
from app.domain.models import NewReservation

logger = logging.getLogger(__name__)

DEFAULT_SERIES_WEEKS = 52

_RRULE_DAYS = (MO, TU, WE, TH, FR)
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")


def normalize_weekdays(weekdays: Iterable[int]) -> list[int]:
    """Validate caller weekday indices and return them sorted and deduplicated.

    Raises ``ReservationValidationError`` for anything outside Monday-Friday.
    """
    days = sorted(set(weekdays))
    invalid = [d for d in days if not 0 <= d <= 4]
    if invalid:
        raise ReservationValidationError(
            f"Invalid weekday(s) {invalid}: only 0 (Monday) to 4 (Friday) can be booked"
        )
    return days


def to_storage_days(weekdays: Iterable[int]) -> list[int]:
    return [d + 1 for d in normalize_weekdays(weekdays)]


def from_storage_days(recurring_days: Iterable[int] | None) -> list[int]:
    """Convert stored ``recurring_days`` back to caller indices, ignoring junk values."""
    return sorted({d - 1 for d in recurring_days or () if 1 <= d <= 5})


def weekday_index(day: date) -> int:
    """Caller weekday index of *day*; 5 and 6 mean Saturday and Sunday."""
    return day.weekday()


def default_series_end(start: date, weeks: int = DEFAULT_SERIES_WEEKS) -> date:
    return start + timedelta(weeks=weeks)


def expand_occurrences(
    start: date,
    weekdays: Iterable[int],
    today: date,
    end: date | None = None,
    weeks: int = DEFAULT_SERIES_WEEKS,
) -> list[date]:
    """Expand a weekly booking into the dates it occupies.

    For each weekday the first date is the first on-or-after *start* falling on
    it, then every seventh day until *end* (inclusive, default ``start`` plus
    *weeks*). Dates before *today* are dropped silently, so a series that
    started in the past only yields its future tail.
    """
    days = normalize_weekdays(weekdays)
    if not days:
        return []

    end = end or default_series_end(start, weeks)
    if end < start:
        return []

    rule = rrule(
        WEEKLY,
        dtstart=datetime.combine(start, datetime.min.time()),
        until=datetime.combine(end, datetime.min.time()),
        byweekday=[_RRULE_DAYS[d] for d in days],
    )
    occurrences = [dt.date() for dt in rule if dt.date() >= today]
    logger.debug(
        "Expanded %s..%s on %s into %d occurrence(s)",
        start,
        end,
        [WEEKDAY_NAMES[d] for d in days],
        len(occurrences),
    )
    return occurrences


def series_drafts(
    desk_id: str,
    owner_label: str,
    dates: Iterable[date],
    weekdays: Iterable[int],
) -> list[NewReservation]:
    """Build the unsaved occurrences of one series, all sharing one weekday set."""
    recurring_days = to_storage_days(weekdays)
    return [
        NewReservation(
            desk_id=desk_id,
            date=day,
            owner_label=owner_label,
            is_recurring=True,
            recurring_days=list(recurring_days),
        )
        for day in dates
    ]
