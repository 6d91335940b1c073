"""Service for the Brazilian national holiday calendar shown next to bookings."""

from __future__ import annotations

from datetime import date, timedelta
from functools import lru_cache

from dateutil.easter import EASTER_WESTERN, easter

from app.domain.models import Holiday, HolidayType

_FIXED_HOLIDAYS = (
    (1, 1, "Confraternização Universal"),
    (4, 21, "Tiradentes"),
    (5, 1, "Dia do Trabalhador"),
    (9, 7, "Independência do Brasil"),
    (10, 12, "Nossa Senhora Aparecida"),
    (11, 2, "Finados"),
    (11, 15, "Proclamação da República"),
    (12, 25, "Natal"),
)

# Offsets in days from Easter Sunday.
_MOVABLE_HOLIDAYS = (
    (-47, "Carnaval"),
    (-2, "Sexta-feira Santa"),
    (60, "Corpus Christi"),
)


@lru_cache(maxsize=32)
def _holidays_for_year(year: int) -> tuple[Holiday, ...]:
    holidays = [
        Holiday(date=date(year, month, day), name=name, type=HolidayType.NATIONAL)
        for month, day, name in _FIXED_HOLIDAYS
    ]
    easter_sunday = easter(year, EASTER_WESTERN)
    holidays.extend(
        Holiday(date=easter_sunday + timedelta(days=offset), name=name, type=HolidayType.NATIONAL)
        for offset, name in _MOVABLE_HOLIDAYS
    )
    return tuple(sorted(holidays, key=lambda h: h.date))


def holidays_for_year(year: int) -> list[Holiday]:
    return list(_holidays_for_year(year))


def holiday_on(day: date) -> Holiday | None:
    for holiday in _holidays_for_year(day.year):
        if holiday.date == day:
            return holiday
    return None


def holidays_between(start: date, end: date) -> list[Holiday]:
    """Holidays with ``start <= date <= end``, ordered by date."""
    if end < start:
        return []
    return [
        holiday
        for year in range(start.year, end.year + 1)
        for holiday in _holidays_for_year(year)
        if start <= holiday.date <= end
    ]
