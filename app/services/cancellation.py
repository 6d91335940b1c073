"""Service for working out which occurrences a cancellation removes."""

from __future__ import annotations

from typing import Iterable

from app.domain.exceptions import ReservationValidationError
from app.domain.models import CancelMode, Reservation
from app.services.recurrence import normalize_weekdays, weekday_index


def same_series(anchor: Reservation, candidates: Iterable[Reservation]) -> list[Reservation]:
    """Rows on the anchor's desk, booked recurrently under the anchor's owner label.

    The stored ``recurring_days`` is not compared: partial
    cancellations leave it stale.
    """
    return [
        r
        for r in candidates
        if r.is_recurring
        and r.desk_id == anchor.desk_id
        and r.owner_label == anchor.owner_label
    ]


def resolve_cancellation(
    mode: CancelMode,
    anchor: Reservation,
    series_rows: Iterable[Reservation],
    weekdays: Iterable[int] | None = None,
) -> list[Reservation]:
    """Return the occurrences to delete for *mode*, ordered by date.

    ``series_rows`` is the pool to search for ``series``/``partial`` modes,
    typically every reservation on the anchor's desk.
    """
    if mode == CancelMode.SINGLE:
        return [anchor]

    if not anchor.is_recurring:
        raise ReservationValidationError(
            f"Reservation {anchor.id} is not part of a recurring series"
        )

    rows = sorted(same_series(anchor, series_rows), key=lambda r: r.date)
    if mode == CancelMode.SERIES:
        return rows

    days = normalize_weekdays(weekdays or ())
    if not days:
        raise ReservationValidationError("Select at least one weekday to cancel")
    chosen = set(days)
    # The weekday comes from the date itself, never from recurring_days.
    return [r for r in rows if weekday_index(r.date) in chosen]
