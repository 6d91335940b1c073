"""Service for classifying candidate occurrences against a desk's reservations.

Priority rules:

1. A new individual booking on a date that is already taken is a conflict the
   caller has to resolve (replace or give up).
2. A recurring candidate landing on an individual booking is dropped from the
   batch and reported; the rest of the series goes ahead.
3. A recurring request is rejected as a whole when an existing series still
   occupies one of its weekdays inside the new window. This short-circuits
   rule 2.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Iterable

from app.domain.models import (
    Classification,
    IndividualConflict,
    NewReservation,
    RecurringConflict,
    Reservation,
)
from app.services.recurrence import normalize_weekdays, weekday_index

logger = logging.getLogger(__name__)

SeriesKey = tuple[str, tuple[int, ...]]


def _conflict_for(day: date, existing: Reservation) -> IndividualConflict:
    return IndividualConflict(
        date=day,
        existing_owner_label=existing.owner_label,
        existing_reservation_id=existing.id,
        existing_is_recurring=existing.is_recurring,
    )


def group_series(existing: Iterable[Reservation]) -> dict[SeriesKey, list[Reservation]]:
    """Rebuild recurring series by grouping rows on (owner label, recurring_days).

    Rows are expected to belong to a single desk. Each group is date-ordered.
    """
    series: dict[SeriesKey, list[Reservation]] = defaultdict(list)
    for reservation in existing:
        if not reservation.is_recurring:
            continue
        key = (reservation.owner_label, tuple(sorted(reservation.recurring_days or ())))
        series[key].append(reservation)
    for rows in series.values():
        rows.sort(key=lambda r: r.date)
    return dict(series)


def classify_individual(
    candidate: NewReservation, existing: Iterable[Reservation]
) -> Classification:
    """Classify a single-date booking.

    Whatever already holds the slot (individual or, for invariant reasons,
    recurring) is reported and nothing is accepted.
    """
    for reservation in existing:
        if reservation.desk_id == candidate.desk_id and reservation.date == candidate.date:
            return Classification(individual_conflicts=[_conflict_for(candidate.date, reservation)])
    return Classification(accepted=[candidate])


def find_recurring_conflicts(
    weekdays: Iterable[int],
    window_start: date,
    window_end: date,
    existing: Iterable[Reservation],
) -> list[RecurringConflict]:
    """Return one conflict per existing series that overlaps on weekday and on dates.

    A series' weekday set is read from the dates it still occupies inside the
    window; stored ``recurring_days`` go stale after partial cancellations.
    """
    new_days = normalize_weekdays(weekdays)
    new_set = set(new_days)
    conflicts: list[RecurringConflict] = []

    for (owner_label, _), rows in group_series(existing).items():
        active = [r.date for r in rows if window_start <= r.date <= window_end]
        existing_days = sorted({weekday_index(d) for d in active})
        colliding = [d for d in active if weekday_index(d) in new_set]
        if not colliding:
            continue
        conflicts.append(
            RecurringConflict(
                existing_owner_label=owner_label,
                existing_weekdays=existing_days,
                new_weekdays=new_days,
                first_conflict_date=colliding[0],
            )
        )

    conflicts.sort(key=lambda c: (c.first_conflict_date, c.existing_owner_label))
    return conflicts


def classify_recurring(
    candidates: list[NewReservation],
    weekdays: Iterable[int],
    window_start: date,
    window_end: date,
    existing: Iterable[Reservation],
) -> Classification:
    """Partition a recurring expansion into accepted and conflicting occurrences.

    ``existing`` must cover at least ``[window_start, window_end]`` for the
    target desk; rows outside the window are ignored.
    """
    existing = list(existing)
    recurring_conflicts = find_recurring_conflicts(weekdays, window_start, window_end, existing)
    if recurring_conflicts:
        logger.info(
            "Recurring request rejected: %d overlapping series (%s)",
            len(recurring_conflicts),
            ", ".join(c.existing_owner_label for c in recurring_conflicts),
        )
        return Classification(recurring_conflicts=recurring_conflicts)

    occupied = {(r.desk_id, r.date): r for r in existing}
    accepted: list[NewReservation] = []
    dropped: list[IndividualConflict] = []
    for candidate in candidates:
        holder = occupied.get((candidate.desk_id, candidate.date))
        if holder is None:
            accepted.append(candidate)
        else:
            dropped.append(_conflict_for(candidate.date, holder))

    if dropped:
        logger.info(
            "Dropped %d of %d recurring occurrence(s) already taken",
            len(dropped),
            len(candidates),
        )
    return Classification(accepted=accepted, individual_conflicts=dropped)
