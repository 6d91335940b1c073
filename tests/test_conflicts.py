"""Tests for the conflict classification service."""

from datetime import date

from app.domain.models import NewReservation, Reservation
from app.services.conflicts import (
    classify_individual,
    classify_recurring,
    group_series,
)
from app.services.recurrence import expand_occurrences, series_drafts

MON, TUE, WED, THU, FRI = range(5)
DESK = "desk-1"


def _individual(day: date, owner: str = "Carol", desk_id: str = DESK) -> Reservation:
    return Reservation(desk_id=desk_id, date=day, owner_label=owner)


def _series(owner: str, weekdays: list[int], start: date, end: date) -> list[Reservation]:
    dates = expand_occurrences(start, weekdays, today=start, end=end)
    return [Reservation(**d.model_dump()) for d in series_drafts(DESK, owner, dates, weekdays)]


def _classify(owner, weekdays, start, end, existing, today=None):
    today = today or start
    dates = expand_occurrences(start, weekdays, today=today, end=end)
    candidates = series_drafts(DESK, owner, dates, weekdays)
    return classify_recurring(candidates, weekdays, max(start, today), end, existing)


# ---------------------------------------------------------------------------
# individual requests
# ---------------------------------------------------------------------------


def test_individual_on_taken_date_is_a_conflict():
    existing = [_individual(date(2026, 3, 4), owner="Alice")]
    candidate = NewReservation(desk_id=DESK, date=date(2026, 3, 4), owner_label="Bob")

    result = classify_individual(candidate, existing)

    assert result.accepted == []
    assert len(result.individual_conflicts) == 1
    conflict = result.individual_conflicts[0]
    assert conflict.existing_owner_label == "Alice"
    assert conflict.existing_reservation_id == existing[0].id
    assert conflict.existing_is_recurring is False
    assert not result.can_commit


def test_individual_on_free_date_is_accepted():
    existing = [_individual(date(2026, 3, 5))]
    candidate = NewReservation(desk_id=DESK, date=date(2026, 3, 4), owner_label="Bob")

    result = classify_individual(candidate, existing)

    assert result.accepted == [candidate]
    assert result.individual_conflicts == []
    assert result.can_commit


def test_individual_on_recurring_occurrence_is_reported_as_recurring():
    existing = _series("Alice", [WED], date(2026, 3, 2), date(2026, 3, 13))
    candidate = NewReservation(desk_id=DESK, date=date(2026, 3, 4), owner_label="Bob")

    result = classify_individual(candidate, existing)

    assert result.accepted == []
    assert result.individual_conflicts[0].existing_is_recurring is True


# ---------------------------------------------------------------------------
# recurring vs individual
# ---------------------------------------------------------------------------


def test_recurring_drops_only_dates_with_individual_bookings():
    """Four weeks of Mon/Wed with one Wednesday taken: 7 accepted, 1 dropped."""
    taken = date(2026, 3, 11)
    existing = [_individual(taken, owner="Carol")]

    result = _classify("Bob", [MON, WED], date(2026, 3, 2), date(2026, 3, 27), existing)

    assert len(result.accepted) == 7
    assert taken not in [r.date for r in result.accepted]
    assert len(result.individual_conflicts) == 1
    assert result.individual_conflicts[0].date == taken
    assert result.individual_conflicts[0].existing_owner_label == "Carol"
    assert result.recurring_conflicts == []
    assert result.dropped_dates == [taken]
    assert result.can_commit


def test_recurring_with_every_date_taken_cannot_commit():
    existing = [_individual(date(2026, 3, 2)), _individual(date(2026, 3, 9))]

    result = _classify("Bob", [MON], date(2026, 3, 2), date(2026, 3, 13), existing)

    assert result.accepted == []
    assert len(result.individual_conflicts) == 2
    assert not result.can_commit


# ---------------------------------------------------------------------------
# recurring vs recurring
# ---------------------------------------------------------------------------


def test_overlapping_series_rejects_everything():
    alice = _series("Alice", [FRI], date(2026, 3, 6), date(2026, 4, 24))
    assert len(alice) == 8

    result = _classify("Bob", [FRI], date(2026, 3, 6), date(2026, 3, 27), alice)

    assert result.accepted == []
    assert len(result.recurring_conflicts) == 1
    conflict = result.recurring_conflicts[0]
    assert conflict.existing_owner_label == "Alice"
    assert conflict.existing_weekdays == [FRI]
    assert conflict.new_weekdays == [FRI]
    assert conflict.first_conflict_date == date(2026, 3, 6)


def test_recurring_conflict_short_circuits_individual_dropping():
    existing = _series("Alice", [FRI], date(2026, 3, 6), date(2026, 4, 24))
    existing.append(_individual(date(2026, 3, 9), owner="Carol"))

    result = _classify("Bob", [MON, FRI], date(2026, 3, 2), date(2026, 3, 27), existing)

    assert result.accepted == []
    assert result.individual_conflicts == []
    assert [c.existing_owner_label for c in result.recurring_conflicts] == ["Alice"]


def test_first_conflict_date_is_inside_the_new_window():
    alice = _series("Alice", [FRI], date(2026, 3, 6), date(2026, 4, 24))

    result = _classify("Bob", [FRI], date(2026, 3, 16), date(2026, 4, 10), alice)

    assert result.recurring_conflicts[0].first_conflict_date == date(2026, 3, 20)


def test_same_weekday_without_date_overlap_is_accepted():
    """Alice holds Fridays in January; Bob asks for Fridays in March."""
    alice = _series("Alice", [FRI], date(2026, 1, 2), date(2026, 1, 30))
    assert len(alice) == 5

    result = _classify(
        "Bob", [FRI], date(2026, 3, 6), date(2026, 3, 27), alice, today=date(2026, 1, 1)
    )

    assert result.recurring_conflicts == []
    assert result.individual_conflicts == []
    assert len(result.accepted) == 4


def test_past_occurrences_of_existing_series_do_not_count():
    """Only currently active dates (today onward) are compared."""
    alice = _series("Alice", [FRI], date(2026, 3, 6), date(2026, 3, 13))

    result = _classify(
        "Bob", [FRI], date(2026, 3, 2), date(2026, 4, 3), alice, today=date(2026, 3, 16)
    )

    assert result.recurring_conflicts == []
    assert [r.date for r in result.accepted] == [
        date(2026, 3, 20),
        date(2026, 3, 27),
        date(2026, 4, 3),
    ]


def test_disjoint_weekdays_do_not_conflict():
    alice = _series("Alice", [MON, WED], date(2026, 3, 2), date(2026, 3, 27))

    result = _classify("Bob", [TUE, THU], date(2026, 3, 2), date(2026, 3, 27), alice)

    assert result.recurring_conflicts == []
    assert len(result.accepted) == 8


def test_series_weekdays_come_from_occupied_dates_not_stored_days():
    """A recurring row whose stored days say Monday still holds its Friday."""
    stale = Reservation(
        desk_id=DESK,
        date=date(2026, 3, 13),  # Friday
        owner_label="Alice",
        is_recurring=True,
        recurring_days=[1],  # says Monday
    )

    result = _classify("Bob", [FRI], date(2026, 3, 2), date(2026, 3, 27), [stale])

    assert result.accepted == []
    conflict = result.recurring_conflicts[0]
    assert conflict.existing_weekdays == [FRI]
    assert conflict.first_conflict_date == date(2026, 3, 13)


def test_weekday_left_by_partial_cancellation_is_free():
    """Alice kept only Mondays of a Mon/Wed series; her rows still store both days."""
    alice = [
        r
        for r in _series("Alice", [MON, WED], date(2026, 3, 2), date(2026, 3, 27))
        if r.date.weekday() == MON
    ]
    assert all(r.recurring_days == [1, 3] for r in alice)

    result = _classify("Bob", [WED], date(2026, 3, 2), date(2026, 3, 27), alice)

    assert result.recurring_conflicts == []
    assert result.individual_conflicts == []
    assert len(result.accepted) == 4


def test_each_overlapping_series_is_reported():
    alice = _series("Alice", [MON], date(2026, 3, 2), date(2026, 3, 27))
    dave = _series("Dave", [WED], date(2026, 3, 2), date(2026, 3, 27))

    result = _classify("Bob", [MON, WED], date(2026, 3, 2), date(2026, 3, 27), alice + dave)

    owners = [c.existing_owner_label for c in result.recurring_conflicts]
    assert owners == ["Alice", "Dave"]


# ---------------------------------------------------------------------------
# group_series
# ---------------------------------------------------------------------------


def test_group_series_by_owner_and_days():
    rows = (
        _series("Alice", [MON], date(2026, 3, 2), date(2026, 3, 16))
        + _series("Alice", [FRI], date(2026, 3, 2), date(2026, 3, 13))
        + [_individual(date(2026, 3, 3), owner="Alice")]
    )

    groups = group_series(rows)

    assert set(groups) == {("Alice", (1,)), ("Alice", (5,))}
    assert len(groups[("Alice", (1,))]) == 3
    assert len(groups[("Alice", (5,))]) == 2
