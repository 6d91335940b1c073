"""Tests for the occupancy, usage and CSV export reports."""

from __future__ import annotations

from datetime import date

import pytest

from app.domain.exceptions import ReservationValidationError
from app.domain.models import Area, Desk, NewReservation
from app.repos.memory import AreaRepository, DeskRepository, ReservationRepository
from app.services.reports import (
    NO_AREA_ID,
    ReportService,
    export_filename,
    occupancy_percentage,
    working_days,
)

TODAY = date(2026, 3, 2)  # Monday


@pytest.fixture()
def env():
    """Two named areas, four desks (one without area) and a week of bookings."""
    area_repo = AreaRepository()
    desk_repo = DeskRepository()
    reservation_repo = ReservationRepository()

    area_repo.add(Area(id="area-eng", name="Engenharia", color="#2563eb"))
    area_repo.add(Area(id="area-com", name="Comercial", color="#16a34a"))
    desk_repo.add(Desk(id="d1", code="A-01", area_id="area-eng"))
    desk_repo.add(Desk(id="d2", code="A-02", area_id="area-eng"))
    desk_repo.add(Desk(id="d3", code="B-01", area_id="area-com"))
    desk_repo.add(Desk(id="d4", code="C-01"))

    reservation_repo.insert_many(
        [
            NewReservation(desk_id="d1", date=date(2026, 3, 2), owner_label="Alice"),
            NewReservation(
                desk_id="d1",
                date=date(2026, 3, 3),
                owner_label="Bob",
                is_recurring=True,
                recurring_days=[2],
            ),
            NewReservation(desk_id="d2", date=date(2026, 3, 2), owner_label="Carol"),
            NewReservation(
                desk_id="d3",
                date=date(2026, 3, 4),
                owner_label="Dave",
                is_recurring=True,
                recurring_days=[3],
            ),
            NewReservation(desk_id="d4", date=date(2026, 3, 6), owner_label="Eve"),
            # Desk removed from the directory: never counted.
            NewReservation(desk_id="gone", date=date(2026, 3, 2), owner_label="Zed"),
        ]
    )

    class Env:
        pass

    e = Env()
    e.area_repo = area_repo
    e.desk_repo = desk_repo
    e.reservation_repo = reservation_repo
    e.service = ReportService(store=reservation_repo, desks=desk_repo, areas=area_repo)
    return e


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def test_working_days_skip_weekends():
    days = working_days(date(2026, 3, 6), date(2026, 3, 10))
    assert days == [date(2026, 3, 6), date(2026, 3, 9), date(2026, 3, 10)]
    assert working_days(date(2026, 3, 10), date(2026, 3, 6)) == []


def test_occupancy_percentage_without_desks_is_zero():
    assert occupancy_percentage([], 0, date(2026, 3, 2), date(2026, 3, 6)) == 0.0


@pytest.mark.parametrize(
    "start, end, expected",
    [
        (date(2026, 3, 2), date(2026, 3, 6), "reservas-02032026-06032026.csv"),
        (None, None, "reservas-02032026.csv"),
        (date(2026, 3, 2), None, "reservas-02032026.csv"),
    ],
)
def test_export_filename(start, end, expected):
    assert export_filename(TODAY, start, end) == expected


# ---------------------------------------------------------------------------
# Overview
# ---------------------------------------------------------------------------


def test_overview_without_period_uses_today(env):
    report = env.service.overview(TODAY)

    assert report.total_desks == 4
    assert report.total_reservations == 5
    assert report.today_reservations == 2
    assert report.occupancy_rate == 50
    assert report.period_occupancy_rate == 50.0
    assert report.period is None


def test_overview_period_counts_working_desk_days(env):
    report = env.service.overview(TODAY, date(2026, 3, 2), date(2026, 3, 8))

    # 5 occupied desk-days over 4 desks x 5 working days.
    assert report.period_occupancy_rate == 25.0
    assert report.total_reservations == 5
    assert report.period.start_date == date(2026, 3, 2)


def test_overview_single_day_period(env):
    report = env.service.overview(TODAY, date(2026, 3, 2), date(2026, 3, 2))

    assert report.total_reservations == 2
    assert report.period_occupancy_rate == 50.0


def test_overview_rejects_reversed_period(env):
    with pytest.raises(ReservationValidationError):
        env.service.overview(TODAY, date(2026, 3, 8), date(2026, 3, 2))


# ---------------------------------------------------------------------------
# Usage by area
# ---------------------------------------------------------------------------


def test_usage_groups_by_area_with_unassigned_desks_last(env):
    report = env.service.usage()

    by_area = {u.area_id: u for u in report.usage_by_area}
    assert [u.area_name for u in report.usage_by_area] == ["Comercial", "Engenharia", "Sem Área"]

    eng = by_area["area-eng"]
    assert (eng.total_desks, eng.total_reservations) == (2, 3)
    assert (eng.recurring_desks, eng.individual_desks) == (1, 2)
    assert eng.usage_percentage == 100.0

    assert by_area["area-com"].recurring_desks == 1
    assert by_area[NO_AREA_ID].total_reservations == 1

    assert report.summary.total_reservations == 5
    assert report.summary.total_recurring_desks == 2
    assert report.summary.total_individual_desks == 3
    assert report.summary.period is None


def test_usage_over_period(env):
    report = env.service.usage(date(2026, 3, 2), date(2026, 3, 6))

    rates = {u.area_id: u.usage_percentage for u in report.usage_by_area}
    assert rates == {"area-eng": 30.0, "area-com": 20.0, NO_AREA_ID: 20.0}
    assert report.summary.period.end_date == date(2026, 3, 6)


def test_usage_omits_unassigned_group_when_every_desk_has_an_area(env):
    env.desk_repo._store.pop("d4")

    report = env.service.usage()

    assert NO_AREA_ID not in {u.area_id for u in report.usage_by_area}


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------


def test_export_csv_lists_reservations_by_date_and_desk(env):
    content = env.service.export_csv(date(2026, 3, 2), date(2026, 3, 6))

    assert content.startswith("\ufeff")
    lines = content[1:].split("\r\n")
    assert lines == [
        "Data;Dia da Semana;Mesa;Área;Nome;Tipo",
        "02/03/2026;Segunda;A-01;Engenharia;Alice;Individual",
        "02/03/2026;Segunda;A-02;Engenharia;Carol;Individual",
        "03/03/2026;Terça;A-01;Engenharia;Bob;Recorrente",
        "04/03/2026;Quarta;B-01;Comercial;Dave;Recorrente",
        "06/03/2026;Sexta;C-01;Sem Área;Eve;Individual",
        "",
    ]


def test_export_csv_quotes_separators(env):
    env.reservation_repo.insert_many(
        [NewReservation(desk_id="d2", date=date(2026, 3, 9), owner_label='Ana; "Bia"')]
    )

    content = env.service.export_csv(date(2026, 3, 9), date(2026, 3, 9))

    assert '09/03/2026;Segunda;A-02;Engenharia;"Ana; ""Bia""";Individual' in content
