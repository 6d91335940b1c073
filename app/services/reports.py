"""Service for occupancy and usage reports over stored reservations.

Only reservations on desks known to the desk directory are counted. Rates are
percentages; a multi-day period counts occupied desk-days on working days
(Monday to Friday) against ``desks * working days``.
"""

from __future__ import annotations

import csv
import io
import logging
from collections import Counter, defaultdict
from datetime import date, datetime
from typing import Iterable

from dateutil.rrule import DAILY, FR, MO, TH, TU, WE, rrule

from app.domain.exceptions import ReservationValidationError
from app.domain.models import (
    AreaUsage,
    OverviewReport,
    ReportPeriod,
    Reservation,
    UsageReport,
    UsageSummary,
)
from app.repos.base import AreaDirectory, DeskDirectory, ReservationStore

logger = logging.getLogger(__name__)

NO_AREA_ID = "sem-area"
NO_AREA_NAME = "Sem Área"
NO_AREA_COLOR = "#d1d5db"

CSV_HEADER = ("Data", "Dia da Semana", "Mesa", "Área", "Nome", "Tipo")
_WEEKDAY_LABELS = ("Segunda", "Terça", "Quarta", "Quinta", "Sexta", "Sábado", "Domingo")


def working_days(start: date, end: date) -> list[date]:
    """Monday-to-Friday dates in ``[start, end]``."""
    if end < start:
        return []
    rule = rrule(
        DAILY,
        dtstart=datetime.combine(start, datetime.min.time()),
        until=datetime.combine(end, datetime.min.time()),
        byweekday=(MO, TU, WE, TH, FR),
    )
    return [dt.date() for dt in rule]


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def occupancy_percentage(
    rows: Iterable[Reservation],
    total_desks: int,
    start: date | None = None,
    end: date | None = None,
) -> float:
    """Share of desk capacity taken by *rows*.

    Without a multi-day period this is distinct booked desks over *total_desks*.
    """
    rows = list(rows)
    if not total_desks:
        return 0.0
    if start is None or end is None or start == end:
        return _percent(len({r.desk_id for r in rows}), total_desks)

    days = working_days(start, end)
    taken: dict[date, set[str]] = defaultdict(set)
    for reservation in rows:
        taken[reservation.date].add(reservation.desk_id)
    occupied = sum(len(taken[day]) for day in days if day in taken)
    return _percent(occupied, total_desks * len(days))


def export_filename(today: date, start: date | None = None, end: date | None = None) -> str:
    if start is not None and end is not None:
        return f"reservas-{start:%d%m%Y}-{end:%d%m%Y}.csv"
    return f"reservas-{today:%d%m%Y}.csv"


class ReportService:
    """Read-only reports for the office dashboard."""

    def __init__(
        self, store: ReservationStore, desks: DeskDirectory, areas: AreaDirectory
    ) -> None:
        self.store = store
        self.desks = desks
        self.areas = areas

    @staticmethod
    def _period(start_date: date | None, end_date: date | None) -> ReportPeriod | None:
        if start_date is not None and end_date is not None:
            if end_date < start_date:
                raise ReservationValidationError(
                    f"End date {end_date} is before start date {start_date}"
                )
            return ReportPeriod(start_date=start_date, end_date=end_date)
        return None

    def _rows(self, desk_ids: set[str], start_date: date | None, end_date: date | None):
        return [
            r
            for r in self.store.list_reservations(start_date=start_date, end_date=end_date)
            if r.desk_id in desk_ids
        ]

    def overview(
        self, today: date, start_date: date | None = None, end_date: date | None = None
    ) -> OverviewReport:
        period = self._period(start_date, end_date)
        desk_ids = {desk.id for desk in self.desks.list_all()}
        rows = self._rows(desk_ids, start_date, end_date)
        today_count = len(self._rows(desk_ids, today, today))

        total_desks = len(desk_ids)
        occupancy_rate = round(today_count / total_desks * 100) if total_desks else 0
        period_rate = float(occupancy_rate)
        if period is not None:
            period_rate = occupancy_percentage(rows, total_desks, start_date, end_date)

        return OverviewReport(
            total_desks=total_desks,
            total_reservations=len(rows),
            today_reservations=today_count,
            occupancy_rate=occupancy_rate,
            period_occupancy_rate=period_rate,
            period=period,
        )

    def usage(self, start_date: date | None = None, end_date: date | None = None) -> UsageReport:
        """Per-area usage, with desks that have no area grouped under "Sem Área"."""
        period = self._period(start_date, end_date)
        desk_area = {desk.id: desk.area_id or NO_AREA_ID for desk in self.desks.list_all()}
        desks_per_area = Counter(desk_area.values())
        rows_per_area: dict[str, list[Reservation]] = defaultdict(list)
        for reservation in self._rows(set(desk_area), start_date, end_date):
            rows_per_area[desk_area[reservation.desk_id]].append(reservation)

        def _area_usage(area_id: str, name: str, color: str) -> AreaUsage:
            rows = rows_per_area.get(area_id, [])
            total_desks = desks_per_area.get(area_id, 0)
            return AreaUsage(
                area_id=area_id,
                area_name=name,
                area_color=color,
                total_desks=total_desks,
                total_reservations=len(rows),
                recurring_desks=len({r.desk_id for r in rows if r.is_recurring}),
                individual_desks=len({r.desk_id for r in rows if not r.is_recurring}),
                usage_percentage=occupancy_percentage(rows, total_desks, start_date, end_date),
            )

        usage = [_area_usage(area.id, area.name, area.color) for area in self.areas.list_all()]
        if desks_per_area.get(NO_AREA_ID):
            usage.append(_area_usage(NO_AREA_ID, NO_AREA_NAME, NO_AREA_COLOR))

        return UsageReport(
            usage_by_area=usage,
            summary=UsageSummary(
                total_reservations=sum(u.total_reservations for u in usage),
                total_recurring_desks=sum(u.recurring_desks for u in usage),
                total_individual_desks=sum(u.individual_desks for u in usage),
                period=period,
            ),
        )

    def export_csv(self, start_date: date | None = None, end_date: date | None = None) -> str:
        """Semicolon-separated reservation listing, BOM-prefixed for spreadsheet apps."""
        self._period(start_date, end_date)
        desks = {desk.id: desk for desk in self.desks.list_all()}
        rows = sorted(
            self._rows(set(desks), start_date, end_date),
            key=lambda r: (r.date, desks[r.desk_id].code),
        )

        output = io.StringIO()
        output.write("\ufeff")
        writer = csv.writer(output, delimiter=";", lineterminator="\r\n")
        writer.writerow(CSV_HEADER)
        for reservation in rows:
            desk = desks[reservation.desk_id]
            if desk.area_id is None:
                area_name = NO_AREA_NAME
            else:
                area = self.areas.get(desk.area_id)
                area_name = area.name if area is not None else "N/A"
            writer.writerow(
                (
                    f"{reservation.date:%d/%m/%Y}",
                    _WEEKDAY_LABELS[reservation.date.weekday()],
                    desk.code,
                    area_name,
                    reservation.owner_label or "N/A",
                    "Recorrente" if reservation.is_recurring else "Individual",
                )
            )

        logger.info("Exported %d reservation(s) to CSV", len(rows))
        return output.getvalue()
