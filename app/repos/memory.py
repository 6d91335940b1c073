"""In-memory repositories for areas, desks, reservations and reservation logs."""

from __future__ import annotations

import threading
from datetime import date
from typing import Iterable, Sequence

from app.domain.exceptions import DuplicateReservationError
from app.domain.models import Area, Desk, NewReservation, Reservation, ReservationLog


class AreaRepository:
    """Dict-backed store for Area instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Area] = {}

    def add(self, area: Area) -> None:
        self._store[area.id] = area

    def get(self, area_id: str) -> Area | None:
        return self._store.get(area_id)

    def list_all(self) -> list[Area]:
        return sorted(self._store.values(), key=lambda a: a.name)


class DeskRepository:
    """Dict-backed store for Desk instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Desk] = {}

    def add(self, desk: Desk) -> None:
        self._store[desk.id] = desk

    def get(self, desk_id: str) -> Desk | None:
        return self._store.get(desk_id)

    def list_all(self) -> list[Desk]:
        return list(self._store.values())


class ReservationRepository:
    """Dict-backed reservation store with a unique (desk_id, date) index.

    Batch writes and deletes hold a lock, so a batch is applied entirely or
    not at all.
    """

    def __init__(self) -> None:
        self._store: dict[str, Reservation] = {}
        self._slots: dict[tuple[str, date], str] = {}
        self._lock = threading.Lock()

    def get(self, reservation_id: str) -> Reservation | None:
        return self._store.get(reservation_id)

    def find_by_desk_and_date(self, desk_id: str, on_date: date) -> Reservation | None:
        reservation_id = self._slots.get((desk_id, on_date))
        if reservation_id is None:
            return None
        return self._store.get(reservation_id)

    def find_by_desk_and_date_range(
        self,
        desk_id: str,
        from_date: date,
        to_date: date | None = None,
    ) -> list[Reservation]:
        return sorted(
            (
                r
                for r in self._store.values()
                if r.desk_id == desk_id
                and r.date >= from_date
                and (to_date is None or r.date <= to_date)
            ),
            key=lambda r: r.date,
        )

    def list_reservations(
        self,
        desk_id: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Reservation]:
        return sorted(
            (
                r
                for r in self._store.values()
                if (desk_id is None or r.desk_id == desk_id)
                and (start_date is None or r.date >= start_date)
                and (end_date is None or r.date <= end_date)
            ),
            key=lambda r: (r.date, r.desk_id),
        )

    def insert_many(self, reservations: Sequence[NewReservation]) -> list[Reservation]:
        with self._lock:
            seen: set[tuple[str, date]] = set()
            taken: list[tuple[str, date]] = []
            for item in reservations:
                slot = (item.desk_id, item.date)
                if slot in self._slots or slot in seen:
                    taken.append(slot)
                seen.add(slot)
            if taken:
                raise DuplicateReservationError(taken)

            created = [Reservation(**item.model_dump()) for item in reservations]
            for reservation in created:
                self._store[reservation.id] = reservation
                self._slots[(reservation.desk_id, reservation.date)] = reservation.id
            return created

    def replace(
        self, reservation_id: str, replacement: NewReservation
    ) -> tuple[Reservation, Reservation]:
        slot = (replacement.desk_id, replacement.date)
        with self._lock:
            if self._slots.get(slot) != reservation_id:
                raise DuplicateReservationError([slot])
            removed = self._store.pop(reservation_id)
            created = Reservation(**replacement.model_dump())
            self._store[created.id] = created
            self._slots[slot] = created.id
            return removed, created

    def delete_many(self, reservation_ids: Iterable[str]) -> None:
        with self._lock:
            for reservation_id in list(reservation_ids):
                reservation = self._store.pop(reservation_id, None)
                if reservation is not None:
                    self._slots.pop((reservation.desk_id, reservation.date), None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self._slots.clear()


class ReservationLogRepository:
    """List-backed store for ReservationLog entries."""

    def __init__(self) -> None:
        self._entries: list[ReservationLog] = []

    def add(self, entry: ReservationLog) -> None:
        self._entries.append(entry)

    def list_recent(
        self, desk_id: str | None = None, limit: int | None = None
    ) -> list[ReservationLog]:
        entries = sorted(
            (e for e in self._entries if desk_id is None or e.desk_id == desk_id),
            key=lambda e: e.timestamp,
            reverse=True,
        )
        return entries[:limit] if limit is not None else entries
