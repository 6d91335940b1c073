"""Storage contract the reservation engine relies on."""

from __future__ import annotations

from abc import abstractmethod
from datetime import date
from typing import Iterable, Protocol, Sequence

from app.domain.models import Area, Desk, NewReservation, Reservation


class ReservationStore(Protocol):
    """
    Protocol for reservation storage backends.

    The store is the authority on "one occurrence per (desk, date)": it must
    refuse any write that would break that rule, and batch writes and batch
    deletes must be all-or-nothing.
    """

    @abstractmethod
    def get(self, reservation_id: str) -> Reservation | None:
        ...

    @abstractmethod
    def find_by_desk_and_date(self, desk_id: str, on_date: date) -> Reservation | None:
        ...

    @abstractmethod
    def find_by_desk_and_date_range(
        self,
        desk_id: str,
        from_date: date,
        to_date: date | None = None,
    ) -> list[Reservation]:
        """
        Get a desk's reservations with ``from_date <= date <= to_date``.

        Args:
            desk_id: Desk to scan
            from_date: Range start (inclusive)
            to_date: Range end (inclusive), open-ended when None

        Returns:
            Reservations ordered by date
        """
        ...

    @abstractmethod
    def insert_many(self, reservations: Sequence[NewReservation]) -> list[Reservation]:
        """
        Persist a batch atomically.

        Raises:
            DuplicateReservationError: a slot is already taken, or taken twice
                within the batch. Nothing from the batch is persisted.
        """
        ...

    @abstractmethod
    def list_reservations(
        self,
        desk_id: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Reservation]:
        """
        Get reservations across desks, each filter optional.

        Returns:
            Reservations ordered by (date, desk_id)
        """
        ...

    @abstractmethod
    def replace(
        self, reservation_id: str, replacement: NewReservation
    ) -> tuple[Reservation, Reservation]:
        """
        Swap the holder of a slot in one atomic step.

        Args:
            reservation_id: Reservation expected to hold the replacement's slot
            replacement: Occurrence to store in its place

        Returns:
            The removed reservation and the created one

        Raises:
            DuplicateReservationError: the slot is not held by ``reservation_id``.
                Nothing is changed.
        """
        ...

    @abstractmethod
    def delete_many(self, reservation_ids: Iterable[str]) -> None:
        ...


class DeskDirectory(Protocol):
    """Read-only view of the desks managed elsewhere."""

    @abstractmethod
    def get(self, desk_id: str) -> Desk | None:
        ...

    @abstractmethod
    def list_all(self) -> list[Desk]:
        ...


class AreaDirectory(Protocol):
    """Read-only view of the office areas desks are grouped into."""

    @abstractmethod
    def get(self, area_id: str) -> Area | None:
        ...

    @abstractmethod
    def list_all(self) -> list[Area]:
        """Areas ordered by name."""
        ...
