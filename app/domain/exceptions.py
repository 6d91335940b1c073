"""Errors raised by the reservation engine."""

from __future__ import annotations

from datetime import date


class ReservationError(Exception):
    """Base class for every error the engine raises on purpose."""


class ReservationValidationError(ReservationError, ValueError):
    """Bad input, rejected before the store is touched."""


class DeskNotFoundError(ReservationError):
    def __init__(self, desk_id: str) -> None:
        self.desk_id = desk_id
        super().__init__(f"Desk {desk_id} not found")


class ReservationNotFoundError(ReservationError):
    def __init__(self, reservation_id: str) -> None:
        self.reservation_id = reservation_id
        super().__init__(f"Reservation {reservation_id} not found")


class DuplicateReservationError(ReservationError):
    """Raised by a store when a write would put two occurrences on one slot."""

    def __init__(self, slots: list[tuple[str, date]]) -> None:
        self.slots = slots
        rendered = ", ".join(f"{desk_id}@{day.isoformat()}" for desk_id, day in slots)
        super().__init__(f"Slot already taken: {rendered}")


class CommitConflictError(ReservationError):
    """A batch lost a race with another writer; nothing was persisted.

    Always retryable from the caller's point of view: classify again and
    resubmit.
    """

    retryable = True

    def __init__(self, slots: list[tuple[str, date]], message: str | None = None) -> None:
        self.slots = slots
        super().__init__(message or "Reservation batch collided with existing reservations")
