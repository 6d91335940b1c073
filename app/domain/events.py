"""Domain events emitted by the reservation engine."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel

from app.domain.models import Reservation


class ReservationsCreated(BaseModel):
    """Fired after a batch of occurrences has been committed."""

    reservations: list[Reservation]


class ReservationsDeleted(BaseModel):
    """Fired after a batch of occurrences has been removed."""

    reservations: list[Reservation]
    reason: str


class ReservationConflictDetected(BaseModel):
    """Fired when classification kept some or all of a request from committing."""

    desk_id: str
    owner_label: str
    is_recurring: bool
    dropped_dates: list[date]
    recurring_conflict_owners: list[str]


class ReservationCommitRejected(BaseModel):
    """Fired when the store refused a batch because another writer won the race."""

    desk_id: str
    owner_label: str
    dates: list[date]
    error_message: str
