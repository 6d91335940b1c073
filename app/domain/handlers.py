"""Domain event handlers — wired up at application startup."""

from __future__ import annotations

import logging

from app.domain.bus import EventBus
from app.domain.events import (
    ReservationCommitRejected,
    ReservationConflictDetected,
    ReservationsCreated,
    ReservationsDeleted,
)
from app.domain.models import LogOperation, Reservation, ReservationLog
from app.repos.memory import ReservationLogRepository

logger = logging.getLogger(__name__)


def _entry_for(
    operation: LogOperation, reservation: Reservation, **extra: object
) -> ReservationLog:
    return ReservationLog(
        operation=operation,
        reservation_id=reservation.id,
        desk_id=reservation.desk_id,
        reservation_date=reservation.date,
        owner_label=reservation.owner_label,
        is_recurring=reservation.is_recurring,
        recurring_days=reservation.recurring_days,
        **extra,
    )


class HandlerRegistry:
    """Wires domain-event handlers to the bus with access to the audit log."""

    def __init__(self, bus: EventBus, log_repo: ReservationLogRepository) -> None:
        self.bus = bus
        self.log_repo = log_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(ReservationsCreated, self.on_reservations_created)
        self.bus.subscribe(ReservationsDeleted, self.on_reservations_deleted)
        self.bus.subscribe(ReservationConflictDetected, self.on_conflict_detected)
        self.bus.subscribe(ReservationCommitRejected, self.on_commit_rejected)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_reservations_created(self, event: ReservationsCreated) -> None:
        batch_size = len(event.reservations)
        for reservation in event.reservations:
            self.log_repo.add(
                _entry_for(
                    LogOperation.CREATE, reservation, details={"batch_size": batch_size}
                )
            )

    def on_reservations_deleted(self, event: ReservationsDeleted) -> None:
        for reservation in event.reservations:
            self.log_repo.add(
                _entry_for(
                    LogOperation.DELETE, reservation, details={"reason": event.reason}
                )
            )

    def on_conflict_detected(self, event: ReservationConflictDetected) -> None:
        if event.recurring_conflict_owners:
            message = "Recurring series overlaps: " + ", ".join(event.recurring_conflict_owners)
        else:
            message = f"{len(event.dropped_dates)} date(s) already reserved"
        logger.info("Conflict on desk %s for %s: %s", event.desk_id, event.owner_label, message)

        self.log_repo.add(
            ReservationLog(
                operation=LogOperation.CREATE,
                desk_id=event.desk_id,
                reservation_date=event.dropped_dates[0] if event.dropped_dates else None,
                owner_label=event.owner_label,
                is_recurring=event.is_recurring,
                success=False,
                error_message=message,
                details={
                    "dropped_dates": [d.isoformat() for d in event.dropped_dates],
                    "recurring_conflict_owners": event.recurring_conflict_owners,
                },
            )
        )

    def on_commit_rejected(self, event: ReservationCommitRejected) -> None:
        self.log_repo.add(
            ReservationLog(
                operation=LogOperation.CREATE,
                desk_id=event.desk_id,
                reservation_date=event.dates[0] if event.dates else None,
                owner_label=event.owner_label,
                success=False,
                error_message=event.error_message,
                details={"dates": [d.isoformat() for d in event.dates]},
            )
        )
