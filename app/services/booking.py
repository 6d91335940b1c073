"""Reservation service: classify booking requests, commit them, cancel them.

The service holds no state between calls. Classification reads and the
commit write are not one transaction; the store's uniqueness
check is what finally decides, and a lost race surfaces as
``CommitConflictError``.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Sequence

from app.domain.bus import EventBus
from app.domain.events import (
    ReservationCommitRejected,
    ReservationConflictDetected,
    ReservationsCreated,
    ReservationsDeleted,
)
from app.domain.exceptions import (
    CommitConflictError,
    DeskNotFoundError,
    DuplicateReservationError,
    ReservationNotFoundError,
    ReservationValidationError,
)
from app.domain.models import (
    BulkDeleteResult,
    CancelMode,
    CancelResult,
    Classification,
    CommitResult,
    Desk,
    NewReservation,
    RecurringBookingResponse,
    Reservation,
)
from app.repos.base import DeskDirectory, ReservationStore
from app.services import conflicts
from app.services.cancellation import resolve_cancellation
from app.services.recurrence import (
    DEFAULT_SERIES_WEEKS,
    default_series_end,
    expand_occurrences,
    normalize_weekdays,
    series_drafts,
)

logger = logging.getLogger(__name__)


class ReservationService:
    """Entry point for every booking and cancellation the transport layer makes."""

    def __init__(
        self,
        store: ReservationStore,
        desks: DeskDirectory,
        bus: EventBus,
        series_weeks: int = DEFAULT_SERIES_WEEKS,
    ) -> None:
        self.store = store
        self.desks = desks
        self.bus = bus
        self.series_weeks = series_weeks

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _bookable_desk(self, desk_id: str) -> Desk:
        desk = self.desks.get(desk_id)
        if desk is None:
            raise DeskNotFoundError(desk_id)
        if desk.is_blocked:
            raise ReservationValidationError(f"Desk {desk.code} is blocked for reservations")
        return desk

    def _get_reservation(self, reservation_id: str) -> Reservation:
        reservation = self.store.get(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)
        return reservation

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def classify_individual(self, desk_id: str, owner_label: str, on_date: date) -> Classification:
        self._bookable_desk(desk_id)
        candidate = NewReservation(desk_id=desk_id, date=on_date, owner_label=owner_label)
        holder = self.store.find_by_desk_and_date(desk_id, on_date)
        return conflicts.classify_individual(candidate, [holder] if holder else [])

    def expand_and_classify(
        self,
        desk_id: str,
        owner_label: str,
        start_date: date,
        weekdays: Iterable[int],
        today: date,
        end_date: date | None = None,
    ) -> Classification:
        """Expand a weekly request and classify every resulting occurrence.

        Raises ``ReservationValidationError`` for an empty or weekend weekday
        set, an end date before the start date, or a blocked desk; the store is
        not read in those cases.
        """
        days = normalize_weekdays(weekdays)
        if not days:
            raise ReservationValidationError("Select at least one weekday for a recurring booking")
        end_date = end_date or default_series_end(start_date, self.series_weeks)
        if end_date < start_date:
            raise ReservationValidationError(
                f"End date {end_date} is before start date {start_date}"
            )
        self._bookable_desk(desk_id)

        dates = expand_occurrences(start_date, days, today, end_date)
        candidates = series_drafts(desk_id, owner_label, dates, days)
        if not candidates:
            logger.info(
                "Recurring request for desk %s (%s) has no future occurrences",
                desk_id,
                owner_label,
            )
            return Classification()

        window_start = max(start_date, today)
        # One range scan per desk, never a lookup per occurrence.
        existing = self.store.find_by_desk_and_date_range(desk_id, window_start, end_date)
        return conflicts.classify_recurring(candidates, days, window_start, end_date, existing)

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def commit_batch(self, reservations: Sequence[NewReservation]) -> CommitResult:
        """Persist *reservations* as one all-or-nothing write."""
        if not reservations:
            raise ReservationValidationError("Reservations list must not be empty")
        for desk_id in {r.desk_id for r in reservations}:
            self._bookable_desk(desk_id)

        try:
            created = self.store.insert_many(reservations)
        except DuplicateReservationError as exc:
            logger.warning("Commit of %d occurrence(s) lost a race: %s", len(reservations), exc)
            first = reservations[0]
            self.bus.publish(
                ReservationCommitRejected(
                    desk_id=first.desk_id,
                    owner_label=first.owner_label,
                    dates=[slot_date for _, slot_date in exc.slots],
                    error_message=str(exc),
                )
            )
            raise CommitConflictError(exc.slots, str(exc)) from exc

        logger.info(
            "Committed %d occurrence(s) for %s",
            len(created),
            ", ".join(sorted({r.owner_label for r in created})),
        )
        self.bus.publish(ReservationsCreated(reservations=created))
        return CommitResult(
            committed_count=len(created),
            committed_ids=[r.id for r in created],
            reservations=created,
        )

    def book_individual(
        self, desk_id: str, owner_label: str, on_date: date
    ) -> tuple[Classification, CommitResult | None]:
        classification = self.classify_individual(desk_id, owner_label, on_date)
        if not classification.can_commit:
            self._report_conflicts(desk_id, owner_label, False, classification)
            return classification, None
        return classification, self.commit_batch(classification.accepted)

    def book_recurring(
        self,
        desk_id: str,
        owner_label: str,
        start_date: date,
        weekdays: Iterable[int],
        today: date,
        end_date: date | None = None,
    ) -> RecurringBookingResponse:
        """Classify and commit a weekly booking.

        Dates taken by individual bookings are skipped and listed in the
        response; an overlapping recurring series blocks the whole request.
        """
        classification = self.expand_and_classify(
            desk_id, owner_label, start_date, weekdays, today, end_date
        )
        if classification.individual_conflicts or classification.recurring_conflicts:
            self._report_conflicts(desk_id, owner_label, True, classification)
        if not classification.can_commit:
            return RecurringBookingResponse(classification=classification)
        return RecurringBookingResponse(
            classification=classification,
            committed=self.commit_batch(classification.accepted),
        )

    def replace_individual(self, existing_id: str, replacement: NewReservation) -> CommitResult:
        """Overwrite a reservation the caller confirmed replacing.

        The store swaps the slot's holder in one step. When the slot no longer
        holds the reservation the caller saw, nothing changes and the
        replacement is refused.
        """
        confirmed = self.store.get(existing_id)
        slot = (replacement.desk_id, replacement.date)
        if confirmed is not None and (confirmed.desk_id, confirmed.date) != slot:
            raise ReservationValidationError(
                f"Reservation {existing_id} is not on desk {replacement.desk_id} at {replacement.date}"
            )
        self._bookable_desk(replacement.desk_id)

        try:
            removed, created = self.store.replace(existing_id, replacement)
        except DuplicateReservationError as exc:
            logger.warning(
                "Slot %s@%s changed hands before replacement was confirmed",
                replacement.desk_id,
                replacement.date,
            )
            self.bus.publish(
                ReservationCommitRejected(
                    desk_id=replacement.desk_id,
                    owner_label=replacement.owner_label,
                    dates=[replacement.date],
                    error_message=str(exc),
                )
            )
            raise CommitConflictError(
                exc.slots, "The reservation being replaced changed since it was confirmed"
            ) from exc

        logger.info("Replaced %s with %s on %s@%s", removed.id, created.id, *slot)
        self.bus.publish(ReservationsDeleted(reservations=[removed], reason="replaced"))
        self.bus.publish(ReservationsCreated(reservations=[created]))
        return CommitResult(
            committed_count=1, committed_ids=[created.id], reservations=[created]
        )

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel(
        self,
        mode: CancelMode,
        anchor_id: str,
        weekdays: Iterable[int] | None = None,
    ) -> CancelResult:
        """Cancel one occurrence, a whole series, or some weekdays of a series.

        Series modes consider every row of the series on the desk, past dates
        included. An empty selection is a successful no-op.
        """
        anchor = self._get_reservation(anchor_id)
        pool: list[Reservation] = []
        if mode != CancelMode.SINGLE:
            pool = self.store.find_by_desk_and_date_range(anchor.desk_id, date.min)
        doomed = resolve_cancellation(mode, anchor, pool, weekdays)

        if not doomed:
            logger.info("Cancel (%s) from %s matched nothing", mode, anchor_id)
            return CancelResult(deleted_count=0, deleted_ids=[])

        self._delete(doomed, reason=f"cancel:{mode}")
        return CancelResult(deleted_count=len(doomed), deleted_ids=[r.id for r in doomed])

    def delete_by_ids(self, reservation_ids: Iterable[str]) -> BulkDeleteResult:
        ids = list(dict.fromkeys(i.strip() for i in reservation_ids if i and i.strip()))
        if not ids:
            raise ReservationValidationError("No valid reservation ids provided")
        found = [r for r in (self.store.get(i) for i in ids) if r is not None]
        if not found:
            raise ReservationNotFoundError(", ".join(ids))

        self._delete(found, reason="bulk")
        found_ids = {r.id for r in found}
        return BulkDeleteResult(
            deleted_count=len(found),
            deleted_ids=[r.id for r in found],
            not_found_ids=[i for i in ids if i not in found_ids],
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _delete(self, reservations: list[Reservation], reason: str) -> None:
        self.store.delete_many([r.id for r in reservations])
        logger.info("Deleted %d occurrence(s) (%s)", len(reservations), reason)
        self.bus.publish(ReservationsDeleted(reservations=reservations, reason=reason))

    def _report_conflicts(
        self,
        desk_id: str,
        owner_label: str,
        is_recurring: bool,
        classification: Classification,
    ) -> None:
        self.bus.publish(
            ReservationConflictDetected(
                desk_id=desk_id,
                owner_label=owner_label,
                is_recurring=is_recurring,
                dropped_dates=classification.dropped_dates,
                recurring_conflict_owners=[
                    c.existing_owner_label for c in classification.recurring_conflicts
                ],
            )
        )
