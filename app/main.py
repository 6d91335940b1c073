"""FastAPI application — entry point for the desk reservation service."""

from __future__ import annotations

from datetime import date

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse

from app.config import get_settings
from app.domain.bus import EventBus
from app.domain.exceptions import (
    CommitConflictError,
    DeskNotFoundError,
    ReservationNotFoundError,
    ReservationValidationError,
)
from app.domain.handlers import HandlerRegistry
from app.domain.models import (
    BulkDeleteResult,
    BulkReservationRequest,
    CancelMode,
    CancelRequest,
    CancelResult,
    Classification,
    CommitResult,
    DefaultDateResponse,
    Holiday,
    IndividualReservationRequest,
    NewReservation,
    OverviewReport,
    RecurringBookingResponse,
    RecurringReservationRequest,
    Reservation,
    ReservationLog,
    UsageReport,
)
from app.logging_config import configure_logging
from app.repos.memory import (
    AreaRepository,
    DeskRepository,
    ReservationLogRepository,
    ReservationRepository,
)
from app.services.booking import ReservationService
from app.services.clock import default_booking_date, local_today
from app.services.holidays import holiday_on, holidays_between
from app.services.reports import ReportService, export_filename

settings = get_settings()
configure_logging(settings.logging)

app = FastAPI(title=settings.app_name)

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
area_repo = AreaRepository()
desk_repo = DeskRepository()
reservation_repo = ReservationRepository()
reservation_log_repo = ReservationLogRepository()

handler_registry = HandlerRegistry(bus=event_bus, log_repo=reservation_log_repo)
reservation_service = ReservationService(
    store=reservation_repo,
    desks=desk_repo,
    bus=event_bus,
    series_weeks=settings.booking.series_weeks,
)
report_service = ReportService(store=reservation_repo, desks=desk_repo, areas=area_repo)


def get_today() -> date:
    """Today's civil date in the configured booking timezone."""
    return local_today(settings.booking.timezone)


# ── Error mapping ─────────────────────────────────────────────────────


@app.exception_handler(ReservationValidationError)
def _validation_error(request: Request, exc: ReservationValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "VALIDATION", "detail": str(exc)})


@app.exception_handler(DeskNotFoundError)
@app.exception_handler(ReservationNotFoundError)
def _not_found(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "NOT_FOUND", "detail": str(exc)})


@app.exception_handler(CommitConflictError)
def _commit_conflict(request: Request, exc: CommitConflictError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={
            "error": "COMMIT_CONFLICT",
            "detail": str(exc),
            "retryable": exc.retryable,
            "slots": [
                {"desk_id": desk_id, "date": slot_date.isoformat()}
                for desk_id, slot_date in exc.slots
            ],
        },
    )


def _conflict_response(payload: Classification | RecurringBookingResponse) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"error": "CONFLICT", **payload.model_dump(mode="json")},
    )


# ── Reservations ──────────────────────────────────────────────────────


@app.get("/reservations", response_model=list[Reservation])
def list_reservations(
    desk_id: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[Reservation]:
    """Return reservations, optionally filtered by desk and date range."""
    return reservation_repo.list_reservations(desk_id, start_date, end_date)


@app.post("/reservations", response_model=Reservation, status_code=201)
def create_reservation(body: IndividualReservationRequest):
    """Book a single date. An occupied slot answers 409 with the holder."""
    classification, committed = reservation_service.book_individual(
        body.desk_id, body.owner_label, body.date
    )
    if committed is None:
        return _conflict_response(classification)
    return committed.reservations[0]


@app.post("/reservations/recurring/preview", response_model=Classification)
def preview_recurring_reservation(
    body: RecurringReservationRequest, today: date = Depends(get_today)
) -> Classification:
    """Expand and classify a weekly booking without committing anything."""
    return reservation_service.expand_and_classify(
        body.desk_id, body.owner_label, body.start_date, body.weekdays, today, body.end_date
    )


@app.post(
    "/reservations/recurring", response_model=RecurringBookingResponse, status_code=201
)
def create_recurring_reservation(
    body: RecurringReservationRequest, today: date = Depends(get_today)
):
    """Book a weekly series.

    Dates already held by individual bookings are skipped and listed under
    ``classification.individual_conflicts``; an overlapping series answers 409.
    """
    result = reservation_service.book_recurring(
        body.desk_id, body.owner_label, body.start_date, body.weekdays, today, body.end_date
    )
    if result.committed is not None:
        return result
    classification = result.classification
    if classification.recurring_conflicts or classification.individual_conflicts:
        return _conflict_response(result)
    return JSONResponse(status_code=200, content=result.model_dump(mode="json"))


@app.post("/reservations/bulk", response_model=CommitResult, status_code=201)
def create_reservations_bulk(body: BulkReservationRequest) -> CommitResult:
    """Commit pre-classified occurrences as one all-or-nothing batch."""
    return reservation_service.commit_batch(
        [item.to_new_reservation() for item in body.reservations]
    )


@app.delete("/reservations/bulk", response_model=BulkDeleteResult)
def delete_reservations_bulk(ids: str | None = None) -> BulkDeleteResult:
    """Delete a comma-separated list of reservation ids."""
    if not ids:
        raise HTTPException(status_code=400, detail="IDs parameter is required")
    return reservation_service.delete_by_ids(ids.split(","))


@app.get("/reservations/{reservation_id}", response_model=Reservation)
def get_reservation(reservation_id: str) -> Reservation:
    reservation = reservation_repo.get(reservation_id)
    if reservation is None:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return reservation


@app.post(
    "/reservations/{reservation_id}/replace", response_model=Reservation, status_code=201
)
def replace_reservation(reservation_id: str, body: IndividualReservationRequest) -> Reservation:
    """Replace a reservation after the caller confirmed overwriting it."""
    committed = reservation_service.replace_individual(
        reservation_id,
        NewReservation(desk_id=body.desk_id, date=body.date, owner_label=body.owner_label),
    )
    return committed.reservations[0]


@app.delete("/reservations/{reservation_id}", response_model=CancelResult)
def delete_reservation(reservation_id: str) -> CancelResult:
    """Cancel exactly one occurrence."""
    return reservation_service.cancel(CancelMode.SINGLE, reservation_id)


@app.post("/reservations/{reservation_id}/cancel", response_model=CancelResult)
def cancel_reservation(reservation_id: str, body: CancelRequest) -> CancelResult:
    """Cancel one occurrence, its whole series, or some weekdays of the series."""
    return reservation_service.cancel(body.mode, reservation_id, body.weekdays)


# ── Audit log & calendar ──────────────────────────────────────────────


@app.get("/reservation-logs", response_model=list[ReservationLog])
def list_reservation_logs(desk_id: str | None = None, limit: int = 100) -> list[ReservationLog]:
    """Return the most recent audit-log entries first."""
    return reservation_log_repo.list_recent(desk_id=desk_id, limit=limit)


@app.get("/holidays", response_model=list[Holiday])
def list_holidays(start_date: date, end_date: date) -> list[Holiday]:
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")
    return holidays_between(start_date, end_date)


@app.get("/calendar/default-date", response_model=DefaultDateResponse)
def get_default_date(today: date = Depends(get_today)) -> DefaultDateResponse:
    """The date a booking screen should open on, with its holiday if any."""
    target = default_booking_date(today)
    return DefaultDateResponse(date=target, holiday=holiday_on(target))


# ── Reports ───────────────────────────────────────────────────────────


@app.get("/reports/overview", response_model=OverviewReport)
def get_overview_report(
    start_date: date | None = None,
    end_date: date | None = None,
    today: date = Depends(get_today),
) -> OverviewReport:
    """Desk count, reservation totals and occupancy for today and the period."""
    return report_service.overview(today, start_date, end_date)


@app.get("/reports/usage", response_model=UsageReport)
def get_usage_report(
    start_date: date | None = None, end_date: date | None = None
) -> UsageReport:
    return report_service.usage(start_date, end_date)


@app.get("/reports/export")
def export_report(
    export_type: str | None = Query(None, alias="type"),
    start_date: date | None = None,
    end_date: date | None = None,
    today: date = Depends(get_today),
) -> StreamingResponse:
    """Download reservations in the period as a CSV attachment."""
    if export_type != "reservations":
        raise HTTPException(status_code=400, detail="Invalid export type")
    content = report_service.export_csv(start_date, end_date)
    filename = export_filename(today, start_date, end_date)
    return StreamingResponse(
        iter([content]),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache",
        },
    )
