"""Domain models for the desk reservation engine."""

from __future__ import annotations

import datetime as dt
import uuid
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator, model_validator

OWNER_LABEL_MAX_LENGTH = 16


class CancelMode(StrEnum):
    SINGLE = "single"
    SERIES = "series"
    PARTIAL = "partial"


class LogOperation(StrEnum):
    CREATE = "CREATE"
    DELETE = "DELETE"


class HolidayType(StrEnum):
    NATIONAL = "national"
    REGIONAL = "regional"
    OPTIONAL = "optional"


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Area(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    color: str = "#d1d5db"


class Desk(BaseModel):
    id: str = Field(default_factory=_new_id)
    code: str
    area_id: str | None = None
    is_blocked: bool = False


class NewReservation(BaseModel):
    """An occurrence that has not been persisted yet (no id)."""

    desk_id: str
    date: dt.date
    owner_label: str
    is_recurring: bool = False
    # Storage convention: 1=Monday ... 5=Friday.
    recurring_days: list[int] | None = None

    @model_validator(mode="after")
    def _days_only_when_recurring(self) -> NewReservation:
        if not self.is_recurring:
            self.recurring_days = None
        return self


class Reservation(NewReservation):
    """One persisted occurrence, bound to exactly one desk and one date."""

    id: str = Field(default_factory=_new_id)
    created_at: dt.datetime = Field(default_factory=_utcnow)


class IndividualConflict(BaseModel):
    date: dt.date
    existing_owner_label: str
    existing_reservation_id: str
    existing_is_recurring: bool = False


class RecurringConflict(BaseModel):
    existing_owner_label: str
    # Caller convention: 0=Monday ... 4=Friday.
    existing_weekdays: list[int]
    new_weekdays: list[int]
    first_conflict_date: dt.date


class Classification(BaseModel):
    accepted: list[NewReservation] = Field(default_factory=list)
    individual_conflicts: list[IndividualConflict] = Field(default_factory=list)
    recurring_conflicts: list[RecurringConflict] = Field(default_factory=list)

    @property
    def can_commit(self) -> bool:
        """False when nothing from the request may be committed."""
        return not self.recurring_conflicts and bool(self.accepted)

    @property
    def dropped_dates(self) -> list[dt.date]:
        return [c.date for c in self.individual_conflicts]


class CommitResult(BaseModel):
    committed_count: int
    committed_ids: list[str]
    reservations: list[Reservation] = Field(default_factory=list)


class CancelResult(BaseModel):
    deleted_count: int
    deleted_ids: list[str]


class BulkDeleteResult(BaseModel):
    deleted_count: int
    deleted_ids: list[str]
    not_found_ids: list[str] = Field(default_factory=list)


class ReservationLog(BaseModel):
    id: str = Field(default_factory=_new_id)
    timestamp: dt.datetime = Field(default_factory=_utcnow)
    operation: LogOperation
    reservation_id: str | None = None
    desk_id: str
    reservation_date: dt.date | None = None
    owner_label: str | None = None
    is_recurring: bool = False
    recurring_days: list[int] | None = None
    success: bool = True
    error_message: str | None = None
    details: dict = Field(default_factory=dict)


class Holiday(BaseModel):
    date: dt.date
    name: str
    type: HolidayType = HolidayType.NATIONAL


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class _OwnerLabelMixin(BaseModel):
    owner_label: str = Field(min_length=1, max_length=OWNER_LABEL_MAX_LENGTH)

    @field_validator("owner_label", mode="before")
    @classmethod
    def _strip_owner_label(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value


class IndividualReservationRequest(_OwnerLabelMixin):
    desk_id: str
    date: dt.date


class RecurringReservationRequest(_OwnerLabelMixin):
    desk_id: str
    start_date: dt.date
    end_date: dt.date | None = None
    weekdays: list[int]


class BulkReservationItem(_OwnerLabelMixin):
    """One pre-classified occurrence submitted to the bulk commit endpoint."""

    desk_id: str
    date: dt.date
    is_recurring: bool = False
    recurring_days: list[int] | None = None

    @model_validator(mode="after")
    def _check_recurring_days(self) -> BulkReservationItem:
        if not self.is_recurring:
            self.recurring_days = None
            return self
        if not self.recurring_days:
            raise ValueError("recurring_days is required for a recurring reservation")
        invalid = sorted({d for d in self.recurring_days if not 1 <= d <= 5})
        if invalid:
            raise ValueError(f"recurring_days must be 1 (Monday) to 5 (Friday), got {invalid}")
        self.recurring_days = sorted(set(self.recurring_days))
        return self

    def to_new_reservation(self) -> NewReservation:
        return NewReservation(**self.model_dump())


class BulkReservationRequest(BaseModel):
    reservations: list[BulkReservationItem]


class CancelRequest(BaseModel):
    mode: CancelMode
    weekdays: list[int] | None = None


class RecurringBookingResponse(BaseModel):
    classification: Classification
    committed: CommitResult | None = None


class DefaultDateResponse(BaseModel):
    date: dt.date
    holiday: Holiday | None = None


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class ReportPeriod(BaseModel):
    start_date: dt.date
    end_date: dt.date


class OverviewReport(BaseModel):
    total_desks: int
    total_reservations: int
    today_reservations: int
    # Percentages: today as a whole number, the period with two decimals.
    occupancy_rate: int
    period_occupancy_rate: float
    period: ReportPeriod | None = None


class AreaUsage(BaseModel):
    area_id: str
    area_name: str
    area_color: str
    total_desks: int
    total_reservations: int
    # Distinct desks holding at least one recurring / individual row.
    recurring_desks: int
    individual_desks: int
    usage_percentage: float


class UsageSummary(BaseModel):
    total_reservations: int
    total_recurring_desks: int
    total_individual_desks: int
    period: ReportPeriod | None = None


class UsageReport(BaseModel):
    usage_by_area: list[AreaUsage]
    summary: UsageSummary
