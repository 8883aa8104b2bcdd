"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============================================================================
# Common
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    detail: str
    code: str | None = None


# ============================================================================
# Payroll month schemas
# ============================================================================


class PeriodResponse(BaseModel):
    """Schema for a payroll period."""

    model_config = ConfigDict(from_attributes=True)

    year: int
    month: int
    period_start: date
    period_end: date


class PeriodUpdate(BaseModel):
    """Schema for editing a payroll period."""

    period_start: date
    period_end: date

    @model_validator(mode="after")
    def check_order(self) -> "PeriodUpdate":
        if self.period_end < self.period_start:
            raise ValueError("period_end must be on or after period_start")
        return self


class PayrollRowResponse(BaseModel):
    """Schema for one reconciled row."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    employee_name: str
    date: date
    department: str | None = None
    planned_hours: Decimal | None = None
    actual_hours: Decimal | None = None
    hourly_rate: Decimal | None = None
    rate_source: str | None = None
    total_pay: Decimal | None = None
    flags: str = ""
    planned_start: str | None = None
    planned_end: str | None = None
    actual_start: str | None = None
    actual_end: str | None = None
    shift_id: UUID | None = None
    session_id: UUID | None = None
    note: str | None = None
    session_note: str | None = None


class EmployeeSummaryResponse(BaseModel):
    """Schema for per-employee totals."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    employee_name: str
    planned_hours: Decimal
    actual_hours: Decimal
    hourly_rate: Decimal | None = None
    total_pay: Decimal
    row_count: int = 0
    unpriced_rows: int = 0


class MonthDataResponse(BaseModel):
    """Schema for a reconciled payroll month."""

    period: PeriodResponse
    rows: list[PayrollRowResponse]
    employee_summaries: list[EmployeeSummaryResponse]
    fingerprint: str


class ApprovalResponse(BaseModel):
    """Schema for a month approval."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    year: int
    month: int
    approved_at: datetime
    approved_by: UUID
    snapshot_hash: str
    email_sent_at: datetime | None = None
    email_sent_by: UUID | None = None
    version: int
    rows: list[PayrollRowResponse] = Field(default_factory=list)
    employee_summaries: list[EmployeeSummaryResponse] = Field(default_factory=list)


class EmailDispatchResponse(BaseModel):
    """Schema for a payroll email dispatch."""

    model_config = ConfigDict(from_attributes=True)

    sent: bool
    to: list[str]
    cc: list[str] = Field(default_factory=list)
    message_id: str | None = None
    alert_sent: bool = False
    alerted_employees: list[str] = Field(default_factory=list)


# ============================================================================
# Correction schemas
# ============================================================================


class RowTimesUpdate(BaseModel):
    """Schema for setting a row's actual times (local HH:MM)."""

    session_id: UUID | None = None
    employee_id: UUID
    work_date: date
    clock_in: str = Field(pattern=r"^\d{2}:\d{2}$")
    clock_out: str | None = Field(default=None, pattern=r"^\d{2}:\d{2}$")


class RowDelete(BaseModel):
    """Schema for deleting a row."""

    session_id: UUID | None = None
    shift_id: UUID | None = None


class ShiftNoteUpdate(BaseModel):
    """Schema for a shift reconciliation note."""

    note: str | None = Field(default=None, max_length=2000)


class ShiftNoteResponse(BaseModel):
    """Schema for a saved shift note (None when removed)."""

    shift_id: UUID
    note: str | None = None


class StatusResponse(BaseModel):
    """Schema for simple acknowledgements."""

    status: str


# ============================================================================
# Timeclock schemas
# ============================================================================


class ClockRequest(BaseModel):
    """Schema for kiosk clock-in / clock-out."""

    employee_id: UUID


class TimeclockSessionResponse(BaseModel):
    """Schema for a clock session."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    work_date: date
    clock_in_at: datetime
    clock_out_at: datetime | None = None
    linked_shift_id: UUID | None = None
    is_unscheduled: bool
    is_auto_close: bool
