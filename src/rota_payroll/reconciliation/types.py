"""Type definitions for the reconciliation pipeline.

Input records are plain frozen dataclasses so the engine can run without a
database; the loader builds them from ORM rows in one batch per run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Union
from uuid import UUID


class PayType(str, Enum):
    """Employee pay type."""

    HOURLY = "hourly"
    SALARIED = "salaried"


class RateSource(str, Enum):
    """Where a resolved hourly rate came from."""

    OVERRIDE = "override"
    AGE_BAND = "age_band"


class RowFlag(str, Enum):
    """Data-quality tags attached to a payroll row."""

    AUTO_CLOSE = "auto_close"
    UNSCHEDULED = "unscheduled"
    UNMATCHED_SESSION = "unmatched_session"
    SICK = "sick"
    VARIANCE = "variance"


UNKNOWN_EMPLOYEE = "Unknown"


def _dec(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def _str(value: Any) -> str | None:
    return str(value) if value is not None else None


# === Input records ===


@dataclass(frozen=True)
class EmployeeRecord:
    """An employee as seen by the engine."""

    employee_id: UUID
    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: date | None = None
    pay_type: PayType = PayType.HOURLY
    status: str = "Active"
    employment_end_date: date | None = None
    email: str | None = None

    @property
    def full_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or UNKNOWN_EMPLOYEE


@dataclass(frozen=True)
class ShiftRecord:
    """A planned shift. start/end are local wall-clock times."""

    id: UUID
    employee_id: UUID
    shift_date: date
    start_time: time
    end_time: time
    unpaid_break_minutes: int = 0
    department: str | None = None
    status: str = "scheduled"
    is_overnight: bool = False


@dataclass(frozen=True)
class SessionRecord:
    """An actual clock session. clock_out_at is None while open."""

    id: UUID
    employee_id: UUID
    work_date: date
    clock_in_at: datetime
    clock_out_at: datetime | None = None
    linked_shift_id: UUID | None = None
    is_unscheduled: bool = False
    is_auto_close: bool = False
    notes: str | None = None


@dataclass(frozen=True)
class RateOverrideRecord:
    """Employee-specific hourly rate effective from a date."""

    employee_id: UUID
    hourly_rate: Decimal
    effective_from: date


@dataclass(frozen=True)
class AgeBandRecord:
    """Age range [min_age, max_age]; max_age None means open-ended."""

    id: UUID
    min_age: int
    max_age: int | None = None
    label: str = ""
    is_active: bool = True

    def contains(self, age: int) -> bool:
        return self.min_age <= age and (self.max_age is None or age <= self.max_age)


@dataclass(frozen=True)
class BandRateRecord:
    """Hourly rate for an age band effective from a date."""

    band_id: UUID
    hourly_rate: Decimal
    effective_from: date


@dataclass
class ReconciliationInputs:
    """Everything one reconciliation run needs, already fetched."""

    period_start: date
    period_end: date
    employees: list[EmployeeRecord] = field(default_factory=list)
    shifts: list[ShiftRecord] = field(default_factory=list)
    sessions: list[SessionRecord] = field(default_factory=list)
    rate_overrides: list[RateOverrideRecord] = field(default_factory=list)
    age_bands: list[AgeBandRecord] = field(default_factory=list)
    band_rates: list[BandRateRecord] = field(default_factory=list)
    notes_by_shift: dict[UUID, str] = field(default_factory=dict)


# === Row sources ===


@dataclass(frozen=True)
class ShiftMatched:
    """A shift paired with the session that worked it."""

    shift: ShiftRecord
    session: SessionRecord


@dataclass(frozen=True)
class ShiftUnmatched:
    """A shift with no session."""

    shift: ShiftRecord


@dataclass(frozen=True)
class SessionOrphan:
    """A session no shift claimed."""

    session: SessionRecord


RowSource = Union[ShiftMatched, ShiftUnmatched, SessionOrphan]


# === Outputs ===


@dataclass(frozen=True)
class ResolvedRate:
    """An hourly rate and the table it came from."""

    rate: Decimal
    source: RateSource


@dataclass
class PayrollRow:
    """One reconciled unit of work."""

    employee_id: UUID
    employee_name: str
    date: date
    department: str | None
    planned_hours: Decimal | None
    actual_hours: Decimal | None
    hourly_rate: Decimal | None
    rate_source: RateSource | None
    total_pay: Decimal | None
    flags: str
    planned_start: str | None = None
    planned_end: str | None = None
    actual_start: str | None = None
    actual_end: str | None = None
    shift_id: UUID | None = None
    session_id: UUID | None = None
    note: str | None = None
    session_note: str | None = None

    @property
    def flag_list(self) -> list[str]:
        return [f for f in self.flags.split(", ") if f]

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe dict (Decimals and dates as strings)."""
        return {
            "employee_id": str(self.employee_id),
            "employee_name": self.employee_name,
            "date": self.date.isoformat(),
            "department": self.department,
            "planned_hours": _str(self.planned_hours),
            "actual_hours": _str(self.actual_hours),
            "hourly_rate": _str(self.hourly_rate),
            "rate_source": self.rate_source.value if self.rate_source else None,
            "total_pay": _str(self.total_pay),
            "flags": self.flags,
            "planned_start": self.planned_start,
            "planned_end": self.planned_end,
            "actual_start": self.actual_start,
            "actual_end": self.actual_end,
            "shift_id": _str(self.shift_id),
            "session_id": _str(self.session_id),
            "note": self.note,
            "session_note": self.session_note,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PayrollRow:
        return cls(
            employee_id=UUID(data["employee_id"]),
            employee_name=data["employee_name"],
            date=date.fromisoformat(data["date"]),
            department=data.get("department"),
            planned_hours=_dec(data.get("planned_hours")),
            actual_hours=_dec(data.get("actual_hours")),
            hourly_rate=_dec(data.get("hourly_rate")),
            rate_source=RateSource(data["rate_source"]) if data.get("rate_source") else None,
            total_pay=_dec(data.get("total_pay")),
            flags=data.get("flags", ""),
            planned_start=data.get("planned_start"),
            planned_end=data.get("planned_end"),
            actual_start=data.get("actual_start"),
            actual_end=data.get("actual_end"),
            shift_id=UUID(data["shift_id"]) if data.get("shift_id") else None,
            session_id=UUID(data["session_id"]) if data.get("session_id") else None,
            note=data.get("note"),
            session_note=data.get("session_note"),
        )


@dataclass
class EmployeeSummary:
    """Per-employee totals for a period.

    hourly_rate is the first-seen row's rate; employees paid at more than
    one rate in the period show only that one.
    """

    employee_id: UUID
    employee_name: str
    planned_hours: Decimal = Decimal("0")
    actual_hours: Decimal = Decimal("0")
    hourly_rate: Decimal | None = None
    total_pay: Decimal = Decimal("0")
    row_count: int = 0
    unpriced_rows: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": str(self.employee_id),
            "employee_name": self.employee_name,
            "planned_hours": str(self.planned_hours),
            "actual_hours": str(self.actual_hours),
            "hourly_rate": _str(self.hourly_rate),
            "total_pay": str(self.total_pay),
            "row_count": self.row_count,
            "unpriced_rows": self.unpriced_rows,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EmployeeSummary:
        return cls(
            employee_id=UUID(data["employee_id"]),
            employee_name=data["employee_name"],
            planned_hours=Decimal(data["planned_hours"]),
            actual_hours=Decimal(data["actual_hours"]),
            hourly_rate=_dec(data.get("hourly_rate")),
            total_pay=Decimal(data["total_pay"]),
            row_count=data.get("row_count", 0),
            unpriced_rows=data.get("unpriced_rows", 0),
        )


@dataclass
class ReconciliationResult:
    """Output of one reconciliation run."""

    period_start: date
    period_end: date
    rows: list[PayrollRow]
    summaries: list[EmployeeSummary]
    fingerprint: str

    @property
    def total_pay(self) -> Decimal:
        return sum((s.total_pay for s in self.summaries), Decimal("0"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "rows": [r.to_dict() for r in self.rows],
            "employees": [s.to_dict() for s in self.summaries],
            "fingerprint": self.fingerprint,
        }
