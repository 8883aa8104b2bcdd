"""Payroll reconciliation engine - main orchestrator."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID
from zoneinfo import ZoneInfo

from rota_payroll.reconciliation import hours
from rota_payroll.reconciliation.matching import SessionMatcher
from rota_payroll.reconciliation.rate_resolver import RateResolver
from rota_payroll.reconciliation.types import (
    UNKNOWN_EMPLOYEE,
    EmployeeRecord,
    EmployeeSummary,
    PayrollRow,
    ReconciliationInputs,
    ReconciliationResult,
    RowFlag,
    RowSource,
    SessionOrphan,
    SessionRecord,
    ShiftMatched,
    ShiftRecord,
    ShiftUnmatched,
)

CANCELLED = "cancelled"
SICK = "sick"


def _shift_order(shift: ShiftRecord) -> tuple:
    return (str(shift.employee_id), shift.shift_date, shift.start_time, str(shift.id))


def _session_order(session: SessionRecord) -> tuple:
    return (session.work_date, hours.to_utc(session.clock_in_at), str(session.id))


class ReconciliationEngine:
    """Reconciles planned shifts against clock sessions for one period.

    Pipeline (stable order):
    1) Drop cancelled shifts and salaried employees
    2) Match each shift to at most one session
    3) Emit unclaimed sessions as orphan rows
    4) Resolve rate, pay and flags per row
    5) Aggregate per-employee summaries and fingerprint the rows

    The engine holds configuration only; all matching state lives inside
    one reconcile() call.
    """

    def __init__(
        self,
        tz: ZoneInfo,
        variance_threshold: Decimal = Decimal("0.5"),
        engine_version: str = "1.0.0",
    ):
        self.tz = tz
        self.variance_threshold = variance_threshold
        self.engine_version = engine_version

    def reconcile(self, inputs: ReconciliationInputs) -> ReconciliationResult:
        employees = {e.employee_id: e for e in inputs.employees}
        resolver = RateResolver(
            inputs.employees, inputs.rate_overrides, inputs.age_bands, inputs.band_rates
        )

        shifts = sorted(
            (
                s
                for s in inputs.shifts
                if inputs.period_start <= s.shift_date <= inputs.period_end
                and s.status != CANCELLED
                and not resolver.is_salaried(s.employee_id)
            ),
            key=_shift_order,
        )
        sessions = sorted(
            (
                s
                for s in inputs.sessions
                if inputs.period_start <= s.work_date <= inputs.period_end
                and not resolver.is_salaried(s.employee_id)
            ),
            key=_session_order,
        )

        sources = self.match_sources(shifts, sessions)
        rows = [
            self.build_row(source, employees, resolver, inputs.notes_by_shift)
            for source in sources
        ]
        return ReconciliationResult(
            period_start=inputs.period_start,
            period_end=inputs.period_end,
            rows=rows,
            summaries=summarize(rows),
            fingerprint=self.fingerprint(rows),
        )

    def match_sources(
        self, shifts: list[ShiftRecord], sessions: list[SessionRecord]
    ) -> list[RowSource]:
        """Pair shifts with sessions; leftover sessions become orphans."""
        matcher = SessionMatcher(sessions)
        sources: list[RowSource] = []
        for shift in shifts:
            start = hours.local_instant(shift.shift_date, shift.start_time, self.tz)
            session = matcher.match(shift, start)
            if session is not None:
                sources.append(ShiftMatched(shift=shift, session=session))
            else:
                sources.append(ShiftUnmatched(shift=shift))
        sources.extend(SessionOrphan(session=s) for s in matcher.unconsumed())
        return sources

    def build_row(
        self,
        source: RowSource,
        employees: dict[UUID, EmployeeRecord],
        resolver: RateResolver,
        notes_by_shift: dict[UUID, str],
    ) -> PayrollRow:
        shift: ShiftRecord | None
        session: SessionRecord | None
        flags: list[RowFlag] = []

        if isinstance(source, ShiftMatched):
            shift, session = source.shift, source.session
        elif isinstance(source, ShiftUnmatched):
            shift, session = source.shift, None
        elif isinstance(source, SessionOrphan):
            shift, session = None, source.session
        else:
            raise TypeError(f"Unknown row source: {source!r}")

        if shift is not None:
            employee_id, work_date = shift.employee_id, shift.shift_date
            planned = hours.planned_hours(
                shift.start_time,
                shift.end_time,
                shift.unpaid_break_minutes,
                shift.is_overnight,
            )
            if session is not None and session.is_auto_close:
                flags.append(RowFlag.AUTO_CLOSE)
            if session is not None and session.is_unscheduled:
                flags.append(RowFlag.UNSCHEDULED)
            if shift.status == SICK:
                flags.append(RowFlag.SICK)
        else:
            employee_id, work_date = session.employee_id, session.work_date
            planned = None
            if session.is_unscheduled or session.linked_shift_id is None:
                flags.append(RowFlag.UNSCHEDULED)
            else:
                flags.append(RowFlag.UNMATCHED_SESSION)
            if session.is_auto_close:
                flags.append(RowFlag.AUTO_CLOSE)

        actual = hours.actual_hours(session.clock_in_at, session.clock_out_at) if session else None
        if hours.exceeds_variance(planned, actual, self.variance_threshold):
            flags.append(RowFlag.VARIANCE)

        resolved = resolver.resolve(employee_id, work_date)
        rate = resolved.rate if resolved else None
        employee = employees.get(employee_id)

        return PayrollRow(
            employee_id=employee_id,
            employee_name=employee.full_name if employee else UNKNOWN_EMPLOYEE,
            date=work_date,
            department=shift.department if shift else None,
            planned_hours=planned,
            actual_hours=actual,
            hourly_rate=rate,
            rate_source=resolved.source if resolved else None,
            total_pay=hours.total_pay(actual, rate),
            flags=", ".join(f.value for f in flags),
            planned_start=hours.hhmm(shift.start_time) if shift else None,
            planned_end=hours.hhmm(shift.end_time) if shift else None,
            actual_start=hours.local_hhmm(session.clock_in_at, self.tz) if session else None,
            actual_end=hours.local_hhmm(session.clock_out_at, self.tz) if session else None,
            shift_id=shift.id if shift else None,
            session_id=session.id if session else None,
            note=notes_by_shift.get(shift.id) if shift else None,
            session_note=session.notes if session else None,
        )

    def fingerprint(self, rows: list[PayrollRow]) -> str:
        """Deterministic hash of the row set and engine version."""
        data = {
            "engine_version": self.engine_version,
            "rows": [r.to_dict() for r in rows],
        }
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()


def summarize(rows: Iterable[PayrollRow]) -> list[EmployeeSummary]:
    """Per-employee totals in first-seen order. Nulls count as zero."""
    summaries: dict[UUID, EmployeeSummary] = {}
    for row in rows:
        summary = summaries.get(row.employee_id)
        if summary is None:
            summary = EmployeeSummary(
                employee_id=row.employee_id,
                employee_name=row.employee_name,
                hourly_rate=row.hourly_rate,
            )
            summaries[row.employee_id] = summary
        summary.planned_hours += row.planned_hours or Decimal("0")
        summary.actual_hours += row.actual_hours or Decimal("0")
        summary.total_pay += row.total_pay or Decimal("0")
        summary.row_count += 1
        if row.total_pay is None:
            summary.unpriced_rows += 1
    return list(summaries.values())


def compute_reconciliation(
    inputs: ReconciliationInputs,
    tz: ZoneInfo,
    variance_threshold: Decimal = Decimal("0.5"),
    engine_version: str = "1.0.0",
) -> ReconciliationResult:
    """Convenience wrapper around ReconciliationEngine.reconcile."""
    engine = ReconciliationEngine(tz, variance_threshold, engine_version)
    return engine.reconcile(inputs)
