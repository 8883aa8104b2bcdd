"""Batch loading of reconciliation inputs.

One query per table per run; the engine then works entirely in memory.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rota_payroll.exceptions import DataFetchError
from rota_payroll.models import (
    Employee,
    EmployeeRateOverride,
    PayAgeBand,
    PayBandRate,
    ReconciliationNote,
    RotaShift,
    TimeclockSession,
)
from rota_payroll.reconciliation.types import (
    AgeBandRecord,
    BandRateRecord,
    EmployeeRecord,
    PayType,
    RateOverrideRecord,
    ReconciliationInputs,
    SessionRecord,
    ShiftRecord,
)

logger = logging.getLogger(__name__)

SHIFT_NOTE = "shift"


def employee_record(emp: Employee) -> EmployeeRecord:
    pay_type = PayType.HOURLY
    if emp.pay_settings is not None and emp.pay_settings.pay_type == PayType.SALARIED.value:
        pay_type = PayType.SALARIED
    return EmployeeRecord(
        employee_id=emp.employee_id,
        first_name=emp.first_name,
        last_name=emp.last_name,
        date_of_birth=emp.date_of_birth,
        pay_type=pay_type,
        status=emp.status,
        employment_end_date=emp.employment_end_date,
        email=emp.email,
    )


def shift_record(shift: RotaShift) -> ShiftRecord:
    return ShiftRecord(
        id=shift.id,
        employee_id=shift.employee_id,
        shift_date=shift.shift_date,
        start_time=shift.start_time,
        end_time=shift.end_time,
        unpaid_break_minutes=shift.unpaid_break_minutes,
        department=shift.department,
        status=shift.status,
        is_overnight=shift.is_overnight,
    )


def session_record(ts: TimeclockSession) -> SessionRecord:
    return SessionRecord(
        id=ts.id,
        employee_id=ts.employee_id,
        work_date=ts.work_date,
        clock_in_at=ts.clock_in_at,
        clock_out_at=ts.clock_out_at,
        linked_shift_id=ts.linked_shift_id,
        is_unscheduled=ts.is_unscheduled,
        is_auto_close=ts.is_auto_close,
        notes=ts.notes,
    )


class PayrollDataLoader:
    """Fetches everything one reconciliation run needs."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load(self, period_start: date, period_end: date) -> ReconciliationInputs:
        """Load inputs for a period.

        Raises:
            DataFetchError: If any read fails. No partial inputs are returned.
        """
        try:
            return await self._load(period_start, period_end)
        except SQLAlchemyError as exc:
            logger.exception(
                "Failed to load payroll data for %s..%s", period_start, period_end
            )
            raise DataFetchError("Failed to load payroll data") from exc

    async def _load(self, period_start: date, period_end: date) -> ReconciliationInputs:
        shifts = (
            await self.session.execute(
                select(RotaShift)
                .where(
                    RotaShift.shift_date >= period_start,
                    RotaShift.shift_date <= period_end,
                    RotaShift.status != "cancelled",
                )
                .order_by(RotaShift.shift_date, RotaShift.start_time)
            )
        ).scalars().all()

        sessions = (
            await self.session.execute(
                select(TimeclockSession)
                .where(
                    TimeclockSession.work_date >= period_start,
                    TimeclockSession.work_date <= period_end,
                )
                .order_by(TimeclockSession.work_date, TimeclockSession.clock_in_at)
            )
        ).scalars().all()

        employee_ids = {s.employee_id for s in shifts} | {s.employee_id for s in sessions}
        employees: list[Employee] = []
        overrides: list[EmployeeRateOverride] = []
        if employee_ids:
            employees = (
                await self.session.execute(
                    select(Employee)
                    .where(Employee.employee_id.in_(employee_ids))
                    .options(selectinload(Employee.pay_settings))
                )
            ).scalars().all()
            overrides = (
                await self.session.execute(
                    select(EmployeeRateOverride).where(
                        EmployeeRateOverride.employee_id.in_(employee_ids),
                        EmployeeRateOverride.effective_from <= period_end,
                    )
                )
            ).scalars().all()

        bands = (
            await self.session.execute(
                select(PayAgeBand)
                .where(PayAgeBand.is_active.is_(True))
                .order_by(PayAgeBand.sort_order, PayAgeBand.min_age)
            )
        ).scalars().all()

        band_rates = (
            await self.session.execute(
                select(PayBandRate).where(PayBandRate.effective_from <= period_end)
            )
        ).scalars().all()

        notes_by_shift = {}
        shift_ids = [s.id for s in shifts]
        if shift_ids:
            notes = (
                await self.session.execute(
                    select(ReconciliationNote)
                    .where(
                        ReconciliationNote.entity_type == SHIFT_NOTE,
                        ReconciliationNote.entity_id.in_(shift_ids),
                    )
                    .order_by(ReconciliationNote.created_at, ReconciliationNote.id)
                )
            ).scalars().all()
            # Later notes overwrite earlier ones
            for note in notes:
                notes_by_shift[note.entity_id] = note.note

        return ReconciliationInputs(
            period_start=period_start,
            period_end=period_end,
            employees=[employee_record(e) for e in employees],
            shifts=[shift_record(s) for s in shifts],
            sessions=[session_record(s) for s in sessions],
            rate_overrides=[
                RateOverrideRecord(o.employee_id, o.hourly_rate, o.effective_from)
                for o in overrides
            ],
            age_bands=[
                AgeBandRecord(b.id, b.min_age, b.max_age, b.label, b.is_active) for b in bands
            ],
            band_rates=[
                BandRateRecord(r.band_id, r.hourly_rate, r.effective_from) for r in band_rates
            ],
            notes_by_shift=notes_by_shift,
        )
