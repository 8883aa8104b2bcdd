"""Payroll service - main orchestrator for payroll month operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from rota_payroll.config import Settings, get_settings
from rota_payroll.exceptions import NotFoundError, ValidationError
from rota_payroll.models import (
    PayrollMonthApproval,
    PayrollPeriod,
    ReconciliationNote,
    RotaShift,
    TimeclockSession,
)
from rota_payroll.reconciliation.engine import ReconciliationEngine
from rota_payroll.reconciliation.types import ReconciliationResult
from rota_payroll.services.approval_service import ApprovalService
from rota_payroll.services.audit import month_key, record_audit
from rota_payroll.services.loader import SHIFT_NOTE, PayrollDataLoader
from rota_payroll.services.period_service import PeriodService
from rota_payroll.services.permissions import Actor
from rota_payroll.services.timeclock_service import TimeclockService

logger = logging.getLogger(__name__)


@dataclass
class MonthData:
    """Reconciled rows for one payroll month."""

    year: int
    month: int
    period: PayrollPeriod
    result: ReconciliationResult


class PayrollService:
    """Service for payroll month review and correction.

    Operations:
    - get_month_data: Reconcile shifts against sessions for the month
    - approve_month: Recompute and store an approval snapshot
    - update_payroll_row_times: Create or correct the session behind a row
    - delete_payroll_row: Remove the session, or cancel the shift
    - upsert_shift_note: Replace a shift's reconciliation note
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.periods = PeriodService(session)
        self.approvals = ApprovalService(session)
        self.loader = PayrollDataLoader(session)
        self.engine = ReconciliationEngine(
            tz=self.settings.tzinfo,
            variance_threshold=self.settings.variance_threshold_hours,
            engine_version=self.settings.engine_version,
        )

    async def compute(self, year: int, month: int) -> MonthData:
        """Reconcile a month without a permission check."""
        period = await self.periods.get_or_create_period(year, month)
        inputs = await self.loader.load(period.period_start, period.period_end)
        result = self.engine.reconcile(inputs)
        return MonthData(year=year, month=month, period=period, result=result)

    async def get_month_data(self, actor: Actor, year: int, month: int) -> MonthData:
        actor.require("payroll", "view")
        return await self.compute(year, month)

    async def approve_month(
        self, actor: Actor, year: int, month: int
    ) -> PayrollMonthApproval:
        """Recompute the month and snapshot it as approved."""
        actor.require("payroll", "approve")
        if actor.user_id is None:
            raise ValidationError("Approver identity is required")

        expected_version = await self.approvals.current_version(year, month)
        data = await self.compute(year, month)
        approval = await self.approvals.save_approval(
            year, month, actor.user_id, data.result, expected_version
        )
        await record_audit(
            self.session,
            "payroll_month",
            month_key(year, month),
            "approve",
            actor.user_id,
            {"rows": len(data.result.rows), "snapshot_hash": data.result.fingerprint},
        )
        return approval

    async def update_payroll_row_times(
        self,
        actor: Actor,
        year: int,
        month: int,
        session_id: UUID | None,
        employee_id: UUID,
        work_date: date,
        clock_in: str,
        clock_out: str | None,
    ) -> TimeclockSession:
        """Set a row's actual times, creating the session if the row has none."""
        actor.require("payroll", "approve")
        timeclock = TimeclockService(self.session, self.settings)
        if session_id is not None:
            ts = await timeclock.update_session(
                actor, session_id, clock_in, clock_out, allow_payroll_approve=True
            )
        else:
            ts = await timeclock.create_session(
                actor, employee_id, work_date, clock_in, clock_out, allow_payroll_approve=True
            )
        await self.approvals.invalidate(year, month)
        return ts

    async def delete_payroll_row(
        self,
        actor: Actor,
        year: int,
        month: int,
        session_id: UUID | None,
        shift_id: UUID | None,
    ) -> None:
        """Delete the row's session if it has one, else cancel its shift."""
        actor.require("payroll", "approve")
        if session_id is not None:
            timeclock = TimeclockService(self.session, self.settings)
            await timeclock.delete_session(actor, session_id, allow_payroll_approve=True)
        elif shift_id is not None:
            shift = await self.session.get(RotaShift, shift_id)
            if shift is None:
                raise NotFoundError("Shift", shift_id)
            shift.status = "cancelled"
            await self.session.flush()
            await self.approvals.invalidate_for_date(shift.shift_date)
            await record_audit(
                self.session, "rota_shift", shift_id, "cancel", actor.user_id,
                {"source": "payroll"},
            )
        else:
            raise ValidationError("Nothing to delete")
        await self.approvals.invalidate(year, month)

    async def upsert_shift_note(
        self, actor: Actor, shift_id: UUID, note: str | None
    ) -> ReconciliationNote | None:
        """Replace a shift's note. A blank note just removes it."""
        actor.require("payroll", "approve")
        if await self.session.get(RotaShift, shift_id) is None:
            raise NotFoundError("Shift", shift_id)

        await self.session.execute(
            delete(ReconciliationNote).where(
                ReconciliationNote.entity_type == SHIFT_NOTE,
                ReconciliationNote.entity_id == shift_id,
            )
        )
        text = (note or "").strip()
        saved = None
        if text:
            saved = ReconciliationNote(
                entity_type=SHIFT_NOTE,
                entity_id=shift_id,
                note=text,
                created_by=actor.user_id,
            )
            self.session.add(saved)
        await self.session.flush()

        await record_audit(
            self.session, "rota_shift", shift_id,
            "note_updated" if text else "note_deleted", actor.user_id,
        )
        return saved
