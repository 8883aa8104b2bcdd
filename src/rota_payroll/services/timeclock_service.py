"""Timeclock service: kiosk clocking and manager corrections.

Every mutation drops the approval of each payroll month whose period
covers the session's work date.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rota_payroll.config import Settings, get_settings
from rota_payroll.exceptions import NotFoundError, ValidationError
from rota_payroll.models import Employee, RotaShift, TimeclockSession
from rota_payroll.reconciliation.hours import local_date, local_instant, to_utc
from rota_payroll.services.approval_service import ApprovalService
from rota_payroll.services.audit import record_audit
from rota_payroll.services.permissions import Actor

logger = logging.getLogger(__name__)

HHMM = re.compile(r"^\d{2}:\d{2}$")


def parse_hhmm(value: str, field_name: str = "time") -> time:
    """Parse a strict HH:MM string."""
    if not isinstance(value, str) or not HHMM.match(value):
        raise ValidationError(f"Invalid {field_name}: expected HH:MM")
    hours, minutes = int(value[:2]), int(value[3:])
    if hours > 23 or minutes > 59:
        raise ValidationError(f"Invalid {field_name}: {value}")
    return time(hours, minutes)


class TimeclockService:
    """Creates, closes and corrects clock sessions."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.tz = self.settings.tzinfo
        self.approvals = ApprovalService(session)

    # === Kiosk ===

    async def clock_in(
        self, employee_id: UUID, now: datetime | None = None
    ) -> TimeclockSession:
        """Open a session, linking it to the closest scheduled shift if any."""
        now = to_utc(now or datetime.now(timezone.utc))
        await self._require_employee(employee_id)
        if await self.get_open_session(employee_id) is not None:
            raise ValidationError("Already clocked in")

        work_date = local_date(now, self.tz)
        shift = await self._closest_scheduled_shift(employee_id, work_date, now)
        ts = TimeclockSession(
            employee_id=employee_id,
            work_date=work_date,
            clock_in_at=now,
            linked_shift_id=shift.id if shift else None,
            is_unscheduled=shift is None,
        )
        self.session.add(ts)
        await self.session.flush()

        await self.approvals.invalidate_for_date(work_date)
        await record_audit(
            self.session, "timeclock_session", ts.id, "clock_in", None,
            {"employee_id": str(employee_id), "linked_shift_id": str(shift.id) if shift else None},
        )
        return ts

    async def clock_out(
        self, employee_id: UUID, now: datetime | None = None
    ) -> TimeclockSession:
        """Close the employee's open session."""
        now = to_utc(now or datetime.now(timezone.utc))
        ts = await self.get_open_session(employee_id)
        if ts is None:
            raise ValidationError("Not clocked in")
        if now <= to_utc(ts.clock_in_at):
            raise ValidationError("Clock-out must be after clock-in")

        ts.clock_out_at = now
        await self.session.flush()

        await self.approvals.invalidate_for_date(ts.work_date)
        await record_audit(
            self.session, "timeclock_session", ts.id, "clock_out", None,
            {"employee_id": str(employee_id)},
        )
        return ts

    async def get_open_session(self, employee_id: UUID) -> TimeclockSession | None:
        result = await self.session.execute(
            select(TimeclockSession)
            .where(
                TimeclockSession.employee_id == employee_id,
                TimeclockSession.clock_out_at.is_(None),
            )
            .order_by(TimeclockSession.clock_in_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    # === Manager corrections ===

    async def create_session(
        self,
        actor: Actor,
        employee_id: UUID,
        work_date: date,
        clock_in: str,
        clock_out: str | None = None,
        allow_payroll_approve: bool = False,
    ) -> TimeclockSession:
        """Record a session from local HH:MM times."""
        self._require_edit(actor, allow_payroll_approve)
        await self._require_employee(employee_id)
        clock_in_at, clock_out_at = self._instants(work_date, clock_in, clock_out)

        shift = await self._closest_scheduled_shift(employee_id, work_date, clock_in_at)
        ts = TimeclockSession(
            employee_id=employee_id,
            work_date=work_date,
            clock_in_at=clock_in_at,
            clock_out_at=clock_out_at,
            linked_shift_id=shift.id if shift else None,
            is_unscheduled=shift is None,
        )
        self.session.add(ts)
        await self.session.flush()

        await self.approvals.invalidate_for_date(work_date)
        await record_audit(
            self.session, "timeclock_session", ts.id, "create", actor.user_id,
            {"clock_in": clock_in, "clock_out": clock_out, "work_date": work_date.isoformat()},
        )
        return ts

    async def update_session(
        self,
        actor: Actor,
        session_id: UUID,
        clock_in: str,
        clock_out: str | None = None,
        allow_payroll_approve: bool = False,
    ) -> TimeclockSession:
        """Rewrite a session's times. A manual clock-out clears auto-close."""
        self._require_edit(actor, allow_payroll_approve)
        ts = await self._get_session(session_id)
        clock_in_at, clock_out_at = self._instants(ts.work_date, clock_in, clock_out)

        ts.clock_in_at = clock_in_at
        ts.clock_out_at = clock_out_at
        if clock_out_at is not None:
            ts.is_auto_close = False
            ts.auto_close_reason = None
        await self.session.flush()

        await self.approvals.invalidate_for_date(ts.work_date)
        await record_audit(
            self.session, "timeclock_session", ts.id, "update", actor.user_id,
            {"clock_in": clock_in, "clock_out": clock_out},
        )
        return ts

    async def delete_session(
        self,
        actor: Actor,
        session_id: UUID,
        allow_payroll_approve: bool = False,
    ) -> None:
        self._require_edit(actor, allow_payroll_approve)
        ts = await self._get_session(session_id)
        work_date = ts.work_date
        await self.session.delete(ts)
        await self.session.flush()

        await self.approvals.invalidate_for_date(work_date)
        await record_audit(
            self.session, "timeclock_session", session_id, "delete", actor.user_id,
            {"work_date": work_date.isoformat()},
        )

    # === Helpers ===

    def _require_edit(self, actor: Actor, allow_payroll_approve: bool) -> None:
        if actor.can("timeclock", "edit"):
            return
        if allow_payroll_approve and actor.can("payroll", "approve"):
            return
        actor.require("timeclock", "edit")

    def _instants(
        self, work_date: date, clock_in: str, clock_out: str | None
    ) -> tuple[datetime, datetime | None]:
        clock_in_at = local_instant(work_date, parse_hhmm(clock_in, "clock-in"), self.tz)
        if not clock_out:
            return clock_in_at, None
        clock_out_at = local_instant(work_date, parse_hhmm(clock_out, "clock-out"), self.tz)
        if clock_out_at <= clock_in_at:
            raise ValidationError("Clock-out must be after clock-in")
        return clock_in_at, clock_out_at

    async def _closest_scheduled_shift(
        self, employee_id: UUID, work_date: date, clock_in_at: datetime
    ) -> RotaShift | None:
        result = await self.session.execute(
            select(RotaShift)
            .where(
                RotaShift.employee_id == employee_id,
                RotaShift.shift_date == work_date,
                RotaShift.status == "scheduled",
            )
            .order_by(RotaShift.start_time, RotaShift.id)
        )
        window = timedelta(minutes=self.settings.shift_link_window_minutes)
        best: RotaShift | None = None
        best_diff: timedelta | None = None
        for shift in result.scalars().all():
            start = local_instant(shift.shift_date, shift.start_time, self.tz)
            diff = abs(to_utc(clock_in_at) - start)
            if diff <= window and (best_diff is None or diff < best_diff):
                best, best_diff = shift, diff
        return best

    async def _require_employee(self, employee_id: UUID) -> None:
        if await self.session.get(Employee, employee_id) is None:
            raise NotFoundError("Employee", employee_id)

    async def _get_session(self, session_id: UUID) -> TimeclockSession:
        ts = await self.session.get(TimeclockSession, session_id)
        if ts is None:
            raise NotFoundError("Timeclock session", session_id)
        return ts
