"""Tests for the payroll service against an in-memory database."""

from dataclasses import replace
from datetime import date, time
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError

from conftest import add_employee, add_override, add_session, add_shift, utc
from rota_payroll.exceptions import (
    ApprovalConflictError,
    DataFetchError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from rota_payroll.models import AuditEvent, PayrollMonthApproval, RotaShift, TimeclockSession
from rota_payroll.reconciliation.types import RateSource
from rota_payroll.services.approval_service import ApprovalService, snapshot_rows
from rota_payroll.services.loader import PayrollDataLoader
from rota_payroll.services.payroll_service import PayrollService
from rota_payroll.services.permissions import Actor, GrantedPermissions


class _BrokenSession:
    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is unreachable"))


def _race_after_compute(service: PayrollService, race) -> None:
    """Run another writer between computing the month and saving it."""
    compute = service.compute

    async def compute_then_race(year, month):
        data = await compute(year, month)
        await race()
        return data

    service.compute = compute_then_race


class TestGetMonthData:
    """Reconciliation through the database."""

    async def test_scenario_row(self, session, test_settings, viewer, scenario):
        employee, shift, ts = scenario

        data = await PayrollService(session, test_settings).get_month_data(viewer, 2024, 3)

        assert data.period.period_start == date(2024, 2, 25)
        assert len(data.result.rows) == 1
        row = data.result.rows[0]
        assert row.employee_id == employee.employee_id
        assert row.actual_hours == Decimal("8.05")
        assert row.hourly_rate == Decimal("11.50")
        assert row.rate_source == RateSource.AGE_BAND
        assert row.total_pay == Decimal("92.58")
        assert row.flags == "variance"
        assert row.actual_start == "08:58"

    async def test_requires_view_permission(self, session, test_settings, scenario):
        nobody = Actor(user_id=uuid4(), permissions=GrantedPermissions())

        with pytest.raises(PermissionDeniedError):
            await PayrollService(session, test_settings).get_month_data(nobody, 2024, 3)

    async def test_salaried_employee_excluded(self, session, test_settings, viewer, adult_band):
        salaried = await add_employee(session, first_name="Sal", pay_type="salaried")
        shift = await add_shift(session, salaried, date(2024, 3, 5))
        await add_session(session, salaried, utc(2024, 3, 5, 9), utc(2024, 3, 5, 17), shift)

        data = await PayrollService(session, test_settings).get_month_data(viewer, 2024, 3)

        assert data.result.rows == []

    async def test_override_wins_over_band(self, session, test_settings, viewer, scenario):
        employee, _, _ = scenario
        await add_override(session, employee, "13.00", date(2024, 1, 1))

        data = await PayrollService(session, test_settings).get_month_data(viewer, 2024, 3)

        assert data.result.rows[0].hourly_rate == Decimal("13.00")
        assert data.result.rows[0].rate_source == RateSource.OVERRIDE

    async def test_fetch_failure_raises_data_fetch_error(self):
        with pytest.raises(DataFetchError):
            await PayrollDataLoader(_BrokenSession()).load(date(2024, 2, 25), date(2024, 3, 24))

    async def test_variance_threshold_from_settings(self, session, test_settings, viewer, scenario):
        relaxed = replace(test_settings, variance_threshold_hours=Decimal("1"))

        data = await PayrollService(session, relaxed).get_month_data(viewer, 2024, 3)

        assert data.result.rows[0].flags == ""


class TestApproveMonth:
    """Snapshots and the version guard."""

    async def test_approve_stores_snapshot(self, session, test_settings, manager, scenario):
        approval = await PayrollService(session, test_settings).approve_month(manager, 2024, 3)

        assert approval.approved_by == manager.user_id
        assert approval.version == 1
        rows = snapshot_rows(approval)
        assert len(rows) == 1
        assert rows[0].total_pay == Decimal("92.58")
        assert approval.snapshot["employees"][0]["total_pay"] == "92.58"
        assert approval.snapshot_hash == approval.snapshot["fingerprint"]
        assert "approved_at" in approval.snapshot

        events = (await session.execute(select(AuditEvent))).scalars().all()
        assert [(e.entity_id, e.action) for e in events] == [("2024-03", "approve")]

    async def test_reapprove_replaces_and_bumps_version(
        self, session, test_settings, manager, scenario
    ):
        service = PayrollService(session, test_settings)
        first = await service.approve_month(manager, 2024, 3)
        second = await service.approve_month(manager, 2024, 3)

        assert first.id == second.id
        assert second.version == 2
        count = (await session.execute(select(PayrollMonthApproval))).scalars().all()
        assert len(count) == 1

    async def test_version_bump_during_compute_conflicts(
        self, session, test_settings, manager, scenario
    ):
        service = PayrollService(session, test_settings)
        await service.approve_month(manager, 2024, 3)

        async def bump():
            await session.execute(
                update(PayrollMonthApproval.__table__).values(
                    version=PayrollMonthApproval.__table__.c.version + 1
                )
            )

        _race_after_compute(service, bump)

        with pytest.raises(ApprovalConflictError):
            await service.approve_month(manager, 2024, 3)

    async def test_invalidation_during_compute_conflicts(
        self, session, test_settings, manager, scenario
    ):
        service = PayrollService(session, test_settings)
        await service.approve_month(manager, 2024, 3)

        async def invalidate():
            await ApprovalService(session).invalidate(2024, 3)

        _race_after_compute(service, invalidate)

        with pytest.raises(ApprovalConflictError):
            await service.approve_month(manager, 2024, 3)
        assert await ApprovalService(session).current_version(2024, 3) is None

    async def test_concurrent_first_approval_conflicts(
        self, session, test_settings, manager, scenario
    ):
        service = PayrollService(session, test_settings)
        other = PayrollService(session, test_settings)
        _race_after_compute(service, lambda: other.approve_month(manager, 2024, 3))

        with pytest.raises(ApprovalConflictError):
            await service.approve_month(manager, 2024, 3)

    async def test_change_before_approval_starts_is_not_a_conflict(
        self, session, test_settings, manager, scenario
    ):
        service = PayrollService(session, test_settings)
        await service.approve_month(manager, 2024, 3)
        await session.execute(
            update(PayrollMonthApproval.__table__).values(
                version=PayrollMonthApproval.__table__.c.version + 1
            )
        )

        await service.approve_month(manager, 2024, 3)

        assert await ApprovalService(session).current_version(2024, 3) == 3

    async def test_viewer_cannot_approve(self, session, test_settings, viewer, scenario):
        with pytest.raises(PermissionDeniedError):
            await PayrollService(session, test_settings).approve_month(viewer, 2024, 3)


class TestRowCorrections:
    """Manual edits from the payroll screen."""

    async def test_update_existing_session_times(self, session, test_settings, manager, scenario):
        _, _, ts = scenario
        ts.is_auto_close = True
        ts.auto_close_reason = "scheduled_end"
        service = PayrollService(session, test_settings)
        await service.approve_month(manager, 2024, 3)

        await service.update_payroll_row_times(
            manager, 2024, 3, ts.id, ts.employee_id, ts.work_date, "09:00", "17:00"
        )

        assert ts.clock_in_at.hour == 9
        assert ts.is_auto_close is False
        assert ts.auto_close_reason is None
        assert await ApprovalService(session).get_approval(2024, 3) is None
        data = await service.compute(2024, 3)
        assert data.result.rows[0].actual_hours == Decimal("8.00")

    async def test_times_for_row_without_session_creates_one(
        self, session, test_settings, manager, adult_band
    ):
        employee = await add_employee(session)
        shift = await add_shift(session, employee, date(2024, 3, 6))
        service = PayrollService(session, test_settings)

        ts = await service.update_payroll_row_times(
            manager, 2024, 3, None, employee.employee_id, date(2024, 3, 6), "09:00", "16:00"
        )

        assert ts.linked_shift_id == shift.id
        row = (await service.compute(2024, 3)).result.rows[0]
        assert row.session_id == ts.id
        assert row.actual_hours == Decimal("7.00")

    async def test_bad_times_rejected(self, session, test_settings, manager, scenario):
        _, _, ts = scenario
        service = PayrollService(session, test_settings)

        with pytest.raises(ValidationError):
            await service.update_payroll_row_times(
                manager, 2024, 3, ts.id, ts.employee_id, ts.work_date, "9:00", "17:00"
            )
        with pytest.raises(ValidationError):
            await service.update_payroll_row_times(
                manager, 2024, 3, ts.id, ts.employee_id, ts.work_date, "17:00", "09:00"
            )

    async def test_delete_row_with_session_removes_session(
        self, session, test_settings, manager, scenario
    ):
        _, shift, ts = scenario
        service = PayrollService(session, test_settings)

        await service.delete_payroll_row(manager, 2024, 3, ts.id, shift.id)

        assert await session.get(TimeclockSession, ts.id) is None
        row = (await service.compute(2024, 3)).result.rows[0]
        assert row.shift_id == shift.id
        assert row.session_id is None
        assert row.total_pay is None

    async def test_delete_row_without_session_cancels_shift(
        self, session, test_settings, manager, adult_band
    ):
        employee = await add_employee(session)
        shift = await add_shift(session, employee, date(2024, 3, 6))
        service = PayrollService(session, test_settings)

        await service.delete_payroll_row(manager, 2024, 3, None, shift.id)

        assert (await session.get(RotaShift, shift.id)).status == "cancelled"
        assert (await service.compute(2024, 3)).result.rows == []

    async def test_delete_nothing(self, session, test_settings, manager):
        with pytest.raises(ValidationError, match="Nothing to delete"):
            await PayrollService(session, test_settings).delete_payroll_row(
                manager, 2024, 3, None, None
            )

    async def test_delete_unknown_shift(self, session, test_settings, manager):
        with pytest.raises(NotFoundError):
            await PayrollService(session, test_settings).delete_payroll_row(
                manager, 2024, 3, None, uuid4()
            )


class TestShiftNotes:
    """Internal reconciliation notes."""

    async def test_note_replaced_and_shown_on_row(self, session, test_settings, manager, scenario):
        _, shift, _ = scenario
        service = PayrollService(session, test_settings)

        await service.upsert_shift_note(manager, shift.id, "first")
        await service.upsert_shift_note(manager, shift.id, "  second  ")

        row = (await service.compute(2024, 3)).result.rows[0]
        assert row.note == "second"

    async def test_blank_note_deletes(self, session, test_settings, manager, scenario):
        _, shift, _ = scenario
        service = PayrollService(session, test_settings)
        await service.upsert_shift_note(manager, shift.id, "temp")

        assert await service.upsert_shift_note(manager, shift.id, "   ") is None

        row = (await service.compute(2024, 3)).result.rows[0]
        assert row.note is None

    async def test_note_on_unknown_shift(self, session, test_settings, manager):
        with pytest.raises(NotFoundError):
            await PayrollService(session, test_settings).upsert_shift_note(
                manager, uuid4(), "hello"
            )
