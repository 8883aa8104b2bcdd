"""Payroll month approval service."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from rota_payroll.exceptions import ApprovalConflictError, ApprovalNotFoundError
from rota_payroll.models import PayrollMonthApproval
from rota_payroll.reconciliation.types import (
    EmployeeSummary,
    PayrollRow,
    ReconciliationResult,
)
from rota_payroll.services.period_service import PeriodService

logger = logging.getLogger(__name__)


class ApprovalService:
    """Stores, reads and invalidates month approval snapshots.

    An approval is deleted rather than versioned when the data behind it
    changes. Writes go through the mapper's version counter, so a writer
    whose copy of the approval is stale gets ApprovalConflictError.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_approval(self, year: int, month: int) -> PayrollMonthApproval | None:
        result = await self.session.execute(
            select(PayrollMonthApproval).where(
                PayrollMonthApproval.year == year,
                PayrollMonthApproval.month == month,
            )
        )
        return result.scalar_one_or_none()

    async def current_version(self, year: int, month: int) -> int | None:
        """The approval row's version as stored, or None if the month is unapproved."""
        result = await self.session.execute(
            select(PayrollMonthApproval.version).where(
                PayrollMonthApproval.year == year,
                PayrollMonthApproval.month == month,
            )
        )
        return result.scalar_one_or_none()

    async def require_approval(self, year: int, month: int) -> PayrollMonthApproval:
        approval = await self.get_approval(year, month)
        if approval is None:
            raise ApprovalNotFoundError(year, month)
        return approval

    async def save_approval(
        self,
        year: int,
        month: int,
        approved_by: UUID,
        result: ReconciliationResult,
        expected_version: int | None,
    ) -> PayrollMonthApproval:
        """Insert or replace the month's snapshot.

        expected_version is the approval version read before the result was
        computed (None when the month was unapproved). If the approval was
        written, replaced or invalidated since then, the snapshot may be
        stale and ApprovalConflictError is raised.
        """
        approved_at = datetime.now(timezone.utc)
        snapshot = result.to_dict()
        snapshot["approved_at"] = approved_at.isoformat()

        approval = (
            await self.session.execute(
                select(PayrollMonthApproval)
                .where(
                    PayrollMonthApproval.year == year,
                    PayrollMonthApproval.month == month,
                )
                .execution_options(populate_existing=True)
            )
        ).scalar_one_or_none()
        found_version = approval.version if approval is not None else None
        if found_version != expected_version:
            logger.warning(
                "Approval of %s-%02d changed during computation (version %s, now %s)",
                year,
                month,
                expected_version,
                found_version,
            )
            raise ApprovalConflictError(year, month)

        if approval is None:
            approval = PayrollMonthApproval(year=year, month=month)
            self.session.add(approval)
        approval.approved_at = approved_at
        approval.approved_by = approved_by
        approval.snapshot = snapshot
        approval.snapshot_hash = result.fingerprint
        approval.email_sent_at = None
        approval.email_sent_by = None

        try:
            await self.session.flush()
        except (IntegrityError, StaleDataError) as exc:
            logger.warning("Concurrent approval of %s-%02d: %s", year, month, exc)
            raise ApprovalConflictError(year, month) from exc

        logger.info(
            "Approved payroll %s-%02d (%d rows, hash %s)",
            year,
            month,
            len(result.rows),
            result.fingerprint[:12],
        )
        return approval

    async def mark_email_sent(
        self, approval: PayrollMonthApproval, sent_by: UUID | None
    ) -> None:
        approval.email_sent_at = datetime.now(timezone.utc)
        approval.email_sent_by = sent_by
        try:
            await self.session.flush()
        except StaleDataError as exc:
            raise ApprovalConflictError(approval.year, approval.month) from exc

    async def invalidate(self, year: int, month: int) -> bool:
        """Delete the month's approval. Returns True if one existed."""
        result = await self.session.execute(
            delete(PayrollMonthApproval).where(
                PayrollMonthApproval.year == year,
                PayrollMonthApproval.month == month,
            )
        )
        removed = bool(result.rowcount)
        if removed:
            logger.info("Invalidated payroll approval %s-%02d", year, month)
        return removed

    async def invalidate_for_date(self, day: date) -> list[tuple[int, int]]:
        """Delete approvals of every period covering a work date."""
        invalidated = []
        for year, month in await PeriodService(self.session).months_covering(day):
            if await self.invalidate(year, month):
                invalidated.append((year, month))
        return invalidated


def snapshot_rows(approval: PayrollMonthApproval) -> list[PayrollRow]:
    return [PayrollRow.from_dict(r) for r in approval.snapshot.get("rows", [])]


def snapshot_summaries(approval: PayrollMonthApproval) -> list[EmployeeSummary]:
    return [EmployeeSummary.from_dict(e) for e in approval.snapshot.get("employees", [])]
