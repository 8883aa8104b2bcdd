"""Payroll email service: accountant export and earnings alert."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rota_payroll.config import Settings, get_settings
from rota_payroll.exceptions import ConfigurationError
from rota_payroll.export.email_templates import (
    earnings_alert_html,
    month_label,
    payroll_email_html,
)
from rota_payroll.export.workbook import build_payroll_workbook, workbook_filename
from rota_payroll.models import SEPARATION_STATUS, Employee, PayrollEmailLog
from rota_payroll.notifications.base import (
    Attachment,
    EmailSender,
    OutboundEmail,
    SendResult,
)
from rota_payroll.reconciliation.types import EmployeeRecord, EmployeeSummary
from rota_payroll.services.approval_service import (
    ApprovalService,
    snapshot_rows,
    snapshot_summaries,
)
from rota_payroll.services.audit import month_key, record_audit
from rota_payroll.services.loader import employee_record
from rota_payroll.services.period_service import PeriodService
from rota_payroll.services.permissions import Actor

logger = logging.getLogger(__name__)

PAYROLL_EMAIL = "payroll_export"
EARNINGS_ALERT = "earnings_alert"


@dataclass
class EmailDispatchResult:
    """Outcome of sending a month's payroll email."""

    sent: bool
    to: list[str]
    cc: list[str] = field(default_factory=list)
    message_id: str | None = None
    error: str | None = None
    alert_sent: bool = False
    alerted_employees: list[str] = field(default_factory=list)


class PayrollEmailService:
    """Sends the approved snapshot of a month to the accountant.

    The snapshot is the only data source: nothing is recomputed here.
    """

    def __init__(
        self,
        session: AsyncSession,
        sender: EmailSender,
        settings: Settings | None = None,
    ):
        self.session = session
        self.sender = sender
        self.settings = settings or get_settings()
        self.approvals = ApprovalService(session)
        self.periods = PeriodService(session)

    async def send_payroll_email(
        self, actor: Actor, year: int, month: int
    ) -> EmailDispatchResult:
        """Email the approved month.

        A failed delivery is logged and returned with sent=False; the caller
        decides whether to surface it as an error after committing the log.
        """
        actor.require("payroll", "send")
        accountant = self.settings.accountant_email
        if not accountant:
            raise ConfigurationError("Accountant email is not configured")

        approval = await self.approvals.require_approval(year, month)
        period = await self.periods.get_or_create_period(year, month)
        rows = snapshot_rows(approval)
        summaries = snapshot_summaries(approval)
        leavers = await self.find_leavers(period.period_end)

        cc = [actor.email] if actor.email and actor.email != accountant else []
        email = OutboundEmail(
            to=[accountant],
            cc=cc,
            subject=f"Payroll {month_label(year, month)}",
            html=payroll_email_html(
                year, month, period.period_start, period.period_end, summaries, leavers
            ),
            attachments=[
                Attachment(
                    filename=workbook_filename(year, month),
                    content=build_payroll_workbook(rows, summaries),
                )
            ],
        )
        result = await self._dispatch(email, PAYROLL_EMAIL, approval.id, actor.user_id)
        dispatch = EmailDispatchResult(
            sent=result.success,
            to=email.to,
            cc=email.cc,
            message_id=result.message_id,
            error=result.error,
        )
        if not result.success:
            return dispatch

        await self.approvals.mark_email_sent(approval, actor.user_id)
        await record_audit(
            self.session,
            "payroll_month",
            month_key(year, month),
            "email_sent",
            actor.user_id,
            {"to": email.to, "cc": email.cc, "message_id": result.message_id},
        )

        over = self.over_threshold(summaries)
        if over and self.settings.manager_email:
            alert = OutboundEmail(
                to=[self.settings.manager_email],
                subject=f"Earnings alert: {month_label(year, month)}",
                html=earnings_alert_html(
                    year, month, self.settings.earnings_alert_threshold, over
                ),
            )
            alert_result = await self._dispatch(
                alert, EARNINGS_ALERT, approval.id, actor.user_id
            )
            dispatch.alert_sent = alert_result.success
            dispatch.alerted_employees = [s.employee_name for s in over]
        return dispatch

    def over_threshold(self, summaries: list[EmployeeSummary]) -> list[EmployeeSummary]:
        threshold = self.settings.earnings_alert_threshold
        return [s for s in summaries if s.total_pay > threshold]

    async def find_leavers(self, period_end: date) -> list[EmployeeRecord]:
        """Employees in separation whose last day falls by the period end."""
        result = await self.session.execute(
            select(Employee)
            .where(
                Employee.status == SEPARATION_STATUS,
                Employee.employment_end_date.is_not(None),
                Employee.employment_end_date <= period_end,
            )
            .order_by(Employee.last_name, Employee.first_name)
            .options(selectinload(Employee.pay_settings))
        )
        return [employee_record(e) for e in result.scalars().all()]

    async def _dispatch(
        self,
        email: OutboundEmail,
        email_type: str,
        entity_id: UUID | None,
        sent_by: UUID | None,
    ) -> SendResult:
        result = await asyncio.to_thread(self.sender.send, email)
        self.session.add(
            PayrollEmailLog(
                email_type=email_type,
                entity_type="payroll_month_approval",
                entity_id=entity_id,
                to_addresses=list(email.to),
                cc_addresses=list(email.cc),
                subject=email.subject,
                status="sent" if result.success else "failed",
                error_message=result.error,
                message_id=result.message_id,
                sent_by=sent_by,
            )
        )
        await self.session.flush()
        if result.success:
            logger.info("Sent %s email to %s", email_type, email.to)
        else:
            logger.warning("Failed to send %s email to %s: %s", email_type, email.to, result.error)
        return result
