"""Payroll period service.

A payroll month runs from the 25th of the previous month to the 24th of
the month itself unless an explicit range has been saved.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rota_payroll.exceptions import ValidationError
from rota_payroll.models import PayrollPeriod
from rota_payroll.services.permissions import Actor

PERIOD_START_DAY = 25
PERIOD_END_DAY = 24


def validate_month(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}")
    if not 2000 <= year <= 2100:
        raise ValidationError(f"Invalid year: {year}")


def default_period(year: int, month: int) -> tuple[date, date]:
    """25th of the previous month through the 24th of this one."""
    validate_month(year, month)
    if month == 1:
        start = date(year - 1, 12, PERIOD_START_DAY)
    else:
        start = date(year, month - 1, PERIOD_START_DAY)
    return start, date(year, month, PERIOD_END_DAY)


def default_month_for(day: date) -> tuple[int, int]:
    """The (year, month) whose default period contains a date."""
    if day.day < PERIOD_START_DAY:
        return day.year, day.month
    if day.month == 12:
        return day.year + 1, 1
    return day.year, day.month + 1


class PeriodService:
    """Reads and edits payroll periods."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_period(self, year: int, month: int) -> PayrollPeriod | None:
        result = await self.session.execute(
            select(PayrollPeriod).where(
                PayrollPeriod.year == year, PayrollPeriod.month == month
            )
        )
        return result.scalar_one_or_none()

    async def get_or_create_period(self, year: int, month: int) -> PayrollPeriod:
        """Return the saved period, persisting the default range on first use."""
        validate_month(year, month)
        period = await self.get_period(year, month)
        if period is None:
            start, end = default_period(year, month)
            period = PayrollPeriod(year=year, month=month, period_start=start, period_end=end)
            self.session.add(period)
            await self.session.flush()
        return period

    async def update_period(
        self,
        actor: Actor,
        year: int,
        month: int,
        period_start: date,
        period_end: date,
    ) -> PayrollPeriod:
        """Save an explicit range and drop the month's approval."""
        # Imported here to avoid a cycle with approval_service
        from rota_payroll.services.approval_service import ApprovalService

        actor.require("payroll", "approve")
        validate_month(year, month)
        if period_end < period_start:
            raise ValidationError("Period end must be on or after period start")

        period = await self.get_period(year, month)
        if period is None:
            period = PayrollPeriod(year=year, month=month)
            self.session.add(period)
        period.period_start = period_start
        period.period_end = period_end
        await self.session.flush()

        await ApprovalService(self.session).invalidate(year, month)
        return period

    async def months_covering(self, day: date) -> list[tuple[int, int]]:
        """Every (year, month) whose effective period contains a date."""
        result = await self.session.execute(
            select(PayrollPeriod.year, PayrollPeriod.month).where(
                PayrollPeriod.period_start <= day, PayrollPeriod.period_end >= day
            )
        )
        months = {(y, m) for y, m in result.all()}

        default = default_month_for(day)
        if default not in months and await self.get_period(*default) is None:
            months.add(default)
        return sorted(months)
