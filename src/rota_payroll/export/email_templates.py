"""HTML bodies for payroll emails."""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from html import escape

from rota_payroll.reconciliation.types import EmployeeRecord, EmployeeSummary


def month_label(year: int, month: int) -> str:
    return f"{calendar.month_name[month]} {year}"


def _money(value: Decimal | None) -> str:
    return "-" if value is None else f"£{value:,.2f}"


def _fmt_date(value: date | None) -> str:
    return value.strftime("%d/%m/%Y") if value else "-"


def payroll_email_html(
    year: int,
    month: int,
    period_start: date,
    period_end: date,
    summaries: Iterable[EmployeeSummary],
    leavers: Iterable[EmployeeRecord] = (),
) -> str:
    """Accountant email: per-employee totals plus any leavers needing a P45."""
    summaries = list(summaries)
    leavers = list(leavers)
    total = sum((s.total_pay for s in summaries), Decimal("0"))

    body_rows = "".join(
        "<tr>"
        f"<td>{escape(s.employee_name)}</td>"
        f"<td style=\"text-align:right\">{s.actual_hours}</td>"
        f"<td style=\"text-align:right\">{_money(s.hourly_rate)}</td>"
        f"<td style=\"text-align:right\">{_money(s.total_pay)}</td>"
        "</tr>"
        for s in summaries
    )

    p45 = ""
    if leavers:
        items = "".join(
            f"<li>{escape(e.full_name)} (last day {_fmt_date(e.employment_end_date)})</li>"
            for e in leavers
        )
        p45 = (
            "<h3>Leavers: P45 required</h3>"
            f"<ul>{items}</ul>"
        )

    return (
        "<html><body style=\"font-family:Arial,sans-serif\">"
        f"<h2>Payroll for {escape(month_label(year, month))}</h2>"
        f"<p>Period: {_fmt_date(period_start)} to {_fmt_date(period_end)}</p>"
        "<table border=\"1\" cellpadding=\"4\" cellspacing=\"0\">"
        "<thead><tr><th>Employee</th><th>Hours</th><th>Rate</th><th>Total</th></tr></thead>"
        f"<tbody>{body_rows}</tbody>"
        "<tfoot><tr><th colspan=\"3\" style=\"text-align:right\">Total</th>"
        f"<th style=\"text-align:right\">{_money(total)}</th></tr></tfoot>"
        "</table>"
        f"{p45}"
        "<p>The full breakdown is attached as a spreadsheet.</p>"
        "</body></html>"
    )


def earnings_alert_html(
    year: int,
    month: int,
    threshold: Decimal,
    over_threshold: Iterable[EmployeeSummary],
) -> str:
    """Manager alert listing employees paid more than the threshold."""
    items = "".join(
        f"<li>{escape(s.employee_name)}: {_money(s.total_pay)}</li>" for s in over_threshold
    )
    return (
        "<html><body style=\"font-family:Arial,sans-serif\">"
        f"<h2>Earnings alert: {escape(month_label(year, month))}</h2>"
        f"<p>The following employees earned more than {_money(threshold)} this month:</p>"
        f"<ul>{items}</ul>"
        "</body></html>"
    )
