"""Payroll spreadsheet export (openpyxl).

Reconciliation notes are internal and are not written to the workbook.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Font

from rota_payroll.reconciliation.types import EmployeeSummary, PayrollRow

ROW_HEADERS = [
    "Employee",
    "Date",
    "Department",
    "Planned Start",
    "Planned End",
    "Planned Hours",
    "Actual Start",
    "Actual End",
    "Actual Hours",
    "Hourly Rate",
    "Total Pay",
    "Flags",
]

SUMMARY_HEADERS = [
    "Employee",
    "Planned Hours",
    "Actual Hours",
    "Hourly Rate",
    "Total Pay",
]

MONEY_FORMAT = "#,##0.00"


def workbook_filename(year: int, month: int) -> str:
    return f"payroll_{year}_{month:02d}.xlsx"


def _write_header(ws, headers: list[str]) -> None:
    ws.append(headers)
    for cell in ws[1]:
        cell.font = Font(bold=True)
    ws.freeze_panes = "A2"


def build_payroll_workbook(
    rows: Iterable[PayrollRow],
    summaries: Iterable[EmployeeSummary],
) -> bytes:
    """Render rows and per-employee totals to xlsx bytes."""
    wb = Workbook()

    ws = wb.active
    ws.title = "Payroll"
    _write_header(ws, ROW_HEADERS)
    for row in rows:
        ws.append(
            [
                row.employee_name,
                row.date,
                row.department,
                row.planned_start,
                row.planned_end,
                row.planned_hours,
                row.actual_start,
                row.actual_end,
                row.actual_hours,
                row.hourly_rate,
                row.total_pay,
                row.flags,
            ]
        )
    for cells in ws.iter_rows(min_row=2, min_col=10, max_col=11):
        for cell in cells:
            cell.number_format = MONEY_FORMAT
    for cells in ws.iter_rows(min_row=2, min_col=2, max_col=2):
        for cell in cells:
            cell.number_format = "yyyy-mm-dd"

    summary_ws = wb.create_sheet("Summary")
    _write_header(summary_ws, SUMMARY_HEADERS)
    grand_total = Decimal("0")
    for summary in summaries:
        summary_ws.append(
            [
                summary.employee_name,
                summary.planned_hours,
                summary.actual_hours,
                summary.hourly_rate,
                summary.total_pay,
            ]
        )
        grand_total += summary.total_pay
    summary_ws.append(["Total", None, None, None, grand_total])
    summary_ws.cell(row=summary_ws.max_row, column=1).font = Font(bold=True)
    for cells in summary_ws.iter_rows(min_row=2, min_col=4, max_col=5):
        for cell in cells:
            cell.number_format = MONEY_FORMAT

    for sheet in (ws, summary_ws):
        for column in sheet.columns:
            width = max(len(str(c.value)) if c.value is not None else 0 for c in column)
            sheet.column_dimensions[column[0].column_letter].width = min(width + 2, 40)

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
