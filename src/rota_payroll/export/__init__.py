"""Spreadsheet and email rendering of approved payroll."""

from rota_payroll.export.email_templates import earnings_alert_html, payroll_email_html
from rota_payroll.export.workbook import build_payroll_workbook, workbook_filename

__all__ = [
    "build_payroll_workbook",
    "workbook_filename",
    "earnings_alert_html",
    "payroll_email_html",
]
