"""Service layer for payroll operations."""

from rota_payroll.services.approval_service import ApprovalService
from rota_payroll.services.email_service import EmailDispatchResult, PayrollEmailService
from rota_payroll.services.loader import PayrollDataLoader
from rota_payroll.services.payroll_service import MonthData, PayrollService
from rota_payroll.services.period_service import PeriodService, default_period
from rota_payroll.services.permissions import Actor, GrantedPermissions, PermissionChecker
from rota_payroll.services.timeclock_service import TimeclockService, parse_hhmm

__all__ = [
    "ApprovalService",
    "EmailDispatchResult",
    "PayrollEmailService",
    "PayrollDataLoader",
    "MonthData",
    "PayrollService",
    "PeriodService",
    "default_period",
    "Actor",
    "GrantedPermissions",
    "PermissionChecker",
    "TimeclockService",
    "parse_hhmm",
]
