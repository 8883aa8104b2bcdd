"""ORM models."""

from rota_payroll.models.base import Base, TimestampMixin
from rota_payroll.models.employee import (
    SEPARATION_STATUS,
    Employee,
    EmployeePaySettings,
    EmployeeRateOverride,
    PayAgeBand,
    PayBandRate,
)
from rota_payroll.models.payroll import (
    AuditEvent,
    PayrollEmailLog,
    PayrollMonthApproval,
    PayrollPeriod,
)
from rota_payroll.models.rota import ReconciliationNote, RotaShift, TimeclockSession

__all__ = [
    "Base",
    "TimestampMixin",
    "SEPARATION_STATUS",
    "Employee",
    "EmployeePaySettings",
    "EmployeeRateOverride",
    "PayAgeBand",
    "PayBandRate",
    "AuditEvent",
    "PayrollEmailLog",
    "PayrollMonthApproval",
    "PayrollPeriod",
    "ReconciliationNote",
    "RotaShift",
    "TimeclockSession",
]
