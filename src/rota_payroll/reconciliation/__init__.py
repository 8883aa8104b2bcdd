"""Payroll reconciliation: shift/session matching, rates, flags."""

from rota_payroll.reconciliation.engine import (
    ReconciliationEngine,
    compute_reconciliation,
    summarize,
)
from rota_payroll.reconciliation.rate_resolver import RateResolver, age_on, resolve_rate
from rota_payroll.reconciliation.types import (
    AgeBandRecord,
    BandRateRecord,
    EmployeeRecord,
    EmployeeSummary,
    PayrollRow,
    PayType,
    RateOverrideRecord,
    RateSource,
    ReconciliationInputs,
    ReconciliationResult,
    ResolvedRate,
    RowFlag,
    SessionOrphan,
    SessionRecord,
    ShiftMatched,
    ShiftRecord,
    ShiftUnmatched,
)

__all__ = [
    "ReconciliationEngine",
    "compute_reconciliation",
    "summarize",
    "RateResolver",
    "age_on",
    "resolve_rate",
    "AgeBandRecord",
    "BandRateRecord",
    "EmployeeRecord",
    "EmployeeSummary",
    "PayrollRow",
    "PayType",
    "RateOverrideRecord",
    "RateSource",
    "ReconciliationInputs",
    "ReconciliationResult",
    "ResolvedRate",
    "RowFlag",
    "SessionOrphan",
    "SessionRecord",
    "ShiftMatched",
    "ShiftRecord",
    "ShiftUnmatched",
]
