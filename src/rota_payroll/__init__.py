"""Payroll reconciliation of rota shifts against timeclock sessions."""

__version__ = "1.0.0"
