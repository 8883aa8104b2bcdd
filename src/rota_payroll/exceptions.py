"""Typed exceptions for rota payroll services.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer renders it with. The reconciliation core never raises these for
business conditions (missing rate, open session, cancelled shift); those
surface as null fields and row flags instead.

    RotaPayrollError
    +-- PermissionDeniedError
    +-- DataFetchError
    +-- ValidationError
    +-- NotFoundError
    +-- ApprovalNotFoundError
    +-- ApprovalConflictError
    +-- ConfigurationError
    +-- EmailDeliveryError
"""

from __future__ import annotations


class RotaPayrollError(Exception):
    """Base class for all service-level errors."""

    code: str = "ROTA_PAYROLL_ERROR"
    status_code: int = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class PermissionDeniedError(RotaPayrollError):
    """Caller lacks the capability required for an operation."""

    code = "PERMISSION_DENIED"
    status_code = 403

    def __init__(self, module: str, action: str):
        self.module = module
        self.action = action
        super().__init__("Permission denied")


class DataFetchError(RotaPayrollError):
    """An underlying batch read failed; no partial result is available."""

    code = "DATA_FETCH_FAILED"
    status_code = 503


class ValidationError(RotaPayrollError):
    """Caller-supplied input is malformed or inconsistent."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(RotaPayrollError):
    """A referenced record does not exist."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity_type: str, entity_id: object):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id} not found")


class ApprovalNotFoundError(RotaPayrollError):
    """The payroll month has no approved snapshot."""

    code = "NOT_APPROVED"
    status_code = 409

    def __init__(self, year: int, month: int):
        self.year = year
        self.month = month
        super().__init__("Month has not been approved yet")


class ApprovalConflictError(RotaPayrollError):
    """Another writer approved or invalidated the month concurrently."""

    code = "APPROVAL_CONFLICT"
    status_code = 409

    def __init__(self, year: int, month: int):
        self.year = year
        self.month = month
        super().__init__(
            f"Payroll approval for {year}-{month:02d} was changed concurrently; retry"
        )


class ConfigurationError(RotaPayrollError):
    """Required configuration is missing."""

    code = "NOT_CONFIGURED"
    status_code = 400


class EmailDeliveryError(RotaPayrollError):
    """The email collaborator reported a failed send."""

    code = "EMAIL_FAILED"
    status_code = 502
