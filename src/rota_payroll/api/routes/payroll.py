"""Payroll month API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from rota_payroll.api.dependencies import AppSettings, CurrentActor, DbSession, Sender
from rota_payroll.api.schemas import (
    ApprovalResponse,
    EmailDispatchResponse,
    EmployeeSummaryResponse,
    ErrorResponse,
    MonthDataResponse,
    PayrollRowResponse,
    PeriodResponse,
    PeriodUpdate,
    RowDelete,
    RowTimesUpdate,
    ShiftNoteResponse,
    ShiftNoteUpdate,
    StatusResponse,
)
from rota_payroll.exceptions import EmailDeliveryError
from rota_payroll.models import PayrollMonthApproval
from rota_payroll.services.approval_service import ApprovalService
from rota_payroll.services.email_service import PayrollEmailService
from rota_payroll.services.payroll_service import PayrollService
from rota_payroll.services.period_service import PeriodService

router = APIRouter(prefix="/payroll", tags=["payroll"])

Year = Annotated[int, Path(ge=2000, le=2100)]
Month = Annotated[int, Path(ge=1, le=12)]

ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def _approval_response(approval: PayrollMonthApproval) -> ApprovalResponse:
    snapshot = approval.snapshot or {}
    return ApprovalResponse(
        id=approval.id,
        year=approval.year,
        month=approval.month,
        approved_at=approval.approved_at,
        approved_by=approval.approved_by,
        snapshot_hash=approval.snapshot_hash,
        email_sent_at=approval.email_sent_at,
        email_sent_by=approval.email_sent_by,
        version=approval.version,
        rows=[PayrollRowResponse(**r) for r in snapshot.get("rows", [])],
        employee_summaries=[
            EmployeeSummaryResponse(**e) for e in snapshot.get("employees", [])
        ],
    )


# ============================================================================
# Month data
# ============================================================================


@router.get(
    "/{year}/{month}",
    response_model=MonthDataResponse,
    responses=ERRORS,
)
async def get_month_data(
    db: DbSession,
    actor: CurrentActor,
    settings: AppSettings,
    year: Year,
    month: Month,
) -> MonthDataResponse:
    """Reconcile rota shifts against clock sessions for the month."""
    data = await PayrollService(db, settings).get_month_data(actor, year, month)
    await db.commit()
    return MonthDataResponse(
        period=PeriodResponse.model_validate(data.period),
        rows=[PayrollRowResponse(**r.to_dict()) for r in data.result.rows],
        employee_summaries=[
            EmployeeSummaryResponse(**s.to_dict()) for s in data.result.summaries
        ],
        fingerprint=data.result.fingerprint,
    )


# ============================================================================
# Period
# ============================================================================


@router.get("/{year}/{month}/period", response_model=PeriodResponse, responses=ERRORS)
async def get_period(
    db: DbSession, actor: CurrentActor, year: Year, month: Month
) -> PeriodResponse:
    actor.require("payroll", "view")
    period = await PeriodService(db).get_or_create_period(year, month)
    await db.commit()
    return PeriodResponse.model_validate(period)


@router.put("/{year}/{month}/period", response_model=PeriodResponse, responses=ERRORS)
async def update_period(
    db: DbSession,
    actor: CurrentActor,
    year: Year,
    month: Month,
    payload: PeriodUpdate,
) -> PeriodResponse:
    """Change the period's dates. Drops any approval for the month."""
    period = await PeriodService(db).update_period(
        actor, year, month, payload.period_start, payload.period_end
    )
    await db.commit()
    return PeriodResponse.model_validate(period)


# ============================================================================
# Approval and email
# ============================================================================


@router.post("/{year}/{month}/approve", response_model=ApprovalResponse, responses=ERRORS)
async def approve_month(
    db: DbSession,
    actor: CurrentActor,
    settings: AppSettings,
    year: Year,
    month: Month,
) -> ApprovalResponse:
    """Recompute the month and store it as the approved snapshot."""
    approval = await PayrollService(db, settings).approve_month(actor, year, month)
    await db.commit()
    return _approval_response(approval)


@router.get("/{year}/{month}/approval", response_model=ApprovalResponse, responses=ERRORS)
async def get_approval(
    db: DbSession, actor: CurrentActor, year: Year, month: Month
) -> ApprovalResponse:
    actor.require("payroll", "view")
    approval = await ApprovalService(db).require_approval(year, month)
    return _approval_response(approval)


@router.post(
    "/{year}/{month}/email",
    response_model=EmailDispatchResponse,
    responses={**ERRORS, 502: {"model": ErrorResponse}},
)
async def send_payroll_email(
    db: DbSession,
    actor: CurrentActor,
    settings: AppSettings,
    sender: Sender,
    year: Year,
    month: Month,
) -> EmailDispatchResponse:
    """Email the approved snapshot to the accountant."""
    result = await PayrollEmailService(db, sender, settings).send_payroll_email(
        actor, year, month
    )
    # Commit first so a failed attempt stays in the email log
    await db.commit()
    if not result.sent:
        raise EmailDeliveryError(result.error or "Email delivery failed")
    return EmailDispatchResponse.model_validate(result)


# ============================================================================
# Row corrections
# ============================================================================


@router.put("/{year}/{month}/rows/times", response_model=StatusResponse, responses=ERRORS)
async def update_row_times(
    db: DbSession,
    actor: CurrentActor,
    settings: AppSettings,
    year: Year,
    month: Month,
    payload: RowTimesUpdate,
) -> StatusResponse:
    await PayrollService(db, settings).update_payroll_row_times(
        actor,
        year,
        month,
        session_id=payload.session_id,
        employee_id=payload.employee_id,
        work_date=payload.work_date,
        clock_in=payload.clock_in,
        clock_out=payload.clock_out,
    )
    await db.commit()
    return StatusResponse(status="updated")


@router.post("/{year}/{month}/rows/delete", response_model=StatusResponse, responses=ERRORS)
async def delete_row(
    db: DbSession,
    actor: CurrentActor,
    settings: AppSettings,
    year: Year,
    month: Month,
    payload: RowDelete,
) -> StatusResponse:
    await PayrollService(db, settings).delete_payroll_row(
        actor, year, month, payload.session_id, payload.shift_id
    )
    await db.commit()
    return StatusResponse(status="deleted")


@router.put("/shifts/{shift_id}/note", response_model=ShiftNoteResponse, responses=ERRORS)
async def upsert_shift_note(
    db: DbSession,
    actor: CurrentActor,
    settings: AppSettings,
    shift_id: UUID,
    payload: ShiftNoteUpdate,
) -> ShiftNoteResponse:
    """Replace the shift's internal note; an empty note removes it."""
    saved = await PayrollService(db, settings).upsert_shift_note(actor, shift_id, payload.note)
    await db.commit()
    return ShiftNoteResponse(shift_id=shift_id, note=saved.note if saved else None)
