"""Timeclock kiosk endpoints."""

from fastapi import APIRouter, status

from rota_payroll.api.dependencies import AppSettings, DbSession
from rota_payroll.api.schemas import ClockRequest, ErrorResponse, TimeclockSessionResponse
from rota_payroll.services.timeclock_service import TimeclockService

router = APIRouter(prefix="/timeclock", tags=["timeclock"])


@router.post(
    "/clock-in",
    response_model=TimeclockSessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def clock_in(
    db: DbSession, settings: AppSettings, payload: ClockRequest
) -> TimeclockSessionResponse:
    """Open a session for the employee."""
    ts = await TimeclockService(db, settings).clock_in(payload.employee_id)
    await db.commit()
    return TimeclockSessionResponse.model_validate(ts)


@router.post(
    "/clock-out",
    response_model=TimeclockSessionResponse,
    responses={400: {"model": ErrorResponse}},
)
async def clock_out(
    db: DbSession, settings: AppSettings, payload: ClockRequest
) -> TimeclockSessionResponse:
    """Close the employee's open session."""
    ts = await TimeclockService(db, settings).clock_out(payload.employee_id)
    await db.commit()
    return TimeclockSessionResponse.model_validate(ts)
