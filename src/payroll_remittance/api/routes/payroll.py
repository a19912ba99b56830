"""Payroll period status and transition endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query, status

from payroll_remittance.api.dependencies import CurrentActor, DbSession, StateMachine
from payroll_remittance.api.schemas import (
    ErrorResponse,
    FinalizeResponse,
    PeriodRequest,
    PeriodStatusResponse,
    ReopenRequest,
    ReopenResponse,
)

router = APIRouter(prefix="/payroll", tags=["payroll"])

_TRANSITION_ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get(
    "/status",
    response_model=PeriodStatusResponse,
    responses={400: {"model": ErrorResponse}},
)
async def get_period_status(
    machine: StateMachine,
    month: Annotated[int, Query()],
    year: Annotated[int, Query()],
) -> PeriodStatusResponse:
    """Current status of a payroll period; untouched periods are OPEN."""
    period = await machine.get_status(month, year)
    return PeriodStatusResponse.from_status(period)


@router.post(
    "/finalize",
    response_model=FinalizeResponse,
    status_code=status.HTTP_200_OK,
    responses=_TRANSITION_ERRORS,
)
async def finalize_period(
    db: DbSession,
    machine: StateMachine,
    actor: CurrentActor,
    payload: PeriodRequest,
) -> FinalizeResponse:
    """Lock a payroll period against further edits."""
    period = await machine.finalize(payload.month, payload.year, actor)
    await db.commit()

    return FinalizeResponse(
        month=period.month,
        year=period.year,
        status=period.status.value,
        finalized_at=period.finalized_at,
        finalized_by=period.finalized_by,
    )


@router.post(
    "/reopen",
    response_model=ReopenResponse,
    status_code=status.HTTP_200_OK,
    responses=_TRANSITION_ERRORS,
)
async def reopen_period(
    db: DbSession,
    machine: StateMachine,
    actor: CurrentActor,
    payload: ReopenRequest,
) -> ReopenResponse:
    """Return a finalized period to OPEN, recording who and why."""
    period = await machine.reopen(payload.month, payload.year, actor, payload.reason)
    await db.commit()

    latest = period.reopen_history[-1]
    return ReopenResponse(
        month=period.month,
        year=period.year,
        status=period.status.value,
        reopened_at=latest.reopened_at,
        reopened_by=latest.reopened_by,
    )
