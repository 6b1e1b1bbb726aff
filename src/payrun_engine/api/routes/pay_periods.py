"""Pay period API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from payrun_engine.api.dependencies import ActorId, SessionFactory
from payrun_engine.api.schemas import ErrorResponse, PayPeriodCreate, PayPeriodResponse
from payrun_engine.database import snapshot, transaction
from payrun_engine.errors import NotFoundError
from payrun_engine.services.period_service import PeriodService

router = APIRouter(prefix="/pay-periods", tags=["pay-periods"])


@router.get("", response_model=list[PayPeriodResponse])
async def list_pay_periods(factory: SessionFactory) -> list[PayPeriodResponse]:
    """List pay periods, newest first."""
    async with snapshot(factory) as session:
        periods = await PeriodService(session).list_periods()
        return [PayPeriodResponse.model_validate(p) for p in periods]


@router.post(
    "",
    response_model=PayPeriodResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def create_pay_period(
    factory: SessionFactory,
    actor_id: ActorId,
    payload: PayPeriodCreate,
) -> PayPeriodResponse:
    """Create a pay period, optionally making it current."""
    async with transaction(factory) as session:
        period = await PeriodService(session).create_period(
            payload.start_date,
            payload.end_date,
            make_current=payload.make_current,
            actor_id=actor_id,
        )
        return PayPeriodResponse.model_validate(period)


@router.post(
    "/{pay_period_id}/set-current",
    response_model=PayPeriodResponse,
    responses={404: {"model": ErrorResponse}},
)
async def set_current_pay_period(
    factory: SessionFactory,
    actor_id: ActorId,
    pay_period_id: Annotated[UUID, Path()],
) -> PayPeriodResponse:
    """Make a period current and ensure it has a Draft run."""
    async with transaction(factory) as session:
        period = await PeriodService(session).set_current(pay_period_id, actor_id)
        if period is None:
            raise NotFoundError(
                f"Pay period {pay_period_id} not found",
                {"pay_period_id": str(pay_period_id)},
            )
        return PayPeriodResponse.model_validate(period)
