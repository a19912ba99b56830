"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_remittance.config import Settings, get_settings
from payroll_remittance.database import init_db
from payroll_remittance.remittance.types import PaymentFilter
from payroll_remittance.services.remittance_service import RemittanceService
from payroll_remittance.services.state_machine import Actor, PayrollStateMachine


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_app_settings() -> Settings:
    return get_settings()


async def get_actor(
    x_actor_id: Annotated[str | None, Header()] = None,
    x_actor_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """Extract the acting user from headers set by the identity gateway."""
    if not x_actor_id or not x_actor_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Actor-Id header is required",
        )
    return Actor(actor_id=x_actor_id.strip(), role=x_actor_role)


def _blank_to_none(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip()


async def get_payment_filter(
    month: Annotated[int, Query()],
    year: Annotated[int, Query()],
    company: Annotated[str | None, Query()] = None,
    cost_center: Annotated[str | None, Query(alias="costCenter")] = None,
) -> PaymentFilter:
    """Closed filter from query parameters; blank values mean no filter."""
    return PaymentFilter(
        month=month,
        year=year,
        company=_blank_to_none(company),
        cost_center=_blank_to_none(cost_center),
    )


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
CurrentActor = Annotated[Actor, Depends(get_actor)]
PaymentQuery = Annotated[PaymentFilter, Depends(get_payment_filter)]


def get_state_machine(db: DbSession, settings: AppSettings) -> PayrollStateMachine:
    return PayrollStateMachine(db, settings)


def get_remittance_service(db: DbSession, settings: AppSettings) -> RemittanceService:
    return RemittanceService(db, settings)


StateMachine = Annotated[PayrollStateMachine, Depends(get_state_machine)]
Remittance = Annotated[RemittanceService, Depends(get_remittance_service)]
