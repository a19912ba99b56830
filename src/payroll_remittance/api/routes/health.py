"""Service health: database reachability and the remittance counter."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from payroll_remittance.api.dependencies import AppSettings, DbSession
from payroll_remittance.models import RemittanceCounter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Database state and the originator's last remittance sequence."""

    status: str
    timestamp: datetime
    database: str
    originator: str
    last_sequence: int | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession, settings: AppSettings) -> HealthResponse:
    """Report whether the ledger tables answer and where the counter stands.

    A fresh installation has no counter row yet; ``last_sequence`` is then
    null and the service is still healthy.
    """
    database = "healthy"
    last_sequence = None
    try:
        result = await db.execute(
            select(RemittanceCounter.last_sequence).where(
                RemittanceCounter.originator == settings.company_code
            )
        )
        last_sequence = result.scalar_one_or_none()
    except (SQLAlchemyError, OSError):
        logger.warning("Remittance ledger unreachable", exc_info=True)
        database = "unhealthy"

    return HealthResponse(
        status="healthy" if database == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=database,
        originator=settings.company_code,
        last_sequence=last_sequence,
    )


@router.get("/ready")
async def readiness_check(db: DbSession, response: Response) -> dict[str, str]:
    """Ready once the schema is in place; 503 until then."""
    try:
        await db.execute(select(RemittanceCounter.originator).limit(1))
    except (SQLAlchemyError, OSError):
        logger.warning("Readiness check failed", exc_info=True)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "unavailable"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
