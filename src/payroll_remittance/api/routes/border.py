"""Border (payment manifest) and remittance file endpoints."""

from fastapi import APIRouter
from fastapi.responses import Response

from payroll_remittance.api.dependencies import CurrentActor, DbSession, PaymentQuery, Remittance
from payroll_remittance.api.schemas import (
    BankReadinessResponse,
    ErrorResponse,
    PaymentRecordResponse,
)

router = APIRouter(prefix="/border", tags=["border"])

_READ_ERRORS = {
    400: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}
_GENERATE_ERRORS = {**_READ_ERRORS, 422: {"model": ErrorResponse}}


def _attachment(filename: str) -> dict[str, str]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.get(
    "/data",
    response_model=list[PaymentRecordResponse],
    responses=_READ_ERRORS,
)
async def get_border_data(
    service: Remittance,
    payment_filter: PaymentQuery,
) -> list[PaymentRecordResponse]:
    """Aggregated payments of a finalized period."""
    records = await service.payment_data(payment_filter)
    return [PaymentRecordResponse.from_record(record) for record in records]


@router.get(
    "/pdf",
    response_class=Response,
    responses={**_GENERATE_ERRORS, 200: {"content": {"application/pdf": {}}}},
)
async def get_border_pdf(
    db: DbSession,
    service: Remittance,
    payment_filter: PaymentQuery,
) -> Response:
    """Payment manifest as PDF."""
    manifest = await service.build_manifest(payment_filter)
    # End the read transaction before drawing
    await db.rollback()

    rendered = service.render_manifest(manifest)
    return Response(
        content=rendered.content,
        media_type=rendered.media_type,
        headers=_attachment(rendered.filename),
    )


@router.get(
    "/cnab400",
    response_class=Response,
    responses={**_GENERATE_ERRORS, 200: {"content": {"text/plain": {}}}},
)
async def get_cnab400(
    db: DbSession,
    service: Remittance,
    actor: CurrentActor,
    payment_filter: PaymentQuery,
) -> Response:
    """CNAB400 remittance file; the sequence it consumes is committed first."""
    generated = await service.generate_cnab400(payment_filter, actor)
    await db.commit()

    headers = _attachment(generated.filename)
    headers["X-Remittance-Sequence"] = str(generated.sequence)
    return Response(content=generated.content, media_type=generated.media_type, headers=headers)


@router.get(
    "/cnab400/data",
    response_model=BankReadinessResponse,
    responses=_READ_ERRORS,
)
async def get_cnab400_preview(
    service: Remittance,
    payment_filter: PaymentQuery,
) -> BankReadinessResponse:
    """Which payments are ready for a remittance file and which lack bank data."""
    readiness = await service.bank_readiness(payment_filter)
    return BankReadinessResponse.from_readiness(readiness)
