"""Remittance service - orchestrates aggregation, allocation and encoding."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any

from payroll_remittance.config import Settings, get_settings
from payroll_remittance.errors import EmptyRemittanceError, MissingBankDataError
from payroll_remittance.money import Money
from payroll_remittance.remittance.cnab400 import Cnab400ItauEncoder, RemittanceEncoder
from payroll_remittance.remittance.manifest import BorderManifest, BorderManifestBuilder
from payroll_remittance.remittance.pdf import ManifestRenderer, ReportLabManifestRenderer
from payroll_remittance.remittance.types import CompanyProfile, PaymentFilter, PaymentRecord
from payroll_remittance.services.aggregator import PaymentRecordAggregator
from payroll_remittance.services.payroll_source import PayrollDataSource, SqlPayrollDataSource
from payroll_remittance.services.sequence_allocator import (
    RemittanceSequenceAllocator,
    SequenceAllocation,
    SequenceKey,
)
from payroll_remittance.services.state_machine import Actor, PayrollStateMachine

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedRemittance:
    """A rendered remittance file and the allocation it consumed."""

    filename: str
    content: bytes
    media_type: str
    sequence: int
    record_count: int
    total: Money
    allocation: SequenceAllocation


@dataclass(frozen=True)
class BankReadiness:
    """Whether a period's payments can go into a remittance file."""

    payment_filter: PaymentFilter
    record_count: int
    total: Money
    missing: list[dict[str, Any]] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return self.record_count > 0 and not self.missing


@dataclass(frozen=True)
class RenderedManifest:
    filename: str
    content: bytes
    media_type: str
    manifest: BorderManifest


def company_profile(settings: Settings) -> CompanyProfile:
    return CompanyProfile(
        bank_code=settings.bank_code,
        bank_name=settings.bank_name,
        company_code=settings.company_code,
        company_name=settings.company_name,
        company_document=settings.company_document,
    )


class RemittanceService:
    """Service for the border (payment manifest) and remittance surface.

    Operations:
    - payment_data: aggregated PaymentRecords of a finalized period
    - bank_readiness: which employees still lack banking data
    - generate_cnab400: validate, allocate a sequence and encode the file
    - build_manifest / render_manifest_pdf: payment manifest and its PDF

    Database work flushes; the caller commits. Rendering happens after all
    queries are done, so nothing is held while the PDF is drawn.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        data_source: PayrollDataSource | None = None,
        encoder: RemittanceEncoder | None = None,
        renderer: ManifestRenderer | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.data_source = data_source or SqlPayrollDataSource(session)
        self.state_machine = PayrollStateMachine(session, self.settings, self.data_source)
        self.aggregator = PaymentRecordAggregator(self.data_source, self.state_machine)
        self.allocator = RemittanceSequenceAllocator(session, self.settings)
        self.encoder = encoder or Cnab400ItauEncoder(company_profile(self.settings))
        self.renderer = renderer or ReportLabManifestRenderer(self.settings.company_name)
        self.manifest_builder = BorderManifestBuilder()

    async def payment_data(self, payment_filter: PaymentFilter) -> list[PaymentRecord]:
        return await self.aggregator.aggregate(payment_filter)

    async def bank_readiness(self, payment_filter: PaymentFilter) -> BankReadiness:
        records = await self.aggregator.aggregate(payment_filter)
        return BankReadiness(
            payment_filter=payment_filter,
            record_count=len(records),
            total=Money.sum(r.amount for r in records),
            missing=_missing_bank_data(records),
        )

    async def generate_cnab400(
        self,
        payment_filter: PaymentFilter,
        actor: Actor,
        today: date | None = None,
    ) -> GeneratedRemittance:
        """Generate the remittance file for a finalized period.

        Every record is validated before a sequence number is claimed, so
        a rejected request leaves the counter untouched. Within one
        finalization session the same filters reuse the same sequence and
        generation date, which makes repeated downloads byte-identical;
        a file for other filters gets a sequence of its own.

        Raises:
            ValidationError: bad period/filter, missing bank data, overflow
            PeriodNotFinalizedError: period is OPEN
            EmptyRemittanceError: no payments match the filter
        """
        records = await self.aggregator.aggregate(payment_filter)
        context = {
            "month": payment_filter.month,
            "year": payment_filter.year,
            "company": payment_filter.company,
            "cost_center": payment_filter.cost_center,
        }
        if not records:
            logger.warning("Rejected CNAB400 for %s: no payments", payment_filter.period_label)
            raise EmptyRemittanceError(context)

        missing = _missing_bank_data(records)
        if missing:
            logger.warning(
                "Rejected CNAB400 for %s: %d employee(s) missing bank data",
                payment_filter.period_label,
                len(missing),
            )
            raise MissingBankDataError(missing)

        self.encoder.validate(records)

        status = await self.state_machine.get_status(payment_filter.month, payment_filter.year)
        allocation = await self.allocator.claim(
            SequenceKey.for_file(self.encoder.profile.company_code, payment_filter),
            finalize_session=status.finalize_count,
            generated_on=today or datetime.now(timezone.utc).date(),
            allocated_by=actor.actor_id,
        )

        remittance = self.encoder.build(records, allocation.sequence, allocation.generated_on)
        content = self.encoder.render(remittance)

        logger.info(
            "Generated %s for %s: sequence %d, %d records, total %s",
            self.encoder.layout_name,
            payment_filter.period_label,
            allocation.sequence,
            remittance.record_count,
            remittance.total_amount,
        )
        return GeneratedRemittance(
            filename=(
                f"{self.encoder.layout_name}-{payment_filter.month:02d}-"
                f"{payment_filter.year}.{self.encoder.file_extension}"
            ),
            content=content,
            media_type=self.encoder.media_type,
            sequence=allocation.sequence,
            record_count=remittance.record_count,
            total=remittance.total_amount,
            allocation=allocation,
        )

    async def build_manifest(self, payment_filter: PaymentFilter) -> BorderManifest:
        records = await self.aggregator.aggregate(payment_filter)
        return self.manifest_builder.build(
            records,
            payment_filter,
            issued_at=datetime.now(timezone.utc),
        )

    async def render_manifest_pdf(self, payment_filter: PaymentFilter) -> RenderedManifest:
        return self.render_manifest(await self.build_manifest(payment_filter))

    def render_manifest(self, manifest: BorderManifest) -> RenderedManifest:
        """Draw the PDF; touches no database state."""
        content = self.renderer.render(manifest)
        logger.info(
            "Rendered payment manifest for %s: %d entries, total %s",
            manifest.period_label,
            manifest.record_count,
            manifest.total,
        )
        return RenderedManifest(
            filename=(
                f"bordero-pagamento-{manifest.month:02d}-{manifest.year}."
                f"{self.renderer.file_extension}"
            ),
            content=content,
            media_type=self.renderer.media_type,
            manifest=manifest,
        )


def _missing_bank_data(records: list[PaymentRecord]) -> list[dict[str, Any]]:
    return [
        {
            "employee_id": str(record.employee_id),
            "name": record.name,
            "missing": record.bank.missing_fields(),
        }
        for record in records
        if not record.bank.is_complete
    ]
