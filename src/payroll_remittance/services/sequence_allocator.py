"""Durable remittance sequence numbers per originating company."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_remittance.config import Settings, get_settings
from payroll_remittance.database import insert_for
from payroll_remittance.models import RemittanceAllocation, RemittanceCounter
from payroll_remittance.remittance.types import PaymentFilter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SequenceKey:
    """Originator and remittance file a sequence is allocated for.

    The counter is per originator, the company code written into the file
    header. Period and filters only identify which file an allocation
    belongs to.
    """

    originator: str
    month: int
    year: int
    company: str | None = None
    cost_center: str | None = None

    @property
    def company_filter(self) -> str:
        return self.company or ""

    @property
    def cost_center_filter(self) -> str:
        return self.cost_center or ""

    @classmethod
    def for_file(cls, originator: str, payment_filter: PaymentFilter) -> SequenceKey:
        return cls(
            originator=originator,
            month=payment_filter.month,
            year=payment_filter.year,
            company=payment_filter.company,
            cost_center=payment_filter.cost_center,
        )


@dataclass(frozen=True)
class SequenceAllocation:
    originator: str
    month: int
    year: int
    company: str | None
    cost_center: str | None
    finalize_session: int
    sequence: int
    generated_on: date
    allocated_by: str | None
    allocated_at: datetime | None


class RemittanceSequenceAllocator:
    """Hands out remittance sequence numbers that never repeat or go back.

    The counter row is incremented with a single ``UPDATE ... RETURNING``,
    so concurrent allocations for one originator serialize on that row and
    each gets a distinct number. Allocation is not retried here: after an
    ambiguous failure the caller must reconcile against ``history`` rather
    than allocate again. The allocator flushes but never commits.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    async def allocate(
        self,
        key: SequenceKey,
        finalize_session: int,
        generated_on: date,
        allocated_by: str | None = None,
    ) -> SequenceAllocation:
        """Consume the next sequence number for the key's originator."""
        await self.session.execute(
            insert_for(self.session, RemittanceCounter)
            .values(originator=key.originator, last_sequence=self.settings.sequence_start - 1)
            .on_conflict_do_nothing(index_elements=["originator"])
        )
        result = await self.session.execute(
            update(RemittanceCounter)
            .where(RemittanceCounter.originator == key.originator)
            .values(last_sequence=RemittanceCounter.last_sequence + 1, updated_at=func.now())
            .returning(RemittanceCounter.last_sequence)
            .execution_options(synchronize_session=False)
        )
        sequence = result.scalar_one()

        allocation = RemittanceAllocation(
            originator=key.originator,
            month=key.month,
            year=key.year,
            company_filter=key.company_filter,
            cost_center_filter=key.cost_center_filter,
            finalize_session=finalize_session,
            sequence=sequence,
            generated_on=generated_on,
            allocated_by=allocated_by,
            allocated_at=datetime.now(timezone.utc),
        )
        self.session.add(allocation)
        await self.session.flush()

        logger.info(
            "Allocated remittance sequence %d for originator %r, period %02d/%d "
            "(company %r, cost center %r, session %d)",
            sequence,
            key.originator,
            key.month,
            key.year,
            key.company_filter,
            key.cost_center_filter,
            finalize_session,
        )
        return self._to_allocation(allocation)

    async def claim(
        self,
        key: SequenceKey,
        finalize_session: int,
        generated_on: date,
        allocated_by: str | None = None,
    ) -> SequenceAllocation:
        """Authoritative allocation for one file of a finalization session.

        Returns the lowest sequence already allocated for the same period,
        session and filters, or allocates one. Re-downloading a file thus
        reuses its sequence and generation date, while a file with other
        filters always gets its own number.
        """
        existing = await self._authoritative(key, finalize_session)
        if existing is not None:
            return existing
        await self.allocate(key, finalize_session, generated_on, allocated_by)
        authoritative = await self._authoritative(key, finalize_session)
        if authoritative is None:
            raise RuntimeError("Remittance allocation vanished after flush")
        return authoritative

    async def history(self, originator: str) -> list[SequenceAllocation]:
        """Allocations for an originator, newest first."""
        result = await self.session.execute(
            select(RemittanceAllocation)
            .where(RemittanceAllocation.originator == originator)
            .order_by(RemittanceAllocation.sequence.desc())
        )
        return [self._to_allocation(row) for row in result.scalars().all()]

    async def _authoritative(self, key: SequenceKey, finalize_session: int) -> SequenceAllocation | None:
        result = await self.session.execute(
            select(RemittanceAllocation)
            .where(
                RemittanceAllocation.originator == key.originator,
                RemittanceAllocation.month == key.month,
                RemittanceAllocation.year == key.year,
                RemittanceAllocation.finalize_session == finalize_session,
                RemittanceAllocation.company_filter == key.company_filter,
                RemittanceAllocation.cost_center_filter == key.cost_center_filter,
            )
            .order_by(RemittanceAllocation.sequence)
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return self._to_allocation(row) if row is not None else None

    @staticmethod
    def _to_allocation(row: RemittanceAllocation) -> SequenceAllocation:
        return SequenceAllocation(
            originator=row.originator,
            month=row.month,
            year=row.year,
            company=row.company_filter or None,
            cost_center=row.cost_center_filter or None,
            finalize_session=row.finalize_session,
            sequence=row.sequence,
            generated_on=row.generated_on,
            allocated_by=row.allocated_by,
            allocated_at=row.allocated_at,
        )
