"""Persistence gateway for payroll period rows and their reopen history."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_remittance.database import insert_for
from payroll_remittance.models import PayrollPeriod, PayrollPeriodReopen


class PayrollPeriodStore:
    """Reads and compare-and-set writes of ``payroll_period``.

    The store never commits; the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, month: int, year: int) -> PayrollPeriod | None:
        result = await self.session.execute(
            select(PayrollPeriod).where(
                PayrollPeriod.month == month,
                PayrollPeriod.year == year,
            )
        )
        return result.scalar_one_or_none()

    async def get_or_create(self, month: int, year: int) -> PayrollPeriod:
        """Return the period row, inserting an OPEN one if none exists.

        Concurrent creators race on the unique (month, year) key; the
        loser's insert is a no-op and both read the same row.
        """
        stmt = (
            insert_for(self.session, PayrollPeriod)
            .values(month=month, year=year, status="OPEN", finalize_count=0, version=0)
            .on_conflict_do_nothing(index_elements=["month", "year"])
        )
        await self.session.execute(stmt)
        period = await self.get(month, year)
        if period is None:
            raise RuntimeError(f"Payroll period {month:02d}/{year} vanished after insert")
        return period

    async def compare_and_set(
        self,
        period: PayrollPeriod,
        expected_status: str,
        new_status: str,
        **values: Any,
    ) -> bool:
        """Move ``period`` to ``new_status`` only if nobody else moved it first.

        Matches on both status and version; returns False when zero rows
        were updated. On success the in-session object is refreshed.
        """
        result = await self.session.execute(
            update(PayrollPeriod)
            .where(
                PayrollPeriod.payroll_period_id == period.payroll_period_id,
                PayrollPeriod.status == expected_status,
                PayrollPeriod.version == period.version,
            )
            .values(status=new_status, version=PayrollPeriod.version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        await self.session.refresh(period)
        return True

    async def append_reopen(self, period: PayrollPeriod, **values: Any) -> PayrollPeriodReopen:
        entry = PayrollPeriodReopen(payroll_period_id=period.payroll_period_id, **values)
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def history(self, payroll_period_id: UUID) -> list[PayrollPeriodReopen]:
        """Reopen entries, oldest first."""
        result = await self.session.execute(
            select(PayrollPeriodReopen)
            .where(PayrollPeriodReopen.payroll_period_id == payroll_period_id)
            .order_by(PayrollPeriodReopen.reopened_at, PayrollPeriodReopen.finalize_session)
        )
        return list(result.scalars().all())
