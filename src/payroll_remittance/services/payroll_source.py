"""Read-only feed of approved payroll entries and employee banking data.

Only approved entries (``approved_at`` set) of active employees are part of
the feed; pending entries and inactive employees are invisible to both the
finalize check and aggregation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_remittance.models import Company, CostCenter, Employee, PayrollEntry
from payroll_remittance.remittance.types import PaymentFilter


@dataclass(frozen=True)
class PayrollFeedEntry:
    """One approved payroll entry joined with its employee."""

    employee_id: UUID
    name: str
    document: str
    company: str | None
    cost_center: str | None
    amount_cents: int
    bank_code: str | None
    bank_name: str | None
    account_type: str
    agency: str | None
    agency_digit: str | None
    account: str | None
    account_digit: str | None


class PayrollDataSource(Protocol):
    """What the aggregator and state machine need from the payroll system."""

    async def list_companies(self) -> list[str]:
        ...

    async def list_cost_centers(self) -> list[str]:
        ...

    async def count_entries(self, month: int, year: int) -> int:
        ...

    async def fetch_entries(self, payment_filter: PaymentFilter) -> list[PayrollFeedEntry]:
        ...


class SqlPayrollDataSource:
    """PayrollDataSource over the ``employee`` and ``payroll_entry`` tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_companies(self) -> list[str]:
        result = await self.session.execute(select(Company.code).order_by(Company.code))
        return list(result.scalars().all())

    async def list_cost_centers(self) -> list[str]:
        result = await self.session.execute(select(CostCenter.code).order_by(CostCenter.code))
        return list(result.scalars().all())

    async def count_entries(self, month: int, year: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(PayrollEntry)
            .join(Employee, Employee.employee_id == PayrollEntry.employee_id)
            .where(
                PayrollEntry.month == month,
                PayrollEntry.year == year,
                *_approved_and_active(),
            )
        )
        return int(result.scalar_one())

    async def fetch_entries(self, payment_filter: PaymentFilter) -> list[PayrollFeedEntry]:
        stmt = (
            select(PayrollEntry.net_amount_cents, Employee)
            .join(Employee, Employee.employee_id == PayrollEntry.employee_id)
            .where(
                PayrollEntry.month == payment_filter.month,
                PayrollEntry.year == payment_filter.year,
                *_approved_and_active(),
            )
        )
        if payment_filter.company is not None:
            stmt = stmt.where(Employee.company_code == payment_filter.company)
        if payment_filter.cost_center is not None:
            stmt = stmt.where(Employee.cost_center_code == payment_filter.cost_center)

        result = await self.session.execute(stmt)
        return [
            PayrollFeedEntry(
                employee_id=employee.employee_id,
                name=employee.name,
                document=employee.document,
                company=employee.company_code,
                cost_center=employee.cost_center_code,
                amount_cents=amount_cents,
                bank_code=employee.bank_code,
                bank_name=employee.bank_name,
                account_type=employee.account_type,
                agency=employee.agency,
                agency_digit=employee.agency_digit,
                account=employee.account,
                account_digit=employee.account_digit,
            )
            for amount_cents, employee in result.all()
        ]


def _approved_and_active():
    return (
        PayrollEntry.approved_at.is_not(None),
        Employee.is_active.is_(True),
    )
