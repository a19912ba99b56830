"""Payment record aggregation for finalized payroll periods."""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from payroll_remittance.errors import (
    NoMatchingRecordsError,
    PeriodNotFinalizedError,
    UpstreamError,
    ValidationError,
)
from payroll_remittance.money import Money
from payroll_remittance.remittance.types import AccountType, BankAccount, PaymentFilter, PaymentRecord

if TYPE_CHECKING:
    from payroll_remittance.services.payroll_source import PayrollDataSource, PayrollFeedEntry
    from payroll_remittance.services.state_machine import PayrollStateMachine

logger = logging.getLogger(__name__)


class PaymentRecordAggregator:
    """Collects per-employee payments for a FINALIZED period.

    Checks, in order:
    1. month/year range (no I/O)
    2. period is FINALIZED, whatever the filter values
    3. company / cost center exist in the payroll system

    Entries of the same employee are summed; employees whose total is not
    positive are left out. Records come back ordered by name, ties broken
    by employee id, so the same inputs always yield the same sequence.
    """

    def __init__(self, data_source: PayrollDataSource, state_machine: PayrollStateMachine):
        self.data_source = data_source
        self.state_machine = state_machine

    async def aggregate(
        self,
        payment_filter: PaymentFilter,
        require_records: bool = False,
    ) -> list[PaymentRecord]:
        """Payment records matching the filter.

        An empty list is a valid result; ``require_records`` turns it into
        NoMatchingRecordsError.
        """
        self.state_machine.validate_period(payment_filter.month, payment_filter.year)

        try:
            status = await self.state_machine.get_status(payment_filter.month, payment_filter.year)
            if not status.is_finalized:
                raise PeriodNotFinalizedError(payment_filter.month, payment_filter.year)

            await self._validate_filter(payment_filter)
            entries = await self.data_source.fetch_entries(payment_filter)
        except (SQLAlchemyError, OSError) as exc:
            logger.warning(
                "Payroll data unavailable for %s: %s",
                payment_filter.period_label,
                exc,
            )
            raise UpstreamError(
                "Payroll data source is unavailable",
                {"month": payment_filter.month, "year": payment_filter.year},
            ) from exc

        records = self._combine(entries, payment_filter)
        if require_records and not records:
            raise NoMatchingRecordsError(
                payment_filter.month,
                payment_filter.year,
                {"company": payment_filter.company, "cost_center": payment_filter.cost_center},
            )
        return records

    async def _validate_filter(self, payment_filter: PaymentFilter) -> None:
        if payment_filter.company is not None:
            if payment_filter.company not in await self.data_source.list_companies():
                raise ValidationError(
                    f"Unknown company '{payment_filter.company}'",
                    field="company",
                )
        if payment_filter.cost_center is not None:
            if payment_filter.cost_center not in await self.data_source.list_cost_centers():
                raise ValidationError(
                    f"Unknown cost center '{payment_filter.cost_center}'",
                    field="cost_center",
                )

    def _combine(
        self,
        entries: list[PayrollFeedEntry],
        payment_filter: PaymentFilter,
    ) -> list[PaymentRecord]:
        totals: dict[UUID, int] = {}
        first: dict[UUID, PayrollFeedEntry] = {}
        for entry in entries:
            totals[entry.employee_id] = totals.get(entry.employee_id, 0) + entry.amount_cents
            first.setdefault(entry.employee_id, entry)

        reference_date = date(payment_filter.year, payment_filter.month, 1)
        records = [
            self._record(first[employee_id], Money(cents), reference_date)
            for employee_id, cents in totals.items()
            if cents > 0
        ]
        records.sort(key=lambda r: (r.name.casefold(), str(r.employee_id)))
        return records

    @staticmethod
    def _record(entry: PayrollFeedEntry, amount: Money, reference_date: date) -> PaymentRecord:
        return PaymentRecord(
            employee_id=entry.employee_id,
            name=entry.name,
            document=entry.document,
            amount=amount,
            bank=BankAccount(
                code=entry.bank_code,
                agency=entry.agency,
                agency_check_digit=entry.agency_digit,
                account=entry.account,
                account_check_digit=entry.account_digit,
                account_type=AccountType(entry.account_type),
                bank_name=entry.bank_name,
            ),
            reference_date=reference_date,
            company=entry.company,
            cost_center=entry.cost_center,
        )
