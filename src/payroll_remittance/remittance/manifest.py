"""Payment manifest (borderô) builder.

Builds the structure handed to the PDF renderer. Banking data is displayed
when present but never required: the manifest is how HR and Finance review a
period before a remittance file is attempted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence
from uuid import UUID

from payroll_remittance.errors import EmptyManifestError
from payroll_remittance.money import Money
from payroll_remittance.remittance.types import PaymentFilter, PaymentRecord


@dataclass(frozen=True)
class ManifestEntry:
    """One row of the manifest, with display strings precomputed."""

    employee_id: UUID
    name: str
    document: str
    amount: Money
    amount_display: str
    bank: str
    agency: str
    account: str
    account_type: str
    cost_center: str | None
    bank_data_complete: bool


@dataclass(frozen=True)
class BorderManifest:
    """Aggregate consumed by a ``ManifestRenderer``."""

    period_label: str
    month: int
    year: int
    company: str | None
    cost_center: str | None
    entries: tuple[ManifestEntry, ...]
    total: Money
    total_display: str
    issued_at: datetime | None = None

    @property
    def record_count(self) -> int:
        return len(self.entries)

    @property
    def missing_bank_data_count(self) -> int:
        return sum(1 for entry in self.entries if not entry.bank_data_complete)


class BorderManifestBuilder:
    """Pure transformation from PaymentRecords to a BorderManifest."""

    def build(
        self,
        records: Sequence[PaymentRecord],
        payment_filter: PaymentFilter,
        issued_at: datetime | None = None,
    ) -> BorderManifest:
        if len(records) < 1:
            raise EmptyManifestError(
                {
                    "month": payment_filter.month,
                    "year": payment_filter.year,
                    "company": payment_filter.company,
                    "cost_center": payment_filter.cost_center,
                }
            )

        entries = tuple(self._entry(record) for record in records)
        total = Money.sum(record.amount for record in records)

        return BorderManifest(
            period_label=payment_filter.period_label,
            month=payment_filter.month,
            year=payment_filter.year,
            company=payment_filter.company,
            cost_center=payment_filter.cost_center,
            entries=entries,
            total=total,
            total_display=total.format_brl(),
            issued_at=issued_at,
        )

    def _entry(self, record: PaymentRecord) -> ManifestEntry:
        bank = record.bank
        return ManifestEntry(
            employee_id=record.employee_id,
            name=record.name,
            document=record.document,
            amount=record.amount,
            amount_display=record.amount.format_brl(),
            bank=bank.bank_name or bank.code or "-",
            agency=bank.display_agency(),
            account=bank.display_account(),
            account_type=bank.account_type.value,
            cost_center=record.cost_center,
            bank_data_complete=bank.is_complete,
        )
