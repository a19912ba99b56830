"""Domain types shared by the aggregator, encoder and manifest builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from uuid import UUID

from payroll_remittance.money import Money


class AccountType(str, Enum):
    """Beneficiary account kind."""

    CHECKING = "checking"
    SAVINGS = "savings"


@dataclass(frozen=True)
class BankAccount:
    """Beneficiary banking data as provided by the payroll feed.

    Fields are optional here because the feed may be incomplete; the
    remittance encoder requires ``code``, ``agency`` and ``account``.
    """

    code: str | None = None
    agency: str | None = None
    agency_check_digit: str | None = None
    account: str | None = None
    account_check_digit: str | None = None
    account_type: AccountType = AccountType.CHECKING
    bank_name: str | None = None

    REQUIRED_FIELDS = ("code", "agency", "account")

    def missing_fields(self) -> list[str]:
        """Names of required fields that are absent or blank."""
        return [
            name
            for name in self.REQUIRED_FIELDS
            if not (getattr(self, name) or "").strip()
        ]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()

    def display_account(self) -> str:
        if not self.account:
            return "-"
        if self.account_check_digit:
            return f"{self.account}-{self.account_check_digit}"
        return self.account

    def display_agency(self) -> str:
        if not self.agency:
            return "-"
        if self.agency_check_digit:
            return f"{self.agency}-{self.agency_check_digit}"
        return self.agency


@dataclass(frozen=True)
class PaymentRecord:
    """One employee's payment for a period; derived, never persisted."""

    employee_id: UUID
    name: str
    document: str
    amount: Money
    bank: BankAccount
    reference_date: date
    company: str | None = None
    cost_center: str | None = None

    def __post_init__(self) -> None:
        if self.amount.cents < 0:
            raise ValueError("PaymentRecord amount must be non-negative")


@dataclass(frozen=True)
class PaymentFilter:
    """Closed filter for aggregation requests."""

    month: int
    year: int
    company: str | None = None
    cost_center: str | None = None

    @property
    def period_label(self) -> str:
        return f"{self.month:02d}/{self.year}"


@dataclass(frozen=True)
class CompanyProfile:
    """Originating company and bank written into the remittance header."""

    bank_code: str
    bank_name: str
    company_code: str
    company_name: str
    company_document: str


# ============================================================================
# Remittance file records
# ============================================================================


@dataclass(frozen=True)
class HeaderRecord:
    """Record type 0."""

    bank_code: str
    bank_name: str
    company_code: str
    company_name: str
    company_document: str
    generated_on: date
    remittance_sequence: int
    record_sequence: int = 1


@dataclass(frozen=True)
class DetailRecord:
    """Record type 1: one payment instruction."""

    detail_number: int
    agency: str
    agency_check_digit: str
    account: str
    account_check_digit: str
    bank_code: str
    account_type: AccountType
    name: str
    document: str
    payment_date: date
    amount_cents: int
    reference: str
    history: str
    record_sequence: int


@dataclass(frozen=True)
class TrailerRecord:
    """Record type 9: totals."""

    record_count: int
    total_amount_cents: int
    record_sequence: int


@dataclass(frozen=True)
class RemittanceFile:
    """Header, ordered details and trailer of one remittance batch."""

    header: HeaderRecord
    details: tuple[DetailRecord, ...] = field(default_factory=tuple)
    trailer: TrailerRecord | None = None

    @property
    def total_amount(self) -> Money:
        return Money(sum(d.amount_cents for d in self.details))

    @property
    def record_count(self) -> int:
        return len(self.details) + 2
