"""Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from payroll_remittance.remittance.types import PaymentRecord
from payroll_remittance.services.remittance_service import BankReadiness
from payroll_remittance.services.state_machine import PeriodStatus


# ============================================================================
# Payroll period schemas
# ============================================================================


class PeriodRequest(BaseModel):
    """Schema for a finalize request."""

    month: int
    year: int


class ReopenRequest(PeriodRequest):
    """Schema for a reopen request."""

    reason: str | None = Field(default=None, max_length=500)


class ReopenEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reopened_at: datetime
    reopened_by: str
    reason: str | None = None
    finalize_session: int


class PeriodStatusResponse(BaseModel):
    """Schema for period status response."""

    month: int
    year: int
    status: str
    finalized_at: datetime | None = None
    finalized_by: str | None = None
    reopened: bool
    reopen_history: list[ReopenEntryResponse]

    @classmethod
    def from_status(cls, period: PeriodStatus) -> "PeriodStatusResponse":
        return cls(
            month=period.month,
            year=period.year,
            status=period.status.value,
            finalized_at=period.finalized_at,
            finalized_by=period.finalized_by,
            reopened=period.reopened,
            reopen_history=[ReopenEntryResponse.model_validate(e) for e in period.reopen_history],
        )


class FinalizeResponse(BaseModel):
    """Schema for finalize response."""

    month: int
    year: int
    status: str
    finalized_at: datetime
    finalized_by: str


class ReopenResponse(BaseModel):
    """Schema for reopen response."""

    month: int
    year: int
    status: str
    reopened_at: datetime
    reopened_by: str


# ============================================================================
# Border schemas
# ============================================================================


class BankAccountResponse(BaseModel):
    code: str | None = None
    name: str | None = None
    agency: str | None = None
    agency_check_digit: str | None = None
    account: str | None = None
    account_check_digit: str | None = None
    account_type: str
    complete: bool


class PaymentRecordResponse(BaseModel):
    """Schema for one aggregated payment."""

    employee_id: UUID
    name: str
    document: str
    amount_cents: int
    amount: str
    amount_display: str
    company: str | None = None
    cost_center: str | None = None
    bank: BankAccountResponse

    @classmethod
    def from_record(cls, record: PaymentRecord) -> "PaymentRecordResponse":
        bank = record.bank
        return cls(
            employee_id=record.employee_id,
            name=record.name,
            document=record.document,
            amount_cents=record.amount.cents,
            amount=str(record.amount),
            amount_display=record.amount.format_brl(),
            company=record.company,
            cost_center=record.cost_center,
            bank=BankAccountResponse(
                code=bank.code,
                name=bank.bank_name,
                agency=bank.agency,
                agency_check_digit=bank.agency_check_digit,
                account=bank.account,
                account_check_digit=bank.account_check_digit,
                account_type=bank.account_type.value,
                complete=bank.is_complete,
            ),
        )


class MissingBankDataEntry(BaseModel):
    employee_id: UUID
    name: str
    missing: list[str]


class BankReadinessResponse(BaseModel):
    """Schema for the CNAB400 readiness preview."""

    month: int
    year: int
    company: str | None = None
    cost_center: str | None = None
    record_count: int
    total_cents: int
    total_display: str
    ready: bool
    missing_bank_data: list[MissingBankDataEntry]

    @classmethod
    def from_readiness(cls, readiness: BankReadiness) -> "BankReadinessResponse":
        payment_filter = readiness.payment_filter
        return cls(
            month=payment_filter.month,
            year=payment_filter.year,
            company=payment_filter.company,
            cost_center=payment_filter.cost_center,
            record_count=readiness.record_count,
            total_cents=readiness.total.cents,
            total_display=readiness.total.format_brl(),
            ready=readiness.ready,
            missing_bank_data=[MissingBankDataEntry(**entry) for entry in readiness.missing],
        )


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
