"""Payroll remittance services."""

from payroll_remittance.services.aggregator import PaymentRecordAggregator
from payroll_remittance.services.payroll_source import PayrollDataSource, SqlPayrollDataSource
from payroll_remittance.services.period_store import PayrollPeriodStore
from payroll_remittance.services.remittance_service import RemittanceService
from payroll_remittance.services.sequence_allocator import RemittanceSequenceAllocator, SequenceKey
from payroll_remittance.services.state_machine import (
    Actor,
    PayrollPeriodStatus,
    PayrollStateMachine,
    PeriodStatus,
)

__all__ = [
    "Actor",
    "PaymentRecordAggregator",
    "PayrollDataSource",
    "PayrollPeriodStatus",
    "PayrollPeriodStore",
    "PayrollStateMachine",
    "PeriodStatus",
    "RemittanceSequenceAllocator",
    "RemittanceService",
    "SequenceKey",
    "SqlPayrollDataSource",
]
