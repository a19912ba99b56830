"""ORM models."""

from payroll_remittance.models.base import Base, TimestampMixin
from payroll_remittance.models.employee import Company, CostCenter, Employee
from payroll_remittance.models.payroll import PayrollEntry
from payroll_remittance.models.period import PayrollPeriod, PayrollPeriodReopen
from payroll_remittance.models.remittance import RemittanceAllocation, RemittanceCounter

__all__ = [
    "Base",
    "TimestampMixin",
    "Company",
    "CostCenter",
    "Employee",
    "PayrollEntry",
    "PayrollPeriod",
    "PayrollPeriodReopen",
    "RemittanceAllocation",
    "RemittanceCounter",
]
