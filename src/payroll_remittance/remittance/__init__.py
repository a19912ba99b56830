"""Remittance file encoding and payment manifest building."""

from payroll_remittance.remittance.cnab400 import Cnab400ItauEncoder, RemittanceEncoder
from payroll_remittance.remittance.manifest import BorderManifest, BorderManifestBuilder
from payroll_remittance.remittance.types import (
    AccountType,
    BankAccount,
    CompanyProfile,
    PaymentFilter,
    PaymentRecord,
    RemittanceFile,
)

__all__ = [
    "AccountType",
    "BankAccount",
    "BorderManifest",
    "BorderManifestBuilder",
    "Cnab400ItauEncoder",
    "CompanyProfile",
    "PaymentFilter",
    "PaymentRecord",
    "RemittanceEncoder",
    "RemittanceFile",
]
