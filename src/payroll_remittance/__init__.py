"""Payroll period finalization and bank remittance service."""

__version__ = "0.1.0"
