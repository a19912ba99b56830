"""Company, cost center and employee banking models."""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from payroll_remittance.models.base import Base, TimestampMixin


class Company(Base, TimestampMixin):
    """Employer company; its code is a valid aggregation filter value."""

    __tablename__ = "company"

    code: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    document: Mapped[str | None] = mapped_column(String, nullable=True)


class CostCenter(Base, TimestampMixin):
    """Cost center; its code is a valid aggregation filter value."""

    __tablename__ = "cost_center"

    code: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)


class Employee(Base, TimestampMixin):
    """Employee identity, allocation and the account salaries are paid into."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    document: Mapped[str] = mapped_column(String, nullable=False)
    company_code: Mapped[str | None] = mapped_column(
        ForeignKey("company.code"),
        nullable=True,
    )
    cost_center_code: Mapped[str | None] = mapped_column(
        ForeignKey("cost_center.code"),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Banking data; any of these may be missing in the feed
    bank_code: Mapped[str | None] = mapped_column(String(3), nullable=True)
    bank_name: Mapped[str | None] = mapped_column(String, nullable=True)
    account_type: Mapped[str] = mapped_column(String, nullable=False, default="checking")
    agency: Mapped[str | None] = mapped_column(String, nullable=True)
    agency_digit: Mapped[str | None] = mapped_column(String(1), nullable=True)
    account: Mapped[str | None] = mapped_column(String, nullable=True)
    account_digit: Mapped[str | None] = mapped_column(String(1), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "account_type IN ('checking', 'savings')",
            name="employee_account_type_check",
        ),
    )
