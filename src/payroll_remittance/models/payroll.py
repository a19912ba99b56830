"""Approved payroll amounts per employee and period."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from payroll_remittance.models.base import Base, TimestampMixin


class PayrollEntry(Base, TimestampMixin):
    """Net amount approved for an employee in a month, in integer cents.

    An employee may have several entries in the same period (salary,
    adjustments); they are summed into a single payment.
    """

    __tablename__ = "payroll_entry"

    payroll_entry_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    net_amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("month BETWEEN 1 AND 12", name="payroll_entry_month_check"),
        Index("payroll_entry_period_idx", "year", "month"),
    )
