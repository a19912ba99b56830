"""Payroll period status and reopen history models."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from payroll_remittance.models.base import Base, TimestampMixin


class PayrollPeriod(Base, TimestampMixin):
    """Lock state of one payroll month.

    Rows are created the first time a period is finalized and are never
    deleted; reopening appends a ``PayrollPeriodReopen`` row instead.
    """

    __tablename__ = "payroll_period"

    payroll_period_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="OPEN")
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finalized_by: Mapped[str | None] = mapped_column(String, nullable=True)
    # Number of times the period has been finalized; identifies the
    # finalization session a remittance allocation belongs to
    finalize_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Bumped on every transition, compared on every transition
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("month", "year", name="payroll_period_month_year_key"),
        CheckConstraint("month BETWEEN 1 AND 12", name="payroll_period_month_check"),
        CheckConstraint(
            "status IN ('OPEN', 'FINALIZED')",
            name="payroll_period_status_check",
        ),
    )


class PayrollPeriodReopen(Base):
    """Append-only audit row for a FINALIZED -> OPEN transition."""

    __tablename__ = "payroll_period_reopen"

    payroll_period_reopen_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_period_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_period.payroll_period_id", ondelete="RESTRICT"),
        nullable=False,
    )
    reopened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    reopened_by: Mapped[str] = mapped_column(String, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    finalize_session: Mapped[int] = mapped_column(Integer, nullable=False)
