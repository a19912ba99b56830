"""Remittance sequence counter and allocation ledger."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, DateTime, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from payroll_remittance.models.base import Base


class RemittanceCounter(Base):
    """Last remittance sequence handed out for an originating company.

    Keyed by the company code written into the file header. Only ever
    incremented in place by a single atomic UPDATE.
    """

    __tablename__ = "remittance_counter"

    originator: Mapped[str] = mapped_column(String, primary_key=True)
    last_sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("last_sequence >= 0", name="remittance_counter_positive_check"),
    )


class RemittanceAllocation(Base):
    """A sequence number consumed for one remittance file.

    The file is identified by period, finalization session and the
    aggregation filter; an empty string means the filter was not set.
    """

    __tablename__ = "remittance_allocation"

    remittance_allocation_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    originator: Mapped[str] = mapped_column(String, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    company_filter: Mapped[str] = mapped_column(String, nullable=False, default="")
    cost_center_filter: Mapped[str] = mapped_column(String, nullable=False, default="")
    finalize_session: Mapped[int] = mapped_column(Integer, nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    generated_on: Mapped[date] = mapped_column(Date, nullable=False)
    allocated_by: Mapped[str | None] = mapped_column(String, nullable=True)
    allocated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("originator", "sequence", name="remittance_allocation_sequence_key"),
        Index(
            "remittance_allocation_file_idx",
            "originator",
            "year",
            "month",
            "finalize_session",
            "company_filter",
            "cost_center_filter",
        ),
    )
