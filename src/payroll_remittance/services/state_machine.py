"""Payroll period state machine with transition validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, NoReturn

from payroll_remittance.config import Settings, get_settings
from payroll_remittance.database import acquire_period_lock
from payroll_remittance.errors import (
    AlreadyFinalizedError,
    ConcurrentTransitionError,
    NoPayrollDataError,
    NotFinalizedError,
    StateConflictError,
    UnauthorizedError,
    ValidationError,
)
from payroll_remittance.models import PayrollPeriod
from payroll_remittance.services.payroll_source import PayrollDataSource, SqlPayrollDataSource
from payroll_remittance.services.period_store import PayrollPeriodStore

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from payroll_remittance.models import PayrollPeriodReopen

logger = logging.getLogger(__name__)


class PayrollPeriodStatus(str, Enum):
    """Payroll period status values.

    A reopened period is OPEN again; its reopen history is what tells it
    apart from a period that was never finalized.
    """

    OPEN = "OPEN"
    FINALIZED = "FINALIZED"


@dataclass(frozen=True)
class Actor:
    """Identity and role of whoever requests a transition."""

    actor_id: str
    role: str | None = None


@dataclass(frozen=True)
class ReopenEntry:
    reopened_at: datetime
    reopened_by: str
    reason: str | None
    finalize_session: int


@dataclass(frozen=True)
class PeriodStatus:
    """Snapshot of a period as reported to callers."""

    month: int
    year: int
    status: PayrollPeriodStatus
    finalized_at: datetime | None = None
    finalized_by: str | None = None
    finalize_count: int = 0
    reopen_history: tuple[ReopenEntry, ...] = field(default_factory=tuple)

    @property
    def is_finalized(self) -> bool:
        return self.status == PayrollPeriodStatus.FINALIZED

    @property
    def reopened(self) -> bool:
        return bool(self.reopen_history)


class PayrollStateMachine:
    """State machine for payroll period transitions.

    Allowed transitions:
    - OPEN → FINALIZED (finalize)
    - FINALIZED → OPEN (reopen, appends to the reopen history)

    Every transition is a compare-and-set on the period's status and
    version, so of two concurrent transitions on the same period exactly
    one wins. On PostgreSQL a per-period advisory lock is taken as well.
    Transitions flush but never commit.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollPeriodStatus.OPEN: [PayrollPeriodStatus.FINALIZED],
        PayrollPeriodStatus.FINALIZED: [PayrollPeriodStatus.OPEN],
    }

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        data_source: PayrollDataSource | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.store = PayrollPeriodStore(session)
        self.data_source = data_source or SqlPayrollDataSource(session)

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        return to_status in cls.VALID_TRANSITIONS.get(from_status, [])

    def validate_period(self, month: int, year: int) -> None:
        """Reject out-of-range periods before any I/O."""
        if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
            raise ValidationError(f"Month must be between 1 and 12, got {month!r}", field="month")
        if (
            isinstance(year, bool)
            or not isinstance(year, int)
            or not self.settings.min_year <= year <= self.settings.max_year
        ):
            raise ValidationError(
                f"Year must be between {self.settings.min_year} and "
                f"{self.settings.max_year}, got {year!r}",
                field="year",
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_status(self, month: int, year: int) -> PeriodStatus:
        """Current status; a period never touched reads as OPEN."""
        self.validate_period(month, year)
        period = await self.store.get(month, year)
        if period is None:
            return PeriodStatus(month=month, year=year, status=PayrollPeriodStatus.OPEN)
        history = await self.store.history(period.payroll_period_id)
        return self._snapshot(period, history)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def finalize(self, month: int, year: int, actor: Actor) -> PeriodStatus:
        """OPEN → FINALIZED.

        Raises:
            ValidationError: period out of range
            UnauthorizedError: actor's role may not finalize
            AlreadyFinalizedError: period is already FINALIZED (nothing changes)
            NoPayrollDataError: no payroll entries exist for the period
            ConcurrentTransitionError: another transition won the race
        """
        self.validate_period(month, year)
        self._authorize("finalize", actor, self.settings.finalize_roles)
        await self._lock(month, year)

        period = await self.store.get(month, year)
        if period is not None and not self.can_transition(period.status, PayrollPeriodStatus.FINALIZED):
            self._reject("finalize", month, year, actor, AlreadyFinalizedError(month, year))

        if await self.data_source.count_entries(month, year) == 0:
            self._reject("finalize", month, year, actor, NoPayrollDataError(month, year))

        if period is None:
            period = await self.store.get_or_create(month, year)

        changed = await self.store.compare_and_set(
            period,
            PayrollPeriodStatus.OPEN.value,
            PayrollPeriodStatus.FINALIZED.value,
            finalized_at=datetime.now(timezone.utc),
            finalized_by=actor.actor_id,
            finalize_count=PayrollPeriod.finalize_count + 1,
        )
        if not changed:
            self._reject("finalize", month, year, actor, ConcurrentTransitionError(month, year))

        logger.info(
            "Payroll period %02d/%d finalized by %s (session %d)",
            month,
            year,
            actor.actor_id,
            period.finalize_count,
        )
        return self._snapshot(period, await self.store.history(period.payroll_period_id))

    async def reopen(
        self,
        month: int,
        year: int,
        actor: Actor,
        reason: str | None = None,
    ) -> PeriodStatus:
        """FINALIZED → OPEN, appending one reopen history entry.

        Raises:
            ValidationError: period out of range
            UnauthorizedError: actor's role may not reopen
            NotFinalizedError: period is not FINALIZED
            ConcurrentTransitionError: another transition won the race
        """
        self.validate_period(month, year)
        self._authorize("reopen", actor, self.settings.reopen_roles)
        await self._lock(month, year)

        period = await self.store.get(month, year)
        if period is None or not self.can_transition(period.status, PayrollPeriodStatus.OPEN):
            self._reject("reopen", month, year, actor, NotFinalizedError(month, year))

        finalize_session = period.finalize_count
        changed = await self.store.compare_and_set(
            period,
            PayrollPeriodStatus.FINALIZED.value,
            PayrollPeriodStatus.OPEN.value,
            finalized_at=None,
            finalized_by=None,
        )
        if not changed:
            self._reject("reopen", month, year, actor, ConcurrentTransitionError(month, year))

        await self.store.append_reopen(
            period,
            reopened_at=datetime.now(timezone.utc),
            reopened_by=actor.actor_id,
            reason=reason,
            finalize_session=finalize_session,
        )
        logger.info(
            "Payroll period %02d/%d reopened by %s (closing session %d)",
            month,
            year,
            actor.actor_id,
            finalize_session,
        )
        return self._snapshot(period, await self.store.history(period.payroll_period_id))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _authorize(self, action: str, actor: Actor, allowed: frozenset[str]) -> None:
        role = (actor.role or "").strip().upper()
        if role not in allowed:
            logger.warning("Denied %s for %s with role %r", action, actor.actor_id, actor.role)
            raise UnauthorizedError(action, actor.role)

    async def _lock(self, month: int, year: int) -> None:
        if not await acquire_period_lock(self.session, month, year):
            raise ConcurrentTransitionError(month, year)

    def _reject(
        self,
        action: str,
        month: int,
        year: int,
        actor: Actor,
        error: StateConflictError,
    ) -> NoReturn:
        logger.warning(
            "Rejected %s of payroll period %02d/%d by %s: %s",
            action,
            month,
            year,
            actor.actor_id,
            error.code,
        )
        raise error

    @staticmethod
    def _snapshot(period: PayrollPeriod, history: list[PayrollPeriodReopen]) -> PeriodStatus:
        return PeriodStatus(
            month=period.month,
            year=period.year,
            status=PayrollPeriodStatus(period.status),
            finalized_at=period.finalized_at,
            finalized_by=period.finalized_by,
            finalize_count=period.finalize_count,
            reopen_history=tuple(
                ReopenEntry(
                    reopened_at=entry.reopened_at,
                    reopened_by=entry.reopened_by,
                    reason=entry.reason,
                    finalize_session=entry.finalize_session,
                )
                for entry in history
            ),
        )
