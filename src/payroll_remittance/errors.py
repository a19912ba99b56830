"""Error taxonomy for period transitions, aggregation and remittance encoding.

Every error carries a stable ``code``, the HTTP ``status_code`` the API
reports it with, and a ``context`` dict naming the offending field, period
or employees.
"""

from __future__ import annotations

from typing import Any


class RemittanceError(Exception):
    """Base class for predictable failures of this service."""

    code = "REMITTANCE_ERROR"
    status_code = 500

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)


# ============================================================================
# Validation (rejected before any I/O)
# ============================================================================


class ValidationError(RemittanceError):
    """Malformed input: period range, filters, bank fields, field widths."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str,
        field: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        self.field = field
        ctx = dict(context or {})
        if field is not None:
            ctx.setdefault("field", field)
        super().__init__(message, ctx)


class FieldOverflowError(ValidationError):
    """A value does not fit its fixed-width field."""

    code = "FIELD_OVERFLOW"

    def __init__(self, field: str, value: str, width: int, record: str | None = None):
        self.value = value
        self.width = width
        context: dict[str, Any] = {"width": width, "length": len(value)}
        if record is not None:
            context["record"] = record
        super().__init__(
            f"Value for '{field}' has {len(value)} characters, field width is {width}",
            field=field,
            context=context,
        )


class UnrepresentableCharacterError(ValidationError):
    """A character survives transliteration but is outside the file charset."""

    code = "UNREPRESENTABLE_CHARACTER"

    def __init__(self, field: str, character: str, record: str | None = None):
        self.character = character
        context: dict[str, Any] = {"character": character, "codepoint": f"U+{ord(character):04X}"}
        if record is not None:
            context["record"] = record
        super().__init__(
            f"Character {character!r} in '{field}' cannot be written to the remittance file",
            field=field,
            context=context,
        )


class MissingBankDataError(ValidationError):
    """One or more employees lack the banking fields a remittance needs."""

    code = "MISSING_BANK_DATA"

    def __init__(self, employees: list[dict[str, Any]]):
        self.employees = employees
        names = ", ".join(str(e["name"]) for e in employees)
        super().__init__(
            f"{len(employees)} employee(s) missing banking data: {names}",
            field="bank",
            context={"employees": employees},
        )


# ============================================================================
# Authorization
# ============================================================================


class UnauthorizedError(RemittanceError):
    """The actor's role may not perform the requested transition."""

    code = "UNAUTHORIZED"
    status_code = 403

    def __init__(self, action: str, role: str | None):
        self.action = action
        self.role = role
        super().__init__(
            f"Role '{role}' is not allowed to {action} a payroll period",
            {"action": action, "role": role},
        )


# ============================================================================
# State conflicts (reported, never retried automatically)
# ============================================================================


def _period_context(month: int, year: int) -> dict[str, Any]:
    return {"month": month, "year": year}


class StateConflictError(RemittanceError):
    """Transition attempted against the wrong state or concurrently."""

    code = "STATE_CONFLICT"
    status_code = 409


class AlreadyFinalizedError(StateConflictError):
    """Finalize requested on a period that is already FINALIZED."""

    code = "ALREADY_FINALIZED"

    def __init__(self, month: int, year: int):
        super().__init__(
            f"Payroll period {month:02d}/{year} is already finalized",
            _period_context(month, year),
        )


class NotFinalizedError(StateConflictError):
    """Reopen requested on a period that is not FINALIZED."""

    code = "NOT_FINALIZED"

    def __init__(self, month: int, year: int):
        super().__init__(
            f"Payroll period {month:02d}/{year} is not finalized",
            _period_context(month, year),
        )


class ConcurrentTransitionError(StateConflictError):
    """Another transition on the same period won the race."""

    code = "CONCURRENT_TRANSITION"

    def __init__(self, month: int, year: int):
        super().__init__(
            f"Another transition on payroll period {month:02d}/{year} is in progress",
            _period_context(month, year),
        )


class PeriodNotFinalizedError(StateConflictError):
    """Aggregation refused because the period is still open for edits."""

    code = "PERIOD_NOT_FINALIZED"

    def __init__(self, month: int, year: int):
        super().__init__(
            f"Payroll period {month:02d}/{year} has not been finalized by the payroll department",
            _period_context(month, year),
        )


class NoPayrollDataError(StateConflictError):
    """Finalize refused because the period has no payroll entries."""

    code = "NO_PAYROLL_DATA"

    def __init__(self, month: int, year: int):
        super().__init__(
            f"Payroll period {month:02d}/{year} has no payroll entries",
            _period_context(month, year),
        )


class NoMatchingRecordsError(RemittanceError):
    """Aggregation produced no payment records for the given filter."""

    code = "NO_MATCHING_RECORDS"
    status_code = 404

    def __init__(self, month: int, year: int, context: dict[str, Any] | None = None):
        ctx = _period_context(month, year)
        ctx.update(context or {})
        super().__init__(
            f"No payment records match the filter for {month:02d}/{year}",
            ctx,
        )


# ============================================================================
# Data integrity (fatal to the current generation attempt)
# ============================================================================


class DataIntegrityError(RemittanceError):
    """Generated artifact would be internally inconsistent or empty."""

    code = "DATA_INTEGRITY_ERROR"
    status_code = 422


class EmptyRemittanceError(DataIntegrityError):
    """Remittance generation requested against an empty record set."""

    code = "EMPTY_REMITTANCE"

    def __init__(self, context: dict[str, Any] | None = None):
        super().__init__("No payments to include in the remittance file", context)


class EmptyManifestError(DataIntegrityError):
    """Manifest generation requested against an empty record set."""

    code = "EMPTY_MANIFEST"

    def __init__(self, context: dict[str, Any] | None = None):
        super().__init__("No payments to include in the payment manifest", context)


class TrailerMismatchError(DataIntegrityError):
    """Trailer totals disagree with the detail records."""

    code = "TRAILER_MISMATCH"


# ============================================================================
# Upstream collaborators
# ============================================================================


class UpstreamError(RemittanceError):
    """The payroll-data collaborator failed; safe for the caller to retry."""

    code = "UPSTREAM_ERROR"
    status_code = 503
