"""Fixed-width field layouts for 400-column remittance records.

A ``RecordLayout`` is an ordered list of ``FieldSpec`` entries that must tile
positions 1..400 exactly. Rendering never truncates: a value wider than its
field raises ``FieldOverflowError``.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from payroll_remittance.errors import (
    FieldOverflowError,
    UnrepresentableCharacterError,
    ValidationError,
)

RECORD_WIDTH = 400

# Printable ASCII is a strict subset of ISO-8859-1 and of every bank charset
_ALLOWED_TEXT = frozenset(chr(c) for c in range(0x20, 0x7F))

# Punctuation commonly typed into agency/account/document numbers
_NUMERIC_SEPARATORS = re.compile(r"[\s.\-/]")


class FieldKind(str, Enum):
    """How a field is padded and parsed."""

    NUMERIC = "numeric"
    ALPHA = "alpha"
    DATE_DDMMYY = "date_ddmmyy"
    DATE_DDMMYYYY = "date_ddmmyyyy"
    CONSTANT = "constant"
    BLANK = "blank"


@dataclass(frozen=True)
class FieldSpec:
    """A field occupying 1-based inclusive positions ``start``..``end``."""

    name: str
    start: int
    end: int
    kind: FieldKind
    constant: str | None = None

    @property
    def width(self) -> int:
        return self.end - self.start + 1

    def __post_init__(self) -> None:
        if self.start < 1 or self.end < self.start:
            raise ValueError(f"Invalid positions for field {self.name}: {self.start}-{self.end}")
        if self.kind == FieldKind.CONSTANT and (
            self.constant is None or len(self.constant) != self.width
        ):
            raise ValueError(f"Constant for field {self.name} must be {self.width} characters")


def transliterate(text: str) -> str:
    """Strip accents and uppercase: ``"João Conceição"`` -> ``"JOAO CONCEICAO"``."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.upper()


def format_alpha(field: str, value: str | None, width: int, record: str | None = None) -> str:
    """Left-align and space-pad a text value after transliteration."""
    text = transliterate(value or "").strip()
    for ch in text:
        if ch not in _ALLOWED_TEXT:
            raise UnrepresentableCharacterError(field, ch, record)
    if len(text) > width:
        raise FieldOverflowError(field, text, width, record)
    return text.ljust(width, " ")


def normalize_digits(field: str, value: str | int | None, record: str | None = None) -> str:
    """Drop separators from a numeric value and require only digits to remain."""
    if value is None:
        return ""
    if isinstance(value, bool):
        raise ValidationError(f"Boolean is not a valid value for '{field}'", field=field)
    if isinstance(value, int):
        if value < 0:
            raise ValidationError(f"Negative value for numeric field '{field}'", field=field)
        return str(value)
    digits = _NUMERIC_SEPARATORS.sub("", value)
    if digits and not digits.isdigit():
        context = {"record": record} if record is not None else None
        raise ValidationError(
            f"Value {value!r} for '{field}' is not numeric",
            field=field,
            context=context,
        )
    return digits


def format_numeric(field: str, value: str | int | None, width: int, record: str | None = None) -> str:
    """Right-align and zero-pad a numeric value."""
    digits = normalize_digits(field, value, record)
    if len(digits) > width:
        raise FieldOverflowError(field, digits, width, record)
    return digits.rjust(width, "0")


class RecordLayout:
    """Ordered field specs describing one 400-column record type."""

    def __init__(self, record_type: str, fields: list[FieldSpec]):
        self.record_type = record_type
        self.fields = tuple(fields)
        self._check_tiling()

    def _check_tiling(self) -> None:
        position = 1
        for spec in self.fields:
            if spec.start != position:
                raise ValueError(
                    f"Layout {self.record_type}: field {spec.name} starts at "
                    f"{spec.start}, expected {position}"
                )
            position = spec.end + 1
        if position != RECORD_WIDTH + 1:
            raise ValueError(
                f"Layout {self.record_type} covers {position - 1} columns, "
                f"expected {RECORD_WIDTH}"
            )

    def normalize(self, values: dict[str, Any]) -> dict[str, str]:
        """Return values exactly as ``parse`` would read them back.

        Numeric fields come back zero-padded, text fields transliterated
        with trailing padding removed. Raises the same errors as ``render``.
        """
        specs = {spec.name: spec for spec in self.fields}
        normalized: dict[str, str] = {}
        for name, value in values.items():
            spec = specs[name]
            if spec.kind == FieldKind.NUMERIC:
                normalized[name] = format_numeric(name, value, spec.width, self.record_type)
            elif spec.kind == FieldKind.ALPHA:
                normalized[name] = format_alpha(name, value, spec.width, self.record_type).rstrip(" ")
            else:
                raise ValueError(f"Field {name} of kind {spec.kind.value} cannot be normalized")
        return normalized

    def render(self, values: dict[str, Any]) -> str:
        """Render ``values`` into exactly 400 characters."""
        parts: list[str] = []
        for spec in self.fields:
            parts.append(self._render_field(spec, values.get(spec.name)))
        line = "".join(parts)
        if len(line) != RECORD_WIDTH:
            raise ValueError(f"Record {self.record_type} rendered {len(line)} columns")
        return line

    def _render_field(self, spec: FieldSpec, value: Any) -> str:
        if spec.kind == FieldKind.CONSTANT:
            return spec.constant or ""
        if spec.kind == FieldKind.BLANK:
            return " " * spec.width
        if spec.kind == FieldKind.NUMERIC:
            return format_numeric(spec.name, value, spec.width, self.record_type)
        if spec.kind == FieldKind.ALPHA:
            return format_alpha(spec.name, value, spec.width, self.record_type)
        if spec.kind == FieldKind.DATE_DDMMYY:
            return _require_date(spec, value).strftime("%d%m%y")
        if spec.kind == FieldKind.DATE_DDMMYYYY:
            return _require_date(spec, value).strftime("%d%m%Y")
        raise ValueError(f"Unknown field kind {spec.kind}")

    def parse(self, line: str) -> dict[str, Any]:
        """Split a 400-column line back into raw field values."""
        if len(line) != RECORD_WIDTH:
            raise ValidationError(
                f"Record has {len(line)} columns, expected {RECORD_WIDTH}",
                field="record",
            )
        values: dict[str, Any] = {}
        for spec in self.fields:
            raw = line[spec.start - 1 : spec.end]
            if spec.kind == FieldKind.CONSTANT:
                if raw != spec.constant:
                    raise ValidationError(
                        f"Field {spec.name} is {raw!r}, expected {spec.constant!r}",
                        field=spec.name,
                    )
            elif spec.kind == FieldKind.NUMERIC:
                if not raw.isdigit():
                    raise ValidationError(f"Field {spec.name} is not numeric: {raw!r}", field=spec.name)
                values[spec.name] = raw
            elif spec.kind == FieldKind.ALPHA:
                values[spec.name] = raw.rstrip(" ")
            elif spec.kind == FieldKind.DATE_DDMMYY:
                values[spec.name] = _parse_date(spec, raw, "%d%m%y")
            elif spec.kind == FieldKind.DATE_DDMMYYYY:
                values[spec.name] = _parse_date(spec, raw, "%d%m%Y")
        return values


def _require_date(spec: FieldSpec, value: Any) -> date:
    if not isinstance(value, date):
        raise ValidationError(f"Field {spec.name} requires a date", field=spec.name)
    return value


def _parse_date(spec: FieldSpec, raw: str, fmt: str) -> date:
    try:
        return datetime.strptime(raw, fmt).date()
    except ValueError:
        raise ValidationError(f"Field {spec.name} is not a valid date: {raw!r}", field=spec.name) from None
