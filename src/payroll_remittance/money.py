"""Integer-cents money value type.

All arithmetic happens on ``int`` cents. Decimal is only used at the
boundary, when parsing or rendering display strings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

from payroll_remittance.errors import ValidationError

CENTS = Decimal("0.01")

_BRL_PATTERN = re.compile(r"^-?(\d{1,3}(\.\d{3})+|\d+),\d{1,2}$")


@dataclass(frozen=True, order=True)
class Money:
    """A BRL amount held as an integer number of cents."""

    cents: int

    def __post_init__(self) -> None:
        # bool is an int subclass; reject it along with floats and Decimals
        if type(self.cents) is not int:
            raise TypeError(f"Money requires int cents, got {type(self.cents).__name__}")

    @classmethod
    def zero(cls) -> Money:
        return cls(0)

    @classmethod
    def from_decimal(cls, value: Decimal) -> Money:
        """Convert a Decimal amount, rounding half-up to whole cents."""
        if not isinstance(value, Decimal):
            raise TypeError(f"Money.from_decimal requires Decimal, got {type(value).__name__}")
        if not value.is_finite():
            raise ValidationError(f"Amount {value} is not a finite number", field="amount")
        quantized = value.quantize(CENTS, rounding=ROUND_HALF_UP)
        return cls(int(quantized * 100))

    @classmethod
    def parse(cls, text: str) -> Money:
        """Parse ``"1234.56"`` or BRL-formatted ``"R$ 1.234,56"`` input."""
        raw = text.strip().replace("R$", "").replace(" ", "")
        if not raw:
            raise ValidationError("Empty amount", field="amount")

        if "," in raw:
            if not _BRL_PATTERN.match(raw):
                raise ValidationError(f"Invalid amount {text!r}", field="amount")
            raw = raw.replace(".", "").replace(",", ".")

        try:
            value = Decimal(raw)
        except InvalidOperation:
            raise ValidationError(f"Invalid amount {text!r}", field="amount") from None
        return cls.from_decimal(value)

    @classmethod
    def sum(cls, amounts: Iterable[Money]) -> Money:
        return cls(sum((a.cents for a in amounts), 0))

    def to_decimal(self) -> Decimal:
        return (Decimal(self.cents) / 100).quantize(CENTS)

    def is_positive(self) -> bool:
        return self.cents > 0

    def format_brl(self) -> str:
        """Render as ``R$ 1.234,56``."""
        sign = "-" if self.cents < 0 else ""
        reais, centavos = divmod(abs(self.cents), 100)
        grouped = f"{reais:,}".replace(",", ".")
        return f"{sign}R$ {grouped},{centavos:02d}"

    def __add__(self, other: object) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents + other.cents)

    def __sub__(self, other: object) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents - other.cents)

    def __str__(self) -> str:
        return f"{self.to_decimal():.2f}"
