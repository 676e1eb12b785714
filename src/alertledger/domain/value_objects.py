# src/alertledger/domain/value_objects.py
"""
Defines the Value Objects for the domain. These are immutable objects that
describe attributes of entities but have no conceptual identity.

Money and percentages are always carried as Decimal so that repeated partial
sales never accumulate floating point drift.
"""
from __future__ import annotations
from dataclasses import dataclass
import re
from typing import Any, Mapping, Optional
from decimal import Decimal, InvalidOperation

from .errors import InvalidRange

# Normalized ticker pattern (NYSE/NASDAQ style, class shares like BRK.B allowed)
_SYMBOL_RE = re.compile(r"^[A-Z0-9.\-]{1,15}$")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any, default: Optional[Decimal] = ZERO) -> Optional[Decimal]:
    """Safely converts input to a finite Decimal.

    Accepts Decimal, int, float and strings such as "$123.45". Returns
    `default` for None, empty or non-numeric input.
    """
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.replace("$", "").replace(",", "").strip()
        if not value:
            return default
    try:
        d = Decimal(str(value))
        return d if d.is_finite() else default
    except (InvalidOperation, TypeError, ValueError):
        return default


class Symbol:
    """Represents a ticker symbol. Immutable and always uppercase."""

    def __init__(self, value: str) -> None:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Symbol value must be a non-empty string.")
        normalized = value.replace("$", "").strip().upper()
        if not _SYMBOL_RE.match(normalized):
            raise ValueError(f"Invalid symbol format: '{value}'")
        self.value = normalized

    def __repr__(self) -> str:
        return f"Symbol('{self.value}')"

    def __str__(self) -> str:
        return self.value

    def __eq__(self, other) -> bool:
        return isinstance(other, Symbol) and self.value == other.value

    def __hash__(self) -> int:
        return hash(self.value)


def normalize_symbol(value: Any) -> str:
    """Returns the canonical ticker string for a Symbol or raw string."""
    if isinstance(value, Symbol):
        return value.value
    return Symbol(str(value)).value


@dataclass(frozen=True)
class PriceRange:
    """A not-yet-confirmed price band. Both bounds positive and min <= max."""
    min: Decimal
    max: Decimal

    def __post_init__(self) -> None:
        lo = to_decimal(self.min, None)
        hi = to_decimal(self.max, None)
        if lo is None or hi is None:
            raise InvalidRange(f"Price range bounds must be numeric (got {self.min!r}, {self.max!r}).")
        if lo <= 0 or hi <= 0:
            raise InvalidRange(f"Price range bounds must be positive (got {lo}, {hi}).")
        if lo > hi:
            raise InvalidRange(f"Price range min {lo} is greater than max {hi}.")
        # frozen dataclass: normalise the stored values to Decimal
        object.__setattr__(self, "min", lo)
        object.__setattr__(self, "max", hi)

    @property
    def midpoint(self) -> Decimal:
        return (self.min + self.max) / 2

    @property
    def is_degenerate(self) -> bool:
        return self.min == self.max

    def contains(self, price: Decimal) -> bool:
        return self.min <= price <= self.max

    @classmethod
    def exact(cls, price: Any) -> "PriceRange":
        """A degenerate range pinned to a single confirmed price."""
        return cls(price, price)

    @classmethod
    def parse(cls, raw: Any) -> Optional["PriceRange"]:
        """Lenient constructor for stored records.

        Returns None when the raw value is missing or malformed instead of
        raising, so record loaders can treat it as "no range".
        """
        if raw is None:
            return None
        if isinstance(raw, PriceRange):
            return raw
        if isinstance(raw, Mapping):
            lo, hi = raw.get("min"), raw.get("max")
        elif isinstance(raw, (tuple, list)) and len(raw) == 2:
            lo, hi = raw
        else:
            return None
        try:
            return cls(lo, hi)
        except InvalidRange:
            return None
