"""Money Amount — integer minor-unit value type with exact display conversion.

Invariants:
    - minor_units is an int >= 0, never a float
    - from_display rejects zero, negative, NaN, infinite, and unparseable input
      BEFORE conversion; values that round to zero cents are rejected after
    - Conversion to minor units: x * 100, ROUND_HALF_UP, truncated to int
    - to_display is exact: Decimal division by 100, rendered with 2 places
    - to_display(from_display(x)) == x for every 2-decimal display string

Design Decisions:
    - Decimal for parsing only: floats are converted through repr() so that
      0.1 stays 0.1 instead of 0.1000000000000000055...
    - Upper bound is the signed 64-bit range of the BigInteger balance column
      and is checked before scaling, so no Decimal context limit is ever hit
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from balance_service.core.errors import InvalidAmountError


MINOR_UNITS_PER_MAJOR: int = 100
MAX_MINOR_UNITS: int = 2**63 - 1

_CENT = Decimal("0.01")
# smallest display value that rounds half-up past MAX_MINOR_UNITS
_OVERFLOW_DISPLAY = (Decimal(MAX_MINOR_UNITS) + Decimal("0.5")) / MINOR_UNITS_PER_MAJOR


@dataclass(frozen=True, order=True)
class MoneyAmount:
    """Non-negative amount of money counted in minor units (cents)."""
    minor_units: int

    def __post_init__(self):
        if isinstance(self.minor_units, bool) or not isinstance(self.minor_units, int):
            raise TypeError(
                f"minor_units must be int, got {type(self.minor_units).__name__}"
            )
        if self.minor_units < 0:
            raise ValueError(f"MoneyAmount cannot be negative: {self.minor_units}")

    @classmethod
    def zero(cls) -> "MoneyAmount":
        return cls(0)

    @classmethod
    def from_display(cls, value: object) -> "MoneyAmount":
        """Parse a positive decimal display value (e.g. "123.45") into minor units."""
        parsed = _parse_decimal(value)
        if parsed <= 0:
            raise InvalidAmountError(value, "amount must be greater than zero")
        if parsed >= _OVERFLOW_DISPLAY:
            raise InvalidAmountError(value, "amount exceeds the supported range")
        minor = int(
            (parsed * MINOR_UNITS_PER_MAJOR).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        )
        if minor == 0:
            raise InvalidAmountError(value, "amount rounds to zero minor units")
        if minor > MAX_MINOR_UNITS:
            raise InvalidAmountError(value, "amount exceeds the supported range")
        return cls(minor)

    def to_decimal(self) -> Decimal:
        return (Decimal(self.minor_units) / MINOR_UNITS_PER_MAJOR).quantize(_CENT)

    def to_display(self) -> str:
        return str(self.to_decimal())

    def is_zero(self) -> bool:
        return self.minor_units == 0

    def __add__(self, other: "MoneyAmount") -> "MoneyAmount":
        if not isinstance(other, MoneyAmount):
            return NotImplemented
        return MoneyAmount(self.minor_units + other.minor_units)

    def __sub__(self, other: "MoneyAmount") -> "MoneyAmount":
        """Subtract; raises ValueError if the result would be negative."""
        if not isinstance(other, MoneyAmount):
            return NotImplemented
        return MoneyAmount(self.minor_units - other.minor_units)

    def __str__(self) -> str:
        return self.to_display()


def _parse_decimal(value: object) -> Decimal:
    """Parse display input into a finite Decimal or raise InvalidAmountError."""
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(value, "not a number")
    if isinstance(value, float):
        value = repr(value)
    try:
        parsed = Decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(value, "not a number")
    if not parsed.is_finite():
        raise InvalidAmountError(value, "amount must be finite")
    return parsed
