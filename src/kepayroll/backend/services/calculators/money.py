"""Fixed-point money values expressed in integer minor units.

Every amount the engine touches is a :class:`MoneyAmount`. Arithmetic happens on
the integer number of cents; decimal strings only appear when parsing inputs or
formatting outputs. Percentages are computed exactly with
:class:`fractions.Fraction` and rounded half away from zero at the minor unit,
so 0.5 cent becomes 1 cent and -0.5 cent becomes -1 cent.
"""

from __future__ import annotations

from dataclasses import InitVar, dataclass
from decimal import Decimal, InvalidOperation, localcontext
from fractions import Fraction
from functools import total_ordering
from typing import Iterable

from ..errors import InvalidInput

DEFAULT_CURRENCY = "KES"
MINOR_UNITS_PER_MAJOR = 100


def round_half_away_from_zero(value: Fraction) -> int:
    """Round an exact minor-unit quantity to the nearest whole minor unit."""

    quotient, remainder = divmod(abs(value.numerator), value.denominator)
    if remainder * 2 >= value.denominator:
        quotient += 1
    return -quotient if value < 0 else quotient


@total_ordering
@dataclass(frozen=True)
class MoneyAmount:
    """Immutable monetary value held as an integer count of minor units."""

    minor_units: int
    currency: str = DEFAULT_CURRENCY
    allow_negative: InitVar[bool] = False

    def __post_init__(self, allow_negative: bool) -> None:
        if isinstance(self.minor_units, bool) or not isinstance(self.minor_units, int):
            raise InvalidInput("Money amounts must be built from integer minor units")
        if not self.currency:
            raise InvalidInput("Money amounts require a currency code")
        if self.minor_units < 0 and not allow_negative:
            raise InvalidInput(
                f"Negative amount {self._format()} is not allowed in this context"
            )

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> MoneyAmount:
        return cls(0, currency)

    @classmethod
    def from_decimal(
        cls,
        value: str | Decimal | int,
        currency: str = DEFAULT_CURRENCY,
        *,
        allow_negative: bool = False,
    ) -> MoneyAmount:
        """Parse a major-unit amount such as ``"4483.25"`` or ``Decimal("10")``.

        Floats are rejected so binary rounding never leaks into an amount;
        callers holding floats should go through ``str()`` first.
        """

        if isinstance(value, bool) or isinstance(value, float):
            raise InvalidInput(f"Unsupported money value {value!r}")

        if isinstance(value, str):
            text = value.strip().replace(",", "")
            try:
                decimal_value = Decimal(text)
            except InvalidOperation as exc:
                raise InvalidInput(f"'{value}' is not a valid money amount") from exc
        elif isinstance(value, (Decimal, int)):
            decimal_value = Decimal(value)
        else:
            raise InvalidInput(f"Unsupported money value {value!r}")

        if not decimal_value.is_finite():
            raise InvalidInput(f"'{value}' is not a finite money amount")

        with localcontext() as context:
            context.prec = max(context.prec, len(decimal_value.as_tuple().digits) + 2)
            scaled = decimal_value.scaleb(2)
            fractional = scaled != scaled.to_integral_value()
        if fractional:
            raise InvalidInput(
                f"'{value}' has more precision than the currency minor unit"
            )
        return cls(int(scaled), currency, allow_negative)

    def _format(self) -> str:
        sign = "-" if self.minor_units < 0 else ""
        whole, cents = divmod(abs(self.minor_units), MINOR_UNITS_PER_MAJOR)
        return f"{sign}{whole}.{cents:02d}"

    def to_decimal_string(self) -> str:
        """Render the amount in major units with two decimals (``"4483.25"``)."""

        return self._format()

    def to_decimal(self) -> Decimal:
        return Decimal(self.minor_units).scaleb(-2)

    def __str__(self) -> str:
        return f"{self.currency} {self._format()}"

    def _check_currency(self, other: MoneyAmount) -> None:
        if not isinstance(other, MoneyAmount):
            raise TypeError(f"Expected MoneyAmount, received {type(other).__name__}")
        if other.currency != self.currency:
            raise InvalidInput(
                f"Currency mismatch: {self.currency} and {other.currency}"
            )

    def add(self, other: MoneyAmount) -> MoneyAmount:
        self._check_currency(other)
        total = self.minor_units + other.minor_units
        return MoneyAmount(total, self.currency, allow_negative=True)

    def subtract(self, other: MoneyAmount) -> MoneyAmount:
        """Return ``self - other``; the result may be negative."""

        self._check_currency(other)
        difference = self.minor_units - other.minor_units
        return MoneyAmount(difference, self.currency, allow_negative=True)

    def percentage_of(self, rate: Fraction | Decimal | int) -> MoneyAmount:
        """Apply ``rate`` (0.06 for 6%) and round half away from zero."""

        exact = Fraction(self.minor_units) * Fraction(rate)
        return MoneyAmount(
            round_half_away_from_zero(exact), self.currency, allow_negative=True
        )

    def min(self, other: MoneyAmount) -> MoneyAmount:
        self._check_currency(other)
        return self if self.minor_units <= other.minor_units else other

    def max(self, other: MoneyAmount) -> MoneyAmount:
        self._check_currency(other)
        return self if self.minor_units >= other.minor_units else other

    def is_zero(self) -> bool:
        return self.minor_units == 0

    def is_negative(self) -> bool:
        return self.minor_units < 0

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, MoneyAmount):
            return NotImplemented
        self._check_currency(other)
        return self.minor_units < other.minor_units


def sum_amounts(
    amounts: Iterable[MoneyAmount], currency: str = DEFAULT_CURRENCY
) -> MoneyAmount:
    """Add ``amounts`` together, starting from zero in ``currency``."""

    total = MoneyAmount.zero(currency)
    for amount in amounts:
        total = total.add(amount)
    return total


__all__ = [
    "DEFAULT_CURRENCY",
    "MINOR_UNITS_PER_MAJOR",
    "MoneyAmount",
    "round_half_away_from_zero",
    "sum_amounts",
]
