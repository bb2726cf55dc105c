"""Progressive PAYE bands and the marginal tax computation."""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Iterator, Sequence

from kepayroll.backend.config.schema import ConfigurationError

from ..errors import InvalidInput
from .money import MoneyAmount, round_half_away_from_zero


@dataclass(frozen=True)
class TaxBand:
    """Slice of chargeable pay taxed at ``rate``.

    ``lower`` is inclusive and ``upper`` exclusive; ``upper`` is ``None`` for
    the open-ended top band.
    """

    lower: MoneyAmount
    upper: MoneyAmount | None
    rate: Fraction

    def width_below(self, amount: MoneyAmount) -> int:
        """Return how many minor units of ``amount`` fall inside this band."""

        if amount.minor_units <= self.lower.minor_units:
            return 0
        ceiling = amount.minor_units
        if self.upper is not None and self.upper.minor_units < ceiling:
            ceiling = self.upper.minor_units
        return ceiling - self.lower.minor_units


class TaxBandTable:
    """Ordered, contiguous set of tax bands for one tax year."""

    def __init__(self, bands: Sequence[TaxBand]) -> None:
        self._bands = tuple(bands)
        self._validate()

    def _validate(self) -> None:
        if not self._bands:
            raise ConfigurationError("At least one tax band must be defined")

        first = self._bands[0]
        if not first.lower.is_zero():
            raise ConfigurationError("The first tax band must start at zero")

        currency = first.lower.currency
        for index, band in enumerate(self._bands):
            if band.rate < 0 or band.rate > 1:
                raise ConfigurationError("Tax band rates must be between 0 and 1")
            if band.lower.currency != currency or (
                band.upper is not None and band.upper.currency != currency
            ):
                raise ConfigurationError("Tax bands must share a single currency")
            is_last = index == len(self._bands) - 1
            if band.upper is None:
                if not is_last:
                    raise ConfigurationError("Only the final tax band may be unbounded")
                continue
            if is_last:
                raise ConfigurationError("Final tax band must have an open upper bound")
            if band.upper <= band.lower:
                raise ConfigurationError("Tax band upper bounds must exceed lower bounds")
            following = self._bands[index + 1]
            if following.lower != band.upper:
                raise ConfigurationError("Tax bands must be contiguous and ascending")

    @classmethod
    def from_thresholds(
        cls,
        thresholds: Sequence[tuple[MoneyAmount | None, Fraction]],
        currency: str,
    ) -> TaxBandTable:
        """Build a table from ``(upper, rate)`` pairs in ascending order."""

        bands: list[TaxBand] = []
        lower = MoneyAmount.zero(currency)
        for upper, rate in thresholds:
            bands.append(TaxBand(lower=lower, upper=upper, rate=rate))
            if upper is not None:
                lower = upper
        return cls(bands)

    @property
    def currency(self) -> str:
        return self._bands[0].lower.currency

    def __iter__(self) -> Iterator[TaxBand]:
        return iter(self._bands)

    def __len__(self) -> int:
        return len(self._bands)

    def band_for(self, amount: MoneyAmount) -> TaxBand:
        """Return the band whose half-open range contains ``amount``."""

        for band in self._bands:
            if band.upper is None or amount < band.upper:
                return band
        return self._bands[-1]  # pragma: no cover - last band is unbounded

    def tax_for(self, chargeable_pay: MoneyAmount) -> MoneyAmount:
        """Compute progressive tax on ``chargeable_pay``.

        Every band slice is accumulated exactly and the total is rounded once,
        half away from zero, at the minor unit.
        """

        if chargeable_pay.is_negative():
            raise InvalidInput(
                f"Chargeable pay cannot be negative (received {chargeable_pay})"
            )
        if chargeable_pay.currency != self.currency:
            raise InvalidInput(
                f"Tax bands are defined in {self.currency}, not {chargeable_pay.currency}"
            )

        exact = Fraction(0)
        for band in self._bands:
            width = band.width_below(chargeable_pay)
            if width <= 0:
                break
            exact += width * band.rate

        return MoneyAmount(round_half_away_from_zero(exact), chargeable_pay.currency)


__all__ = ["TaxBand", "TaxBandTable"]
