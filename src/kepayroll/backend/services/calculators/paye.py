"""PAYE computation combining tax bands with reliefs."""

from __future__ import annotations

from dataclasses import dataclass

from .bands import TaxBandTable
from .money import MoneyAmount
from .reliefs import ReliefCalculator, ReliefOutcome


@dataclass(frozen=True)
class PAYEEngine:
    """Turns chargeable pay for one period into the PAYE to withhold."""

    bands: TaxBandTable
    reliefs: ReliefCalculator

    def tax_from_bands(self, chargeable_pay: MoneyAmount) -> MoneyAmount:
        return self.bands.tax_for(chargeable_pay)

    def compute(
        self,
        chargeable_pay: MoneyAmount,
        insurance_premium: MoneyAmount | None = None,
    ) -> ReliefOutcome:
        tax = self.bands.tax_for(chargeable_pay)
        return self.reliefs.apply(tax, insurance_premium)


__all__ = ["PAYEEngine"]
