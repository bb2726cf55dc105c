"""Tax reliefs credited against PAYE."""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction

from .money import MoneyAmount


@dataclass(frozen=True)
class ReliefOutcome:
    """Reliefs granted for one period and the tax left after applying them."""

    tax_before_relief: MoneyAmount
    personal_relief: MoneyAmount
    insurance_relief: MoneyAmount
    reliefs_applied: MoneyAmount
    final_tax: MoneyAmount


@dataclass(frozen=True)
class ReliefCalculator:
    """Flat personal relief plus a capped insurance premium relief."""

    personal_relief: MoneyAmount
    insurance_relief_rate: Fraction
    insurance_relief_cap: MoneyAmount

    def insurance_relief(self, premium: MoneyAmount | None) -> MoneyAmount:
        """Return ``min(premium * rate, cap)``; no premium means no relief."""

        if premium is None or premium.is_zero():
            return MoneyAmount.zero(self.personal_relief.currency)
        return premium.percentage_of(self.insurance_relief_rate).min(
            self.insurance_relief_cap
        )

    def apply(
        self, tax_before_relief: MoneyAmount, premium: MoneyAmount | None = None
    ) -> ReliefOutcome:
        """Subtract reliefs from ``tax_before_relief``.

        Reliefs never produce a refund: when they exceed the tax the final tax
        is floored at zero and ``reliefs_applied`` only reports what was used.
        """

        insurance = self.insurance_relief(premium)
        entitled = self.personal_relief.add(insurance)
        remaining = tax_before_relief.subtract(entitled)
        if remaining.is_negative():
            final_tax = MoneyAmount.zero(tax_before_relief.currency)
        else:
            final_tax = remaining

        return ReliefOutcome(
            tax_before_relief=tax_before_relief,
            personal_relief=self.personal_relief,
            insurance_relief=insurance,
            reliefs_applied=tax_before_relief.subtract(final_tax),
            final_tax=final_tax,
        )


__all__ = ["ReliefCalculator", "ReliefOutcome"]
