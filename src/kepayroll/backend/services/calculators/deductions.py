"""Statutory deduction rules and the breakdown they produce."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from fractions import Fraction
from types import MappingProxyType
from typing import Iterable, Iterator, Sequence

from ..errors import ReconciliationDefect
from .money import MoneyAmount, sum_amounts


@dataclass(frozen=True)
class DeductionBreakdown:
    """Named deduction amounts and their verified total."""

    amounts: Mapping[str, MoneyAmount]
    total: MoneyAmount
    currency: str = field(default="KES")

    def __post_init__(self) -> None:
        object.__setattr__(self, "amounts", MappingProxyType(dict(self.amounts)))
        expected = sum_amounts(self.amounts.values(), self.currency)
        if expected != self.total:
            raise ReconciliationDefect(
                f"Deduction total {self.total} does not match its parts ({expected})"
            )

    @classmethod
    def from_amounts(
        cls, amounts: Iterable[tuple[str, MoneyAmount]], currency: str
    ) -> DeductionBreakdown:
        ordered = dict(amounts)
        return cls(
            amounts=ordered,
            total=sum_amounts(ordered.values(), currency),
            currency=currency,
        )

    def get(self, name: str) -> MoneyAmount:
        return self.amounts.get(name, MoneyAmount.zero(self.currency))

    def __iter__(self) -> Iterator[tuple[str, MoneyAmount]]:
        return iter(self.amounts.items())


@dataclass(frozen=True)
class StatutoryDeductionRule:
    """Percentage of gross pay, optionally capped per period."""

    name: str
    rate: Fraction
    cap: MoneyAmount | None = None

    def compute(self, gross_pay: MoneyAmount) -> MoneyAmount:
        amount = gross_pay.percentage_of(self.rate)
        if self.cap is not None:
            amount = amount.min(self.cap)
        return amount


@dataclass(frozen=True)
class ContributionCap:
    """Per-period ceiling on an employee-elected contribution."""

    name: str
    cap: MoneyAmount

    def apply(self, elected: MoneyAmount) -> MoneyAmount:
        return elected.min(self.cap)


@dataclass(frozen=True)
class StatutoryDeductionRules:
    """Versioned set of rate rules and contribution caps for a tax year."""

    rules: Sequence[StatutoryDeductionRule]
    contribution_caps: Sequence[ContributionCap] = ()
    currency: str = "KES"

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "contribution_caps", tuple(self.contribution_caps))

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(rule.name for rule in self.rules) + tuple(
            cap.name for cap in self.contribution_caps
        )

    def cap_for(self, name: str) -> ContributionCap | None:
        return next((cap for cap in self.contribution_caps if cap.name == name), None)

    def compute(
        self,
        gross_pay: MoneyAmount,
        elected: Mapping[str, MoneyAmount] | None = None,
    ) -> DeductionBreakdown:
        """Apply every rule to ``gross_pay`` and cap the elected contributions.

        Elected contributions without a configured cap are rejected by the
        caller before reaching this point; zero elections are omitted.
        """

        entries: list[tuple[str, MoneyAmount]] = [
            (rule.name, rule.compute(gross_pay)) for rule in self.rules
        ]
        elected = elected or {}
        for cap in self.contribution_caps:
            amount = elected.get(cap.name)
            if amount is None or amount.is_zero():
                continue
            entries.append((cap.name, cap.apply(amount)))

        return DeductionBreakdown.from_amounts(entries, self.currency)


__all__ = [
    "ContributionCap",
    "DeductionBreakdown",
    "StatutoryDeductionRule",
    "StatutoryDeductionRules",
]
