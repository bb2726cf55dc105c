"""Aggregate totals over monthly payroll results.

:func:`reduce_totals` is the one place where sums over results are defined.
``PayrollTotals.add`` exists for running (cumulative) figures; the annual
aggregator compares the two to catch accumulation defects.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import TYPE_CHECKING

from .money import MoneyAmount, sum_amounts

if TYPE_CHECKING:  # pragma: no cover - only for static type checkers
    from ..models import MonthlyPayrollResult

_Extractor = Callable[["MonthlyPayrollResult"], MoneyAmount]

_MONEY_FIELDS: Mapping[str, _Extractor] = MappingProxyType(
    {
        "basic_pay": lambda result: result.basic_pay,
        "allowances": lambda result: result.allowances_total,
        "overtime_pay": lambda result: result.overtime_pay,
        "gross_pay": lambda result: result.gross_pay,
        "statutory_total": lambda result: result.statutory.total,
        "chargeable_pay": lambda result: result.chargeable_pay,
        "tax_before_relief": lambda result: result.tax_before_relief,
        "reliefs_applied": lambda result: result.reliefs_applied,
        "paye": lambda result: result.paye,
        "loan_deductions": lambda result: result.other_deductions.get("loan"),
        "insurance_premiums": lambda result: result.other_deductions.get(
            "insurance_premium"
        ),
        "other_deductions": lambda result: result.other_deductions.total,
        "net_pay": lambda result: result.net_pay,
    }
)


@dataclass(frozen=True)
class PayrollTotals:
    """Field-by-field sums over a set of successful payroll results."""

    currency: str
    count: int
    basic_pay: MoneyAmount
    allowances: MoneyAmount
    overtime_pay: MoneyAmount
    gross_pay: MoneyAmount
    statutory_total: MoneyAmount
    chargeable_pay: MoneyAmount
    tax_before_relief: MoneyAmount
    reliefs_applied: MoneyAmount
    paye: MoneyAmount
    loan_deductions: MoneyAmount
    insurance_premiums: MoneyAmount
    other_deductions: MoneyAmount
    net_pay: MoneyAmount
    statutory: Mapping[str, MoneyAmount] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "statutory", MappingProxyType(dict(self.statutory)))

    @classmethod
    def empty(cls, currency: str) -> PayrollTotals:
        zero = MoneyAmount.zero(currency)
        return cls(
            currency=currency,
            count=0,
            statutory={},
            **{name: zero for name in _MONEY_FIELDS},
        )

    def add(self, result: MonthlyPayrollResult) -> PayrollTotals:
        """Return new totals that include ``result``."""

        updates = {
            name: getattr(self, name).add(extract(result))
            for name, extract in _MONEY_FIELDS.items()
        }
        statutory = dict(self.statutory)
        for name, amount in result.statutory:
            statutory[name] = statutory.get(name, MoneyAmount.zero(self.currency)).add(
                amount
            )
        return replace(self, count=self.count + 1, statutory=statutory, **updates)

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {}
        for entry in fields(self):
            value = getattr(self, entry.name)
            if isinstance(value, MoneyAmount):
                payload[entry.name] = value.to_decimal_string()
            elif entry.name == "statutory":
                payload[entry.name] = {
                    name: amount.to_decimal_string() for name, amount in value.items()
                }
            else:
                payload[entry.name] = value
        return payload


def reduce_totals(
    results: Iterable[MonthlyPayrollResult], currency: str
) -> PayrollTotals:
    """Sum every field of ``results`` from scratch."""

    materialised = list(results)
    sums = {
        name: sum_amounts((extract(result) for result in materialised), currency)
        for name, extract in _MONEY_FIELDS.items()
    }

    line_names: list[str] = []
    for result in materialised:
        for name, _ in result.statutory:
            if name not in line_names:
                line_names.append(name)
    statutory = {
        name: sum_amounts(
            (result.statutory.get(name) for result in materialised), currency
        )
        for name in line_names
    }

    return PayrollTotals(
        currency=currency,
        count=len(materialised),
        statutory=statutory,
        **sums,
    )


__all__ = ["PayrollTotals", "reduce_totals"]
