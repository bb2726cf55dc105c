"""Input and output records exchanged with the payroll engine.

Records are frozen dataclasses holding :class:`MoneyAmount` values. Results
check their own arithmetic identities on construction so a result that exists
is a result that adds up.
"""

from __future__ import annotations

import calendar
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .calculators.deductions import DeductionBreakdown
from .calculators.money import MoneyAmount, sum_amounts
from .errors import PayrollComputationError, ReconciliationDefect

PENSION_CONTRIBUTION = "pension_contribution"
MEDICAL_FUND_CONTRIBUTION = "medical_fund_contribution"
LOAN_DEDUCTION = "loan"
INSURANCE_DEDUCTION = "insurance_premium"


def month_name(month: int) -> str:
    return calendar.month_name[month]


@dataclass(frozen=True)
class EmployeeCompensationRecord:
    """One employee's compensation for one pay period."""

    employee_id: str
    tax_year: int
    month: int
    basic_pay: MoneyAmount
    allowances: Mapping[str, MoneyAmount] = field(default_factory=dict)
    overtime_pay: MoneyAmount | None = None
    loan_deduction: MoneyAmount | None = None
    insurance_premium: MoneyAmount | None = None
    other_deductions: Mapping[str, MoneyAmount] = field(default_factory=dict)
    pension_contribution: MoneyAmount | None = None
    medical_fund_contribution: MoneyAmount | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "allowances", MappingProxyType(dict(self.allowances)))
        object.__setattr__(
            self, "other_deductions", MappingProxyType(dict(self.other_deductions))
        )

    @property
    def period(self) -> tuple[int, int]:
        return self.tax_year, self.month

    @property
    def currency(self) -> str:
        return self.basic_pay.currency

    def elected_contributions(self) -> dict[str, MoneyAmount]:
        elected: dict[str, MoneyAmount] = {}
        if self.pension_contribution is not None:
            elected[PENSION_CONTRIBUTION] = self.pension_contribution
        if self.medical_fund_contribution is not None:
            elected[MEDICAL_FUND_CONTRIBUTION] = self.medical_fund_contribution
        return elected


@dataclass(frozen=True)
class MonthlyPayrollResult:
    """Payslip figures for one employee and one month."""

    employee_id: str
    tax_year: int
    month: int
    basic_pay: MoneyAmount
    allowances_total: MoneyAmount
    overtime_pay: MoneyAmount
    gross_pay: MoneyAmount
    statutory: DeductionBreakdown
    chargeable_pay: MoneyAmount
    tax_before_relief: MoneyAmount
    personal_relief: MoneyAmount
    insurance_relief: MoneyAmount
    reliefs_applied: MoneyAmount
    paye: MoneyAmount
    other_deductions: DeductionBreakdown
    net_pay: MoneyAmount

    def __post_init__(self) -> None:
        currency = self.gross_pay.currency
        gross = sum_amounts(
            (self.basic_pay, self.allowances_total, self.overtime_pay), currency
        )
        if gross != self.gross_pay:
            raise ReconciliationDefect(
                f"Gross pay {self.gross_pay} does not match its components ({gross})"
            )
        if self.gross_pay.subtract(self.statutory.total) != self.chargeable_pay:
            raise ReconciliationDefect("Chargeable pay does not match gross less deductions")
        if self.tax_before_relief.subtract(self.reliefs_applied) != self.paye:
            raise ReconciliationDefect("PAYE does not match tax less reliefs applied")
        net = (
            self.gross_pay.subtract(self.statutory.total)
            .subtract(self.paye)
            .subtract(self.other_deductions.total)
        )
        if net != self.net_pay:
            raise ReconciliationDefect(
                f"Net pay {self.net_pay} does not match gross less deductions ({net})"
            )

    @property
    def period(self) -> tuple[int, int]:
        return self.tax_year, self.month

    @property
    def month_name(self) -> str:
        return month_name(self.month)

    @property
    def total_deductions(self) -> MoneyAmount:
        return self.statutory.total.add(self.paye).add(self.other_deductions.total)


@dataclass(frozen=True)
class ComputationFailure:
    """Captured per-entry failure inside a batch or an annual card."""

    employee_id: str
    reason: str
    kind: str
    month: int | None = None

    @classmethod
    def from_error(
        cls,
        employee_id: str,
        error: PayrollComputationError,
        month: int | None = None,
    ) -> ComputationFailure:
        return cls(employee_id=employee_id, reason=str(error), kind=error.kind, month=month)


PayrollOutcome = MonthlyPayrollResult | ComputationFailure


__all__ = [
    "ComputationFailure",
    "EmployeeCompensationRecord",
    "INSURANCE_DEDUCTION",
    "LOAN_DEDUCTION",
    "MEDICAL_FUND_CONTRIBUTION",
    "MonthlyPayrollResult",
    "PENSION_CONTRIBUTION",
    "PayrollOutcome",
    "month_name",
]
