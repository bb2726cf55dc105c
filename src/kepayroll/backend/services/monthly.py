"""Compute one employee's payslip for one month.

The pipeline runs gross pay, statutory deductions, chargeable pay, PAYE,
reliefs, pass-through deductions and finally net pay. Data problems raise
:class:`InvalidInput` or :class:`NegativeNetPay`; the caller decides whether to
capture them (batches, annual cards) or let them propagate.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .calculators.deductions import DeductionBreakdown
from .calculators.money import MoneyAmount, sum_amounts
from .errors import InvalidInput, NegativeNetPay, ReconciliationDefect
from .models import (
    INSURANCE_DEDUCTION,
    LOAN_DEDUCTION,
    EmployeeCompensationRecord,
    MonthlyPayrollResult,
)

if TYPE_CHECKING:  # pragma: no cover - only for static type checkers
    from kepayroll.backend.config.year_config import TaxYearConfig

_LOGGER = logging.getLogger(__name__)


class MonthlyPayrollCalculator:
    """Runs the monthly payroll pipeline against an explicit tax year config."""

    def __init__(self, config: TaxYearConfig) -> None:
        self.config = config
        self._paye = config.paye_engine

    def compute(self, record: EmployeeCompensationRecord) -> MonthlyPayrollResult:
        self._validate_record(record)
        currency = self.config.currency

        allowances_total = sum_amounts(record.allowances.values(), currency)
        overtime = record.overtime_pay or MoneyAmount.zero(currency)
        gross_pay = record.basic_pay.add(allowances_total).add(overtime)
        if gross_pay < self.config.minimum_wage:
            raise InvalidInput(
                f"Gross pay {gross_pay} for employee {record.employee_id} is below the "
                f"statutory minimum wage of {self.config.minimum_wage}"
            )

        statutory = self.config.deductions.compute(
            gross_pay, record.elected_contributions()
        )

        chargeable_pay = gross_pay.subtract(statutory.total)
        if chargeable_pay.is_negative():
            elected = record.elected_contributions()
            if elected:
                raise InvalidInput(
                    f"Elected contributions ({', '.join(sorted(elected))}) for employee "
                    f"{record.employee_id} take statutory deductions {statutory.total} "
                    f"above gross pay {gross_pay}"
                )
            raise ReconciliationDefect(
                f"Statutory deductions {statutory.total} exceed gross pay {gross_pay}"
            )

        paye = self._paye.compute(chargeable_pay, record.insurance_premium)
        other = self._other_deductions(record)

        net_pay = (
            gross_pay.subtract(statutory.total)
            .subtract(paye.final_tax)
            .subtract(other.total)
        )
        if net_pay.is_negative():
            raise NegativeNetPay(
                f"Net pay for employee {record.employee_id} would be {net_pay}; "
                "deductions exceed pay for the period",
                net_pay=net_pay,
            )

        result = MonthlyPayrollResult(
            employee_id=record.employee_id,
            tax_year=record.tax_year,
            month=record.month,
            basic_pay=record.basic_pay,
            allowances_total=allowances_total,
            overtime_pay=overtime,
            gross_pay=gross_pay,
            statutory=statutory,
            chargeable_pay=chargeable_pay,
            tax_before_relief=paye.tax_before_relief,
            personal_relief=paye.personal_relief,
            insurance_relief=paye.insurance_relief,
            reliefs_applied=paye.reliefs_applied,
            paye=paye.final_tax,
            other_deductions=other,
            net_pay=net_pay,
        )
        _LOGGER.debug(
            "Computed payroll for %s %04d-%02d: gross=%s paye=%s net=%s",
            record.employee_id,
            record.tax_year,
            record.month,
            gross_pay.to_decimal_string(),
            result.paye.to_decimal_string(),
            net_pay.to_decimal_string(),
        )
        return result

    def _validate_record(self, record: EmployeeCompensationRecord) -> None:
        if not record.employee_id or not str(record.employee_id).strip():
            raise InvalidInput("Compensation records require an employee id")
        if record.tax_year != self.config.year:
            raise InvalidInput(
                f"Record for tax year {record.tax_year} cannot be computed with the "
                f"{self.config.year} configuration"
            )
        if not 1 <= record.month <= 12:
            raise InvalidInput(f"Month {record.month} is outside 1..12")

        currency = self.config.currency
        amounts: list[tuple[str, MoneyAmount | None]] = [
            ("basic_pay", record.basic_pay),
            ("overtime_pay", record.overtime_pay),
            ("loan_deduction", record.loan_deduction),
            ("insurance_premium", record.insurance_premium),
            ("pension_contribution", record.pension_contribution),
            ("medical_fund_contribution", record.medical_fund_contribution),
        ]
        amounts.extend(
            (f"allowances.{name}", amount) for name, amount in record.allowances.items()
        )
        amounts.extend(
            (f"other_deductions.{name}", amount)
            for name, amount in record.other_deductions.items()
        )
        for label, amount in amounts:
            if amount is None:
                continue
            if amount.currency != currency:
                raise InvalidInput(
                    f"{label} is in {amount.currency}; expected {currency}"
                )
            if amount.is_negative():
                raise InvalidInput(f"{label} cannot be negative")

        if record.basic_pay.minor_units <= 0:
            raise InvalidInput(
                f"Basic pay for employee {record.employee_id} must be greater than zero"
            )

        for name in record.other_deductions:
            if name in (LOAN_DEDUCTION, INSURANCE_DEDUCTION):
                raise InvalidInput(f"'{name}' must be supplied through its dedicated field")

        for name in record.elected_contributions():
            if self.config.deductions.cap_for(name) is None:
                raise InvalidInput(
                    f"No contribution cap configured for '{name}' in {self.config.year}"
                )

    def _other_deductions(self, record: EmployeeCompensationRecord) -> DeductionBreakdown:
        entries: list[tuple[str, MoneyAmount]] = []
        if record.loan_deduction is not None and not record.loan_deduction.is_zero():
            entries.append((LOAN_DEDUCTION, record.loan_deduction))
        if record.insurance_premium is not None and not record.insurance_premium.is_zero():
            entries.append((INSURANCE_DEDUCTION, record.insurance_premium))
        for name, amount in record.other_deductions.items():
            if not amount.is_zero():
                entries.append((name, amount))
        return DeductionBreakdown.from_amounts(entries, self.config.currency)


__all__ = ["MonthlyPayrollCalculator"]
