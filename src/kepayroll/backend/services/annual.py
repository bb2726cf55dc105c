"""Aggregate twelve monthly payslips into an annual tax deduction card (P9)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

from .calculators.totals import PayrollTotals, reduce_totals
from .errors import InvalidInput, PayrollComputationError, ReconciliationDefect
from .models import (
    ComputationFailure,
    EmployeeCompensationRecord,
    MonthlyPayrollResult,
    PayrollOutcome,
)
from .monthly import MonthlyPayrollCalculator

if TYPE_CHECKING:  # pragma: no cover - only for static type checkers
    from kepayroll.backend.config.year_config import TaxYearConfig

_LOGGER = logging.getLogger(__name__)

MONTHS_PER_YEAR = 12


@dataclass(frozen=True)
class AnnualTaxCard:
    """Twelve monthly outcomes with cumulative and year-level totals.

    ``running_totals[i]`` holds the cumulative figures up to and including
    month ``i + 1``; failed months carry the previous month's figures forward.
    """

    employee_id: str
    tax_year: int
    currency: str
    entries: tuple[PayrollOutcome, ...]
    running_totals: tuple[PayrollTotals, ...]
    totals: PayrollTotals
    incomplete: bool

    @property
    def results(self) -> list[MonthlyPayrollResult]:
        return [entry for entry in self.entries if isinstance(entry, MonthlyPayrollResult)]

    @property
    def failures(self) -> list[ComputationFailure]:
        return [entry for entry in self.entries if isinstance(entry, ComputationFailure)]

    def entry_for(self, month: int) -> PayrollOutcome:
        return self.entries[month - 1]


class AnnualTaxCardAggregator:
    """Builds :class:`AnnualTaxCard` instances for a single tax year."""

    def __init__(self, config: TaxYearConfig) -> None:
        self.config = config
        self.calculator = MonthlyPayrollCalculator(config)

    def aggregate(self, records: Sequence[EmployeeCompensationRecord]) -> AnnualTaxCard:
        self._validate_sequence(records)
        employee_id = records[0].employee_id
        currency = self.config.currency

        entries: list[PayrollOutcome] = []
        running = PayrollTotals.empty(currency)
        running_totals: list[PayrollTotals] = []

        for record in records:
            try:
                result = self.calculator.compute(record)
            except PayrollComputationError as error:
                _LOGGER.warning(
                    "Month %02d of %s for %s failed (%s): %s",
                    record.month,
                    record.tax_year,
                    employee_id,
                    error.kind,
                    error,
                )
                entries.append(
                    ComputationFailure.from_error(employee_id, error, month=record.month)
                )
            else:
                entries.append(result)
                running = running.add(result)
            running_totals.append(running)

        successes = [entry for entry in entries if isinstance(entry, MonthlyPayrollResult)]
        recomputed = reduce_totals(successes, currency)
        if recomputed != running:
            raise ReconciliationDefect(
                f"Annual totals for {employee_id} in {self.config.year} do not match "
                "the sum of the monthly figures"
            )

        incomplete = len(successes) != MONTHS_PER_YEAR
        if incomplete:
            _LOGGER.info(
                "Annual tax card for %s in %s is incomplete (%d of %d months)",
                employee_id,
                self.config.year,
                len(successes),
                MONTHS_PER_YEAR,
            )

        return AnnualTaxCard(
            employee_id=employee_id,
            tax_year=self.config.year,
            currency=currency,
            entries=tuple(entries),
            running_totals=tuple(running_totals),
            totals=recomputed,
            incomplete=incomplete,
        )

    def _validate_sequence(self, records: Sequence[EmployeeCompensationRecord]) -> None:
        if len(records) != MONTHS_PER_YEAR:
            raise InvalidInput(
                f"An annual tax card needs {MONTHS_PER_YEAR} monthly records, "
                f"received {len(records)}"
            )

        months = [record.month for record in records]
        if months != list(range(1, MONTHS_PER_YEAR + 1)):
            raise InvalidInput("Monthly records must cover January to December in order")

        employees = {record.employee_id for record in records}
        if len(employees) != 1:
            raise InvalidInput("All monthly records must belong to the same employee")

        years = {record.tax_year for record in records}
        if years != {self.config.year}:
            raise InvalidInput(
                f"All monthly records must belong to tax year {self.config.year}"
            )


__all__ = ["AnnualTaxCard", "AnnualTaxCardAggregator", "MONTHS_PER_YEAR"]
