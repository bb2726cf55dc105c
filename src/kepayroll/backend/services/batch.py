"""Fan the monthly calculator out across every employee in a pay period."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

from .calculators.totals import PayrollTotals, reduce_totals
from .errors import InvalidInput, PayrollComputationError
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

WORKERS_ENV = "KEPAYROLL_BATCH_WORKERS"


def _configured_workers() -> int | None:
    raw = os.getenv(WORKERS_ENV, "").strip()
    if not raw:
        return None
    try:
        workers = int(raw)
    except ValueError:
        _LOGGER.warning("Ignoring non-integer %s=%r", WORKERS_ENV, raw)
        return None
    return workers if workers > 0 else None


@dataclass(frozen=True)
class BatchResult:
    """Per-employee outcomes in input order plus totals over the successes."""

    tax_year: int
    month: int
    entries: tuple[PayrollOutcome, ...]
    totals: PayrollTotals
    failure_count: int

    @property
    def success_count(self) -> int:
        return len(self.entries) - self.failure_count

    @property
    def ready_for_disbursement(self) -> bool:
        return self.failure_count == 0

    def successes(self) -> list[tuple[int, MonthlyPayrollResult]]:
        return [
            (index, entry)
            for index, entry in enumerate(self.entries)
            if isinstance(entry, MonthlyPayrollResult)
        ]

    def failures(self) -> list[tuple[int, ComputationFailure]]:
        return [
            (index, entry)
            for index, entry in enumerate(self.entries)
            if isinstance(entry, ComputationFailure)
        ]


class PayrollBatchProcessor:
    """Computes a pay period for many employees concurrently.

    The shared :class:`TaxYearConfig` is immutable, so worker threads need no
    locking; totals are reduced only after every entry has completed.
    """

    def __init__(self, config: TaxYearConfig, *, max_workers: int | None = None) -> None:
        if max_workers is not None and max_workers <= 0:
            raise ValueError("max_workers must be positive when provided")
        self.config = config
        self.calculator = MonthlyPayrollCalculator(config)
        self._max_workers = max_workers

    def _worker_count(self, size: int) -> int:
        limit = self._max_workers or _configured_workers() or os.cpu_count() or 1
        return max(1, min(size, limit))

    def process(
        self,
        records: Sequence[EmployeeCompensationRecord],
        month: int | None = None,
    ) -> BatchResult:
        """Compute every record; ``month`` defaults to the first record's month."""

        records = list(records)
        if month is None:
            if not records:
                raise InvalidInput("A payroll batch needs a month or at least one record")
            month = records[0].month
        if not 1 <= month <= 12:
            raise InvalidInput(f"Month {month} is outside 1..12")

        rejections = self._pre_check(records, month)

        def _compute(index: int) -> PayrollOutcome:
            record = records[index]
            rejection = rejections.get(index)
            if rejection is not None:
                return ComputationFailure.from_error(
                    record.employee_id, rejection, month=record.month
                )
            try:
                return self.calculator.compute(record)
            except PayrollComputationError as error:
                _LOGGER.info(
                    "Payroll for %s in %04d-%02d failed (%s): %s",
                    record.employee_id,
                    record.tax_year,
                    record.month,
                    error.kind,
                    error,
                )
                return ComputationFailure.from_error(
                    record.employee_id, error, month=record.month
                )

        entries: tuple[PayrollOutcome, ...] = ()
        if records:
            with ThreadPoolExecutor(max_workers=self._worker_count(len(records))) as executor:
                # ``map`` yields in submission order, so entry ``i`` is record ``i``.
                entries = tuple(executor.map(_compute, range(len(records))))

        successes = [entry for entry in entries if isinstance(entry, MonthlyPayrollResult)]
        failure_count = len(entries) - len(successes)
        totals = reduce_totals(successes, self.config.currency)

        _LOGGER.info(
            "Processed payroll batch %04d-%02d: %d succeeded, %d failed",
            self.config.year,
            month,
            len(successes),
            failure_count,
        )

        return BatchResult(
            tax_year=self.config.year,
            month=month,
            entries=entries,
            totals=totals,
            failure_count=failure_count,
        )

    def _pre_check(
        self, records: Sequence[EmployeeCompensationRecord], month: int
    ) -> dict[int, InvalidInput]:
        """Flag records for another period and repeated employee ids."""

        rejections: dict[int, InvalidInput] = {}
        seen: set[str] = set()
        for index, record in enumerate(records):
            if record.period != (self.config.year, month):
                rejections[index] = InvalidInput(
                    f"Record for {record.tax_year}-{record.month:02d} does not belong to "
                    f"the {self.config.year}-{month:02d} pay period"
                )
            elif record.employee_id in seen:
                rejections[index] = InvalidInput(
                    f"Employee {record.employee_id} appears more than once in the batch"
                )
            else:
                seen.add(record.employee_id)
        return rejections


__all__ = ["BatchResult", "PayrollBatchProcessor", "WORKERS_ENV"]
