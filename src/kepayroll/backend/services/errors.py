"""Typed failures raised by the payroll engine.

Two families matter to callers. ``PayrollComputationError`` subclasses describe
problems with a single employee's data; the batch processor and the annual
aggregator capture them per entry and keep going. Everything else propagates
and stops the computation that raised it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - only for static type checkers
    from .calculators.money import MoneyAmount


class PayrollError(Exception):
    """Base class for every error raised by the payroll engine."""


class PayrollComputationError(PayrollError, ValueError):
    """Caller-correctable failure tied to a single compensation record."""

    kind = "computation_error"


class InvalidInput(PayrollComputationError):
    """Compensation data is malformed or violates policy."""

    kind = "invalid_input"


class NegativeNetPay(PayrollComputationError):
    """Deductions exceed gross pay for the period."""

    kind = "negative_net_pay"

    def __init__(self, message: str, *, net_pay: MoneyAmount | None = None) -> None:
        super().__init__(message)
        self.net_pay = net_pay


class ReconciliationDefect(PayrollError, RuntimeError):
    """An internal total disagrees with the sum of its parts."""

    kind = "reconciliation_defect"


class UnsupportedTaxYear(PayrollError, LookupError):
    """No tax year configuration is registered for the requested year."""

    kind = "unsupported_tax_year"

    def __init__(self, year: int) -> None:
        super().__init__(f"No tax year configuration registered for {year}")
        self.year = year


__all__ = [
    "InvalidInput",
    "NegativeNetPay",
    "PayrollComputationError",
    "PayrollError",
    "ReconciliationDefect",
    "UnsupportedTaxYear",
]
