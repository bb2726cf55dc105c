"""Payroll engine: monthly payslips, annual tax cards, and batches.

The JSON-facing helpers live in :mod:`.calculation_service` and are imported
from there directly because they depend on the configuration loaders.
"""

from .annual import AnnualTaxCard, AnnualTaxCardAggregator
from .batch import BatchResult, PayrollBatchProcessor
from .errors import (
    InvalidInput,
    NegativeNetPay,
    PayrollComputationError,
    PayrollError,
    ReconciliationDefect,
    UnsupportedTaxYear,
)
from .models import ComputationFailure, EmployeeCompensationRecord, MonthlyPayrollResult
from .monthly import MonthlyPayrollCalculator

__all__ = [
    "AnnualTaxCard",
    "AnnualTaxCardAggregator",
    "BatchResult",
    "ComputationFailure",
    "EmployeeCompensationRecord",
    "InvalidInput",
    "MonthlyPayrollCalculator",
    "MonthlyPayrollResult",
    "NegativeNetPay",
    "PayrollBatchProcessor",
    "PayrollComputationError",
    "PayrollError",
    "ReconciliationDefect",
    "UnsupportedTaxYear",
]
