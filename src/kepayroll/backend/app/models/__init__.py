"""Typed request/response models shared by the payroll routes and services.

Requests are validated here before anything reaches the engine, so the engine
only ever sees well-typed :class:`~decimal.Decimal` amounts.
"""

from .api import (
    AnnualTaxCardResponse,
    BatchEntry,
    CompensationInput,
    DeductionLine,
    FailureEntry,
    MoneyValue,
    PayrollBatchRequest,
    PayrollBatchResponse,
    PayslipEntry,
    PayslipRequest,
    PayslipResponse,
    ResponseMeta,
    TaxCardRequest,
    format_validation_error,
)

__all__ = [
    "AnnualTaxCardResponse",
    "BatchEntry",
    "CompensationInput",
    "DeductionLine",
    "FailureEntry",
    "MoneyValue",
    "PayrollBatchRequest",
    "PayrollBatchResponse",
    "PayslipEntry",
    "PayslipRequest",
    "PayslipResponse",
    "ResponseMeta",
    "TaxCardRequest",
    "format_validation_error",
]
