"""Orchestrate request validation, record building, and payroll calculations.

The calculation service turns JSON-like payloads into engine records, runs the
monthly calculator, the annual aggregator or the batch processor against the
configured tax year, and renders the outcome with money as decimal strings.
Profiling hooks and request validation live here so routes only deal with
HTTP concerns.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from contextlib import contextmanager
from time import perf_counter
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from kepayroll.backend.app.models import (
    AnnualTaxCardResponse,
    CompensationInput,
    PayrollBatchRequest,
    PayrollBatchResponse,
    PayslipRequest,
    PayslipResponse,
    TaxCardRequest,
    format_validation_error,
)
from kepayroll.backend.config.year_config import TaxYearConfig, load_tax_year_config

from .annual import AnnualTaxCardAggregator
from .batch import PayrollBatchProcessor
from .calculators.deductions import DeductionBreakdown
from .calculators.money import MoneyAmount
from .errors import InvalidInput
from .models import (
    ComputationFailure,
    EmployeeCompensationRecord,
    MonthlyPayrollResult,
    PayrollOutcome,
)
from .monthly import MonthlyPayrollCalculator

_LOGGER = logging.getLogger(__name__)

_RequestT = TypeVar("_RequestT", bound=BaseModel)

_OTHER_LABELS = {
    "loan": "Loan repayment",
    "insurance_premium": "Insurance premium",
}


def _profiling_enabled() -> bool:
    """Return ``True`` when calculation profiling should be captured."""

    flag = os.getenv("KEPAYROLL_PROFILE_CALCULATIONS", "")
    return flag.strip().lower() in {"1", "true", "yes", "on"}


@contextmanager
def _profile_section(name: str, store: dict[str, float] | None):
    """Capture the duration of a named section when profiling is enabled."""

    if store is None:
        yield
        return

    start = perf_counter()
    try:
        yield
    finally:
        store[name] = perf_counter() - start


def _validate_request(
    model: type[_RequestT], payload: Mapping[str, Any] | _RequestT
) -> _RequestT:
    if isinstance(payload, model):
        return payload
    if not isinstance(payload, Mapping):
        raise InvalidInput("Payload must be a mapping")
    if "year" not in payload:
        raise InvalidInput("Payload must include a tax year")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise InvalidInput(format_validation_error(exc)) from exc


def _money(value: Any, currency: str) -> MoneyAmount:
    # Sign is checked per record by the monthly calculator.
    return MoneyAmount.from_decimal(value, currency, allow_negative=True)


def _optional_money(value: Any, currency: str) -> MoneyAmount | None:
    if value is None:
        return None
    return _money(value, currency)


def _build_record(
    entry: CompensationInput,
    *,
    year: int,
    currency: str,
    employee_id: str | None = None,
    month: int | None = None,
) -> EmployeeCompensationRecord:
    resolved_employee = entry.employee_id or employee_id
    resolved_month = entry.month if entry.month is not None else month
    if not resolved_employee:
        raise InvalidInput("Compensation entries require an employee_id")
    if resolved_month is None:
        raise InvalidInput(f"Compensation entry for {resolved_employee} requires a month")

    return EmployeeCompensationRecord(
        employee_id=resolved_employee,
        tax_year=year,
        month=resolved_month,
        basic_pay=_money(entry.basic_pay, currency),
        allowances={
            name: _money(amount, currency) for name, amount in entry.allowances.items()
        },
        overtime_pay=_optional_money(entry.overtime_pay, currency),
        loan_deduction=_optional_money(entry.loan_deduction, currency),
        insurance_premium=_optional_money(entry.insurance_premium, currency),
        other_deductions={
            name: _money(amount, currency)
            for name, amount in entry.other_deductions.items()
        },
        pension_contribution=_optional_money(entry.pension_contribution, currency),
        medical_fund_contribution=_optional_money(
            entry.medical_fund_contribution, currency
        ),
    )


def _deduction_lines(
    breakdown: DeductionBreakdown, config: TaxYearConfig
) -> list[dict[str, str]]:
    lines: list[dict[str, str]] = []
    for name, amount in breakdown:
        label = _OTHER_LABELS.get(name) or config.label_for(name)
        lines.append(
            {"name": name, "label": label, "amount": amount.to_decimal_string()}
        )
    return lines


def serialise_result(
    result: MonthlyPayrollResult, config: TaxYearConfig
) -> dict[str, Any]:
    """Render a payslip with every amount as a decimal string."""

    return {
        "status": "ok",
        "employee_id": result.employee_id,
        "tax_year": result.tax_year,
        "month": result.month,
        "month_name": result.month_name,
        "currency": result.gross_pay.currency,
        "basic_pay": result.basic_pay.to_decimal_string(),
        "allowances_total": result.allowances_total.to_decimal_string(),
        "overtime_pay": result.overtime_pay.to_decimal_string(),
        "gross_pay": result.gross_pay.to_decimal_string(),
        "statutory_deductions": _deduction_lines(result.statutory, config),
        "statutory_total": result.statutory.total.to_decimal_string(),
        "chargeable_pay": result.chargeable_pay.to_decimal_string(),
        "tax_before_relief": result.tax_before_relief.to_decimal_string(),
        "personal_relief": result.personal_relief.to_decimal_string(),
        "insurance_relief": result.insurance_relief.to_decimal_string(),
        "reliefs_applied": result.reliefs_applied.to_decimal_string(),
        "paye": result.paye.to_decimal_string(),
        "other_deductions": _deduction_lines(result.other_deductions, config),
        "other_deductions_total": result.other_deductions.total.to_decimal_string(),
        "total_deductions": result.total_deductions.to_decimal_string(),
        "net_pay": result.net_pay.to_decimal_string(),
    }


def serialise_failure(failure: ComputationFailure) -> dict[str, Any]:
    return {
        "status": "failed",
        "employee_id": failure.employee_id,
        "month": failure.month,
        "kind": failure.kind,
        "reason": failure.reason,
    }


def _serialise_outcome(outcome: PayrollOutcome, config: TaxYearConfig) -> dict[str, Any]:
    if isinstance(outcome, MonthlyPayrollResult):
        return serialise_result(outcome, config)
    return serialise_failure(outcome)


def _meta(config: TaxYearConfig, timings: dict[str, float] | None) -> dict[str, Any]:
    meta: dict[str, Any] = {"year": config.year, "currency": config.currency}
    if timings is not None:
        meta["timings_ms"] = {
            name: round(duration * 1000, 3) for name, duration in timings.items()
        }
        _LOGGER.debug("payroll calculation timings (ms): %s", meta["timings_ms"])
    return meta


def calculate_payslip(payload: Mapping[str, Any] | PayslipRequest) -> dict[str, Any]:
    """Compute one monthly payslip.

    Computation failures (invalid data, negative net pay) propagate to the
    caller as :class:`~kepayroll.backend.services.errors.PayrollComputationError`.
    """

    request = _validate_request(PayslipRequest, payload)
    timings: dict[str, float] | None = {} if _profiling_enabled() else None
    overall_start = perf_counter()

    config = load_tax_year_config(request.year)
    record = _build_record(request, year=request.year, currency=config.currency)

    with _profile_section("monthly", timings):
        result = MonthlyPayrollCalculator(config).compute(record)

    if timings is not None:
        timings["total"] = perf_counter() - overall_start

    response = PayslipResponse.model_validate(
        {"payslip": serialise_result(result, config), "meta": _meta(config, timings)}
    )
    return response.model_dump(mode="json", exclude_none=True)


def calculate_tax_card(payload: Mapping[str, Any] | TaxCardRequest) -> dict[str, Any]:
    """Aggregate twelve monthly entries into an annual tax card."""

    request = _validate_request(TaxCardRequest, payload)
    timings: dict[str, float] | None = {} if _profiling_enabled() else None
    overall_start = perf_counter()

    config = load_tax_year_config(request.year)
    records = [
        _build_record(
            entry,
            year=request.year,
            currency=config.currency,
            employee_id=request.employee_id,
            month=index + 1,
        )
        for index, entry in enumerate(request.months)
    ]

    with _profile_section("annual", timings):
        card = AnnualTaxCardAggregator(config).aggregate(records)

    if timings is not None:
        timings["total"] = perf_counter() - overall_start

    response = AnnualTaxCardResponse.model_validate(
        {
            "employee_id": card.employee_id,
            "tax_year": card.tax_year,
            "incomplete": card.incomplete,
            "months": [_serialise_outcome(entry, config) for entry in card.entries],
            "running_totals": [totals.as_dict() for totals in card.running_totals],
            "totals": card.totals.as_dict(),
            "meta": _meta(config, timings),
        }
    )
    return response.model_dump(mode="json", exclude_none=True)


def calculate_payroll_batch(
    payload: Mapping[str, Any] | PayrollBatchRequest,
) -> dict[str, Any]:
    """Process every employee in a pay period and total the successes."""

    request = _validate_request(PayrollBatchRequest, payload)
    timings: dict[str, float] | None = {} if _profiling_enabled() else None
    overall_start = perf_counter()

    config = load_tax_year_config(request.year)
    records = [
        _build_record(
            entry, year=request.year, currency=config.currency, month=request.month
        )
        for entry in request.employees
    ]

    with _profile_section("batch", timings):
        batch = PayrollBatchProcessor(config).process(records, month=request.month)

    if timings is not None:
        timings["total"] = perf_counter() - overall_start

    response = PayrollBatchResponse.model_validate(
        {
            "tax_year": batch.tax_year,
            "month": batch.month,
            "entries": [_serialise_outcome(entry, config) for entry in batch.entries],
            "totals": batch.totals.as_dict(),
            "success_count": batch.success_count,
            "failure_count": batch.failure_count,
            "ready_for_disbursement": batch.ready_for_disbursement,
            "meta": _meta(config, timings),
        }
    )
    return response.model_dump(mode="json", exclude_none=True)


__all__ = [
    "calculate_payroll_batch",
    "calculate_payslip",
    "calculate_tax_card",
    "serialise_failure",
    "serialise_result",
]
