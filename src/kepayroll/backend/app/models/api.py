"""Pydantic models describing the public API surface."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)
from typing_extensions import Self

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


def _coerce_money(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("money amounts must be numbers or decimal strings")
    if isinstance(value, float):
        # Shortest repr: 1500.5 stays 1500.5.
        return str(value)
    if isinstance(value, str):
        return value.strip().replace(",", "")
    return value


def _check_money(value: Decimal) -> Decimal:
    if not value.is_finite():
        raise ValueError("money amounts must be finite")
    exponent = value.normalize().as_tuple().exponent
    if isinstance(exponent, int) and exponent < -2:
        raise ValueError("money amounts allow at most 2 decimal places")
    return value


MoneyValue = Annotated[
    Decimal, BeforeValidator(_coerce_money), AfterValidator(_check_money)
]


class CompensationInput(BaseModel):
    """One employee's pay for one month as submitted by a client."""

    model_config = ConfigDict(extra="forbid")

    employee_id: str | None = Field(default=None, min_length=1)
    month: int | None = Field(default=None, ge=1, le=12)
    basic_pay: MoneyValue
    allowances: dict[str, MoneyValue] = Field(default_factory=dict)
    overtime_pay: MoneyValue | None = None
    loan_deduction: MoneyValue | None = None
    insurance_premium: MoneyValue | None = None
    other_deductions: dict[str, MoneyValue] = Field(default_factory=dict)
    pension_contribution: MoneyValue | None = None
    medical_fund_contribution: MoneyValue | None = None


class PayslipRequest(CompensationInput):
    """Request body for a single monthly payslip."""

    year: int = Field(..., ge=2000, le=2100)
    employee_id: str = Field(..., min_length=1)
    month: int = Field(..., ge=1, le=12)


class TaxCardRequest(BaseModel):
    """Twelve months of pay for one employee."""

    model_config = ConfigDict(extra="forbid")

    year: int = Field(..., ge=2000, le=2100)
    employee_id: str = Field(..., min_length=1)
    months: list[CompensationInput] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _align_entries(self) -> Self:
        for index, entry in enumerate(self.months):
            if entry.employee_id is not None and entry.employee_id != self.employee_id:
                raise ValueError(
                    f"months.{index}.employee_id must match the tax card employee"
                )
        return self


class PayrollBatchRequest(BaseModel):
    """All employees to be paid for one month."""

    model_config = ConfigDict(extra="forbid")

    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)
    employees: list[CompensationInput] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _require_employee_ids(self) -> Self:
        for index, entry in enumerate(self.employees):
            if entry.employee_id is None:
                raise ValueError(f"employees.{index}.employee_id is required")
        return self


class DeductionLine(BaseModel):
    """Named deduction amount rendered for clients."""

    model_config = ConfigDict(extra="forbid")

    name: str
    label: str
    amount: str


class PayslipEntry(BaseModel):
    """Serialised monthly payroll result."""

    model_config = ConfigDict(extra="forbid")

    status: str = "ok"
    employee_id: str
    tax_year: int
    month: int
    month_name: str
    currency: str
    basic_pay: str
    allowances_total: str
    overtime_pay: str
    gross_pay: str
    statutory_deductions: list[DeductionLine]
    statutory_total: str
    chargeable_pay: str
    tax_before_relief: str
    personal_relief: str
    insurance_relief: str
    reliefs_applied: str
    paye: str
    other_deductions: list[DeductionLine]
    other_deductions_total: str
    total_deductions: str
    net_pay: str


class FailureEntry(BaseModel):
    """Serialised per-entry failure."""

    model_config = ConfigDict(extra="forbid")

    status: str = "failed"
    employee_id: str
    month: int | None = None
    kind: str
    reason: str


BatchEntry = PayslipEntry | FailureEntry


class ResponseMeta(BaseModel):
    """Metadata returned alongside every calculation."""

    model_config = ConfigDict(extra="forbid")

    year: int
    currency: str
    timings_ms: dict[str, float] | None = None


class PayslipResponse(BaseModel):
    """Serialised single payslip."""

    model_config = ConfigDict(extra="forbid")

    payslip: PayslipEntry
    meta: ResponseMeta


class AnnualTaxCardResponse(BaseModel):
    """Serialised P9 card."""

    model_config = ConfigDict(extra="forbid")

    employee_id: str
    tax_year: int
    incomplete: bool
    months: list[BatchEntry]
    running_totals: list[dict[str, Any]]
    totals: dict[str, Any]
    meta: ResponseMeta


class PayrollBatchResponse(BaseModel):
    """Serialised batch outcome."""

    model_config = ConfigDict(extra="forbid")

    tax_year: int
    month: int
    entries: list[BatchEntry]
    totals: dict[str, Any]
    success_count: int
    failure_count: int
    ready_for_disbursement: bool
    meta: ResponseMeta


def format_validation_error(error: ValidationError) -> str:
    """Return a concise human-readable description of validation issues."""

    messages: list[str] = []
    for issue in error.errors():
        location = ".".join(str(part) for part in issue.get("loc", ()))
        message = issue.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        if location:
            messages.append(f"{location}: {message}")
        else:
            messages.append(message)

    details = "; ".join(messages) if messages else str(error)
    return f"Invalid payroll payload: {details}"
