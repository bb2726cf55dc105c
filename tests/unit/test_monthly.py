"""Unit coverage for the monthly payroll pipeline."""

from __future__ import annotations

import logging
from dataclasses import replace

import pytest

from conftest import kes, make_record
from kepayroll.backend.config.year_config import TaxYearConfig
from kepayroll.backend.services.errors import (
    InvalidInput,
    NegativeNetPay,
    ReconciliationDefect,
)
from kepayroll.backend.services.monthly import MonthlyPayrollCalculator


def test_standard_payslip(config_2024: TaxYearConfig) -> None:
    result = MonthlyPayrollCalculator(config_2024).compute(make_record())

    assert result.gross_pay == kes("50000.00")
    assert result.statutory.total == kes("4285.00")
    assert result.chargeable_pay == kes("45715.00")
    assert result.tax_before_relief == kes("8497.85")
    assert result.personal_relief == kes("2400.00")
    assert result.paye == kes("6097.85")
    assert result.other_deductions.total == kes("0.00")
    assert result.net_pay == kes("39617.15")
    assert result.month_name == "January"
    assert result.total_deductions == kes("10382.85")


def test_gross_includes_allowances_and_overtime(config_2024: TaxYearConfig) -> None:
    record = make_record(
        basic_pay="40000.00",
        allowances={"house": "8000.00", "commuter": "2000.00"},
        overtime_pay="0",
    )

    result = MonthlyPayrollCalculator(config_2024).compute(record)

    assert result.allowances_total == kes("10000.00")
    assert result.gross_pay == kes("50000.00")
    assert result.paye == kes("6097.85")


def test_insurance_premium_is_relief_and_deduction(config_2024: TaxYearConfig) -> None:
    record = make_record(insurance_premium="2000.00", loan_deduction="1000.00")

    result = MonthlyPayrollCalculator(config_2024).compute(record)

    assert result.insurance_relief == kes("300.00")
    assert result.paye == kes("5797.85")
    assert [name for name, _ in result.other_deductions] == ["loan", "insurance_premium"]
    assert result.net_pay == kes("36917.15")


def test_pension_contribution_reduces_chargeable_pay(config_2024: TaxYearConfig) -> None:
    record = make_record(pension_contribution="25000.00")

    result = MonthlyPayrollCalculator(config_2024).compute(record)

    assert result.statutory.get("pension_contribution") == kes("20000.00")
    assert result.chargeable_pay == kes("25715.00")
    assert result.tax_before_relief == kes("2828.75")
    assert result.paye == kes("428.75")
    assert result.net_pay == kes("25286.25")


def test_elections_above_gross_pay_are_invalid_input(config_2024: TaxYearConfig) -> None:
    record = make_record(basic_pay="16000.00", pension_contribution="20000.00")

    with pytest.raises(InvalidInput, match="pension_contribution") as excinfo:
        MonthlyPayrollCalculator(config_2024).compute(record)

    assert "21640.00" in str(excinfo.value)


def test_reliefs_floor_tax_at_zero(config_2024: TaxYearConfig) -> None:
    result = MonthlyPayrollCalculator(config_2024).compute(
        make_record(basic_pay="20000.00")
    )

    assert result.tax_before_relief == kes("1795.00")
    assert result.reliefs_applied == kes("1795.00")
    assert result.paye == kes("0.00")
    assert result.net_pay == kes("17950.00")


def test_negative_net_pay_is_a_typed_failure(config_2024: TaxYearConfig) -> None:
    record = make_record(basic_pay="20000.00", loan_deduction="30000.00")

    with pytest.raises(NegativeNetPay) as excinfo:
        MonthlyPayrollCalculator(config_2024).compute(record)

    assert excinfo.value.net_pay is not None
    assert excinfo.value.net_pay.to_decimal_string() == "-12050.00"
    assert excinfo.value.kind == "negative_net_pay"


def test_gross_below_minimum_wage_is_rejected(config_2024: TaxYearConfig) -> None:
    with pytest.raises(InvalidInput, match="minimum wage"):
        MonthlyPayrollCalculator(config_2024).compute(make_record(basic_pay="15000.00"))


def test_minimum_wage_follows_tax_year(config_2025: TaxYearConfig) -> None:
    record = make_record(year=2025, basic_pay="16000.00")

    with pytest.raises(InvalidInput):
        MonthlyPayrollCalculator(config_2025).compute(record)


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"year": 2025}, "tax year"),
        ({"month": 13}, "outside"),
        ({"basic_pay": "0.00"}, "greater than zero"),
        ({"employee_id": " "}, "employee id"),
        ({"other_deductions": {"loan": "10.00"}}, "dedicated field"),
    ],
)
def test_invalid_records_are_rejected(
    config_2024: TaxYearConfig, overrides: dict[str, object], message: str
) -> None:
    employee_id = overrides.pop("employee_id", "E001")
    record = make_record(employee_id, **overrides)  # type: ignore[arg-type]

    with pytest.raises(InvalidInput, match=message):
        MonthlyPayrollCalculator(config_2024).compute(record)


def test_computation_is_logged_at_debug(
    config_2024: TaxYearConfig, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.DEBUG, logger="kepayroll.backend.services.monthly")

    MonthlyPayrollCalculator(config_2024).compute(make_record("E042", month=3))

    assert any("E042" in message and "2024-03" in message for message in caplog.messages)


def test_result_rejects_figures_that_do_not_add_up(config_2024: TaxYearConfig) -> None:
    result = MonthlyPayrollCalculator(config_2024).compute(make_record())

    with pytest.raises(ReconciliationDefect):
        replace(result, net_pay=result.net_pay.add(kes("0.01")))
    with pytest.raises(ReconciliationDefect):
        replace(result, paye=result.paye.add(kes("1.00")))
