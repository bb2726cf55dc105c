"""Utilities for validating year configuration data and surfacing issues."""

from __future__ import annotations

import argparse
from decimal import Decimal
from typing import Mapping, Sequence

from kepayroll.backend.services.errors import UnsupportedTaxYear

from .schema import ConfigurationError, DeductionRuleConfig, PAYEConfig, ReliefConfig, TaxYearFile
from .year_config import available_years, build_tax_year_config, load_year_file

# Statutory levies every Kenyan payroll year must define.
REQUIRED_DEDUCTIONS = ("nssf", "shif", "housing_levy")


def _format_scope(scope: str, message: str) -> str:
    return f"{scope}: {message}"


def _validate_bands(paye: PAYEConfig) -> list[str]:
    errors: list[str] = []
    rates = [band.rate for band in paye.bands]

    if any(later < earlier for earlier, later in zip(rates, rates[1:])):
        errors.append(
            _format_scope("paye.bands", "marginal rates should not decrease between bands")
        )

    for band in paye.bands:
        if band.rate < 0 or band.rate > 1:
            errors.append(
                _format_scope("paye.bands", f"rate {band.rate} must be between 0 and 1")
            )

    return errors


def _validate_deductions(
    rules: Sequence[DeductionRuleConfig], caps: Mapping[str, Decimal]
) -> list[str]:
    errors: list[str] = []
    names = {rule.name for rule in rules}

    for required in REQUIRED_DEDUCTIONS:
        if required not in names:
            errors.append(
                _format_scope(
                    "statutory_deductions",
                    f"required deduction '{required}' is not configured",
                )
            )

    for rule in rules:
        if rule.rate <= 0:
            errors.append(
                _format_scope(
                    f"statutory_deductions.{rule.name}",
                    "rate must be greater than zero",
                )
            )
        if rule.cap is not None and rule.cap <= 0:
            errors.append(
                _format_scope(
                    f"statutory_deductions.{rule.name}",
                    "cap must be positive when provided",
                )
            )

    for name, cap in caps.items():
        if cap <= 0:
            errors.append(
                _format_scope(f"contribution_caps.{name}", "cap must be positive")
            )

    return errors


def _validate_reliefs(reliefs: ReliefConfig) -> list[str]:
    errors: list[str] = []

    if reliefs.personal_relief <= 0:
        errors.append(_format_scope("reliefs", "personal relief must be positive"))

    insurance = reliefs.insurance
    if insurance.rate < 0 or insurance.rate > 1:
        errors.append(
            _format_scope(
                "reliefs.insurance",
                f"rate {insurance.rate} must be between 0 and 1",
            )
        )
    if insurance.cap <= 0:
        errors.append(_format_scope("reliefs.insurance", "cap must be positive"))

    return errors


def _validate_minimum_wage(config: TaxYearFile) -> list[str]:
    errors: list[str] = []
    first_band = config.paye.bands[0].upper_bound
    if first_band is not None and config.minimum_wage >= first_band * 10:
        errors.append(
            _format_scope(
                "minimum_wage",
                "minimum wage looks implausibly large relative to the first tax band",
            )
        )
    return errors


def validate_year_configuration(config: TaxYearFile) -> list[str]:
    """Return a list of validation issues for the provided configuration."""

    errors: list[str] = []

    errors.extend(_validate_bands(config.paye))
    errors.extend(_validate_deductions(config.statutory_deductions, config.contribution_caps))
    errors.extend(_validate_reliefs(config.reliefs))
    errors.extend(_validate_minimum_wage(config))

    try:
        build_tax_year_config(config)
    except ValueError as error:
        errors.append(_format_scope("engine", str(error)))

    return errors


def validate_all_years(years: Sequence[int] | None = None) -> dict[int, list[str]]:
    """Validate all configured years and return issues keyed by year."""

    targets = years or available_years()
    results: dict[int, list[str]] = {}

    for year in targets:
        config = load_year_file(year)
        results[int(year)] = validate_year_configuration(config)

    return results


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Validate configured tax years and report issues helpful to contributors."
        )
    )
    parser.add_argument(
        "years",
        nargs="*",
        type=int,
        help="Specific years to validate (defaults to all configured years)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for running validations from the command line."""

    parser = _build_argument_parser()
    args = parser.parse_args(argv)
    years = args.years or available_years()

    if not years:
        parser.print_help()
        return 1

    exit_code = 0

    for year in years:
        try:
            config = load_year_file(year)
        except (FileNotFoundError, UnsupportedTaxYear, ConfigurationError) as error:
            print(f"[{year}] failed to load configuration: {error}")
            exit_code = 1
            continue

        issues = validate_year_configuration(config)
        if issues:
            exit_code = 1
            print(f"[{year}] {len(issues)} issue(s) detected:")
            for issue in issues:
                print(f"  - {issue}")
        else:
            print(f"[{year}] OK")

    return exit_code


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())
