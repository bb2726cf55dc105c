from __future__ import annotations

from decimal import Decimal

import pytest

from kepayroll.backend.config.validator import (
    main,
    validate_all_years,
    validate_year_configuration,
)
from kepayroll.backend.config.year_config import load_year_file


def test_current_configurations_are_valid() -> None:
    results = validate_all_years()
    assert set(results) == {2024, 2025}
    assert all(not issues for issues in results.values()), results


def test_validator_flags_missing_statutory_levy() -> None:
    config = load_year_file(2024)
    broken = config.model_copy(
        update={
            "statutory_deductions": [
                rule for rule in config.statutory_deductions if rule.name != "shif"
            ]
        }
    )

    errors = validate_year_configuration(broken)

    assert any("'shif'" in error for error in errors)


def test_validator_flags_decreasing_marginal_rates() -> None:
    config = load_year_file(2024)
    bands = list(config.paye.bands)
    bands[1] = bands[1].model_copy(update={"rate": Decimal("0.05")})
    broken = config.model_copy(
        update={"paye": config.paye.model_copy(update={"bands": bands})}
    )

    errors = validate_year_configuration(broken)

    assert any("paye.bands" in error and "decrease" in error for error in errors)


def test_validator_flags_invalid_relief_rate() -> None:
    config = load_year_file(2025)
    insurance = config.reliefs.insurance.model_copy(update={"rate": Decimal("1.5")})
    broken = config.model_copy(
        update={"reliefs": config.reliefs.model_copy(update={"insurance": insurance})}
    )

    errors = validate_year_configuration(broken)

    assert any("reliefs.insurance" in error and "between 0 and 1" in error for error in errors)


def test_validator_reports_engine_construction_failures() -> None:
    config = load_year_file(2024)
    bands = list(config.paye.bands)
    bands[-1] = bands[-1].model_copy(update={"rate": Decimal("2")})
    broken = config.model_copy(
        update={"paye": config.paye.model_copy(update={"bands": bands})}
    )

    errors = validate_year_configuration(broken)

    assert any(error.startswith("engine:") for error in errors)


def test_cli_reports_ok_for_each_year(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main([])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "[2024] OK" in output
    assert "[2025] OK" in output


def test_cli_fails_for_unknown_year(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(["1999"])

    assert exit_code == 1
    assert "failed to load configuration" in capsys.readouterr().out
