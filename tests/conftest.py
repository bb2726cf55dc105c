"""Shared fixtures for the payroll engine and HTTP API tests."""

import sys
from pathlib import Path

# ``pytest`` straight from a checkout: make ``src`` importable without an
# editable install.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import pytest  # noqa: E402
from flask import Flask  # noqa: E402
from flask.testing import FlaskClient  # noqa: E402

from kepayroll.backend.app import create_app  # noqa: E402
from kepayroll.backend.config.year_config import (  # noqa: E402
    TaxYearConfig,
    load_tax_year_config,
)
from kepayroll.backend.services.calculators.money import MoneyAmount  # noqa: E402
from kepayroll.backend.services.models import EmployeeCompensationRecord  # noqa: E402


def kes(value: str) -> MoneyAmount:
    """Shorthand for a KES amount parsed from a decimal string."""

    return MoneyAmount.from_decimal(value)


def make_record(
    employee_id: str = "E001",
    *,
    year: int = 2024,
    month: int = 1,
    basic_pay: str = "50000.00",
    **amounts: object,
) -> EmployeeCompensationRecord:
    """Build a compensation record; keyword amounts are decimal strings."""

    fields: dict[str, object] = {}
    for name, value in amounts.items():
        if isinstance(value, dict):
            fields[name] = {key: kes(amount) for key, amount in value.items()}
        elif value is None:
            fields[name] = None
        else:
            fields[name] = kes(str(value))
    return EmployeeCompensationRecord(
        employee_id=employee_id,
        tax_year=year,
        month=month,
        basic_pay=kes(basic_pay),
        **fields,
    )


@pytest.fixture()
def config_2024() -> TaxYearConfig:
    return load_tax_year_config(2024)


@pytest.fixture()
def config_2025() -> TaxYearConfig:
    return load_tax_year_config(2025)


@pytest.fixture()
def app() -> Flask:
    """Return a configured Flask application for integration tests."""

    application = create_app()
    application.config.update(TESTING=True)
    return application


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Provide a test client bound to the configured Flask app."""

    return app.test_client()
