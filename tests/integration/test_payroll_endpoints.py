"""Integration tests for the payroll calculation REST endpoints."""

from __future__ import annotations

import json
import logging
from http import HTTPStatus
from pathlib import Path
from typing import Dict, Iterable

import pytest
from flask.testing import FlaskClient

from kepayroll.backend.services import annual
from kepayroll.backend.services.calculators.totals import PayrollTotals

DATA_PATH = Path(__file__).resolve().parents[1] / "data" / "payslip_scenarios.json"


def _load_scenarios() -> Iterable[Dict[str, object]]:
    with DATA_PATH.open("r", encoding="utf-8") as handle:
        return json.load(handle)


@pytest.mark.parametrize("scenario", _load_scenarios(), ids=lambda item: item["name"])
def test_payslip_endpoint_matches_scenarios(
    client: FlaskClient, scenario: Dict[str, object]
) -> None:
    """Each worked payslip should remain stable over time."""

    response = client.post("/api/v1/payslips", json=scenario["payload"])
    assert response.status_code == HTTPStatus.OK

    payslip = response.get_json()["payslip"]
    for key, value in scenario["expectations"].items():
        assert payslip[key] == value, key


def test_payslip_endpoint_rejects_malformed_json(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/payslips", data="{", content_type="application/json"
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.get_json()["error"] == "bad_request"


def test_payslip_endpoint_returns_validation_error(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/payslips",
        json={"year": 2024, "employee_id": "E001", "month": 1, "basic_pay": "-5"},
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST
    payload = response.get_json()
    assert payload["error"] == "validation_error"
    assert "basic_pay" in payload["message"]


def test_payslip_endpoint_reads_year_from_query(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/payslips?year=2025",
        json={"employee_id": "E001", "month": 1, "basic_pay": "100000"},
    )

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert payload["meta"]["year"] == 2025
    assert payload["payslip"]["statutory_deductions"][0]["amount"] == "4320.00"


def test_payslip_endpoint_reports_negative_net_pay(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/payslips",
        json={
            "year": 2024,
            "employee_id": "E001",
            "month": 1,
            "basic_pay": "20000",
            "loan_deduction": "30000",
        },
    )

    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY
    payload = response.get_json()
    assert payload["error"] == "negative_net_pay"
    assert payload["net_pay"] == "-12050.00"


def test_payslip_endpoint_rejects_unknown_year(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/payslips",
        json={"year": 2031, "employee_id": "E001", "month": 1, "basic_pay": "50000"},
    )

    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.get_json()["error"] == "unsupported_tax_year"


def test_tax_card_endpoint_aggregates_year(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/tax-cards",
        json={
            "year": 2024,
            "employee_id": "E001",
            "months": [{"basic_pay": "50000"} for _ in range(12)],
        },
    )

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert payload["incomplete"] is False
    assert payload["totals"]["paye"] == "73174.20"
    assert payload["running_totals"][0]["paye"] == "6097.85"
    assert [entry["month_name"] for entry in payload["months"]][:2] == [
        "January",
        "February",
    ]


def test_tax_card_endpoint_requires_twelve_months(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/tax-cards",
        json={
            "year": 2024,
            "employee_id": "E001",
            "months": [{"basic_pay": "50000"} for _ in range(6)],
        },
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.get_json()["error"] == "validation_error"


def test_tax_card_endpoint_surfaces_reconciliation_defects(
    client: FlaskClient,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    monkeypatch.setattr(
        annual, "reduce_totals", lambda results, currency: PayrollTotals.empty(currency)
    )
    caplog.set_level(logging.ERROR)

    response = client.post(
        "/api/v1/tax-cards",
        json={
            "year": 2024,
            "employee_id": "E001",
            "months": [{"basic_pay": "50000"} for _ in range(12)],
        },
    )

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.get_json()["error"] == "reconciliation_defect"
    assert any(record.levelno == logging.ERROR for record in caplog.records)


def test_batch_endpoint_keeps_entry_order(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/payroll-batches",
        json={
            "year": 2024,
            "month": 1,
            "employees": [
                {"employee_id": "E001", "basic_pay": "50000"},
                {"employee_id": "E002", "basic_pay": "20000", "loan_deduction": "30000"},
                {"employee_id": "E003", "basic_pay": "20000"},
                {"employee_id": "E001", "basic_pay": "30000"},
            ],
        },
    )

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert [entry["employee_id"] for entry in payload["entries"]] == [
        "E001",
        "E002",
        "E003",
        "E001",
    ]
    assert [entry["status"] for entry in payload["entries"]] == [
        "ok",
        "failed",
        "ok",
        "failed",
    ]
    assert payload["entries"][3]["kind"] == "invalid_input"
    assert payload["failure_count"] == 2
    assert payload["ready_for_disbursement"] is False
    assert payload["totals"]["count"] == 2
