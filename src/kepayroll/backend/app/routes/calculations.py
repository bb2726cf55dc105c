"""REST endpoints for payroll calculations."""

from __future__ import annotations

from typing import Any

from flask import Blueprint, request

from kepayroll.backend.services import calculation_service
from kepayroll.backend.services.request_parser import parse_json_payload
from kepayroll.backend.services.response_builder import build_calculation_response

blueprint = Blueprint("calculations", __name__, url_prefix="/api/v1")


@blueprint.post("/payslips")
def create_payslip() -> tuple[Any, int]:
    """Compute one employee's payslip for one month."""

    payload = parse_json_payload(request)
    result = calculation_service.calculate_payslip(payload)

    return build_calculation_response(result)


@blueprint.post("/tax-cards")
def create_tax_card() -> tuple[Any, int]:
    """Aggregate twelve months into an annual tax deduction card."""

    payload = parse_json_payload(request)
    result = calculation_service.calculate_tax_card(payload)

    return build_calculation_response(result)


@blueprint.post("/payroll-batches")
def create_payroll_batch() -> tuple[Any, int]:
    """Process a pay period for many employees."""

    payload = parse_json_payload(request)
    result = calculation_service.calculate_payroll_batch(payload)

    return build_calculation_response(result)
