"""HTTP helper utilities shared across Flask blueprints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from flask import jsonify

from kepayroll.backend.services.errors import (
    NegativeNetPay,
    PayrollError,
    ReconciliationDefect,
    UnsupportedTaxYear,
)


@dataclass(frozen=True)
class ProblemResponse:
    """Lightweight representation of an RFC 7807-style error payload."""

    error: str
    status: int
    message: str | None = None
    extra: Mapping[str, Any] | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error}
        if self.message:
            payload["message"] = self.message
        if self.extra:
            payload.update(self.extra)
        return payload

    def to_response(self) -> tuple[Any, int]:
        """Convert the problem payload into a Flask response tuple."""

        return jsonify(self.as_dict()), self.status


def problem_response(
    error: str,
    *,
    status: int,
    message: str | None = None,
    **extra: Any,
) -> ProblemResponse:
    """Convenience factory mirroring Flask's ``jsonify`` interface."""

    additional: Mapping[str, Any] | None = extra or None
    return ProblemResponse(error=error, status=status, message=message, extra=additional)


def problem_for_payroll_error(error: PayrollError) -> ProblemResponse:
    """Map an engine error onto its HTTP status and error code."""

    if isinstance(error, UnsupportedTaxYear):
        return problem_response(
            "unsupported_tax_year", status=404, message=str(error), year=error.year
        )
    if isinstance(error, NegativeNetPay):
        extra: dict[str, Any] = {}
        if error.net_pay is not None:
            extra["net_pay"] = error.net_pay.to_decimal_string()
        return problem_response(
            "negative_net_pay", status=422, message=str(error), **extra
        )
    if isinstance(error, ReconciliationDefect):
        return problem_response(
            "reconciliation_defect",
            status=500,
            message="Payroll totals failed to reconcile",
        )
    return problem_response("validation_error", status=400, message=str(error))


__all__ = ["ProblemResponse", "problem_for_payroll_error", "problem_response"]
