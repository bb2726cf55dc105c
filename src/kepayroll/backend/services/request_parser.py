"""Helpers for normalising incoming payroll requests."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from flask import Request
from werkzeug.exceptions import BadRequest


def _resolve_year(req: Request, payload: dict[str, Any]) -> None:
    """Fill ``payload['year']`` from the ``year`` query parameter when absent."""

    if payload.get("year") is not None:
        return

    year_param = req.args.get("year", type=int)
    if year_param is not None:
        payload["year"] = year_param


def parse_json_payload(req: Request) -> dict[str, Any]:
    """Extract and validate a JSON object from ``req``."""

    data = req.get_json(silent=True)
    if data is None:
        raise BadRequest("Request body must be valid JSON")
    if not isinstance(data, Mapping):
        raise BadRequest("Request JSON must be an object")

    payload = dict(data)
    _resolve_year(req, payload)

    return payload
