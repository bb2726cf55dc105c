"""Expose tax year configuration to API clients.

Clients use these endpoints to show which years are supported and which bands,
levies and reliefs apply, without duplicating the YAML reference data.
"""

from __future__ import annotations

from decimal import Decimal
from fractions import Fraction
from typing import Any

from flask import Blueprint, jsonify

from kepayroll.backend.config.year_config import (
    available_years,
    load_manifest,
    load_tax_year_config,
    load_year_file,
)
from kepayroll.backend.services.calculators.bands import TaxBand
from kepayroll.backend.version import get_project_version

blueprint = Blueprint("config", __name__, url_prefix="/api/v1/config")


def get_configuration_metadata() -> dict[str, Any]:
    """Expose runtime metadata derived from the configuration manifest."""

    manifest = load_manifest()
    supported_years = list(manifest.supported_years)
    default_year = supported_years[-1] if supported_years else None
    return {
        "version": get_project_version(),
        "supported_years": supported_years,
        "default_year": default_year,
    }


def _rate(value: Fraction) -> str:
    return str(Decimal(value.numerator) / Decimal(value.denominator))


def _serialise_band(band: TaxBand) -> dict[str, Any]:
    return {
        "lower": band.lower.to_decimal_string(),
        "upper": band.upper.to_decimal_string() if band.upper is not None else None,
        "rate": _rate(band.rate),
    }


def _serialise_year(year: int) -> dict[str, Any]:
    config = load_tax_year_config(year)
    source = load_year_file(year)

    deductions = [
        {
            "name": rule.name,
            "label": config.label_for(rule.name),
            "rate": _rate(rule.rate),
            "cap": rule.cap.to_decimal_string() if rule.cap is not None else None,
        }
        for rule in config.deductions.rules
    ]
    contribution_caps = {
        cap.name: cap.cap.to_decimal_string()
        for cap in config.deductions.contribution_caps
    }
    reliefs = config.reliefs

    return {
        "year": config.year,
        "currency": config.currency,
        "meta": dict(source.meta),
        "paye": {"bands": [_serialise_band(band) for band in config.bands]},
        "statutory_deductions": deductions,
        "contribution_caps": contribution_caps,
        "reliefs": {
            "personal_relief": reliefs.personal_relief.to_decimal_string(),
            "insurance": {
                "rate": _rate(reliefs.insurance_relief_rate),
                "cap": reliefs.insurance_relief_cap.to_decimal_string(),
            },
        },
        "minimum_wage": config.minimum_wage.to_decimal_string(),
    }


@blueprint.get("/meta")
def get_application_metadata() -> tuple[Any, int]:
    """Expose lightweight application metadata such as the version identifier."""

    payload = get_configuration_metadata()
    return jsonify(payload), 200


@blueprint.get("/years")
def list_years() -> tuple[Any, int]:
    """Return all configured years with manifest details."""

    manifest = load_manifest()
    metadata = get_configuration_metadata()
    payload = {
        "years": [
            {
                "year": entry.year,
                "status": entry.status,
                "notes_url": entry.notes_url,
            }
            for entry in manifest.years
        ],
        "default_year": metadata["default_year"],
        "supported_years": list(available_years()),
    }
    return jsonify(payload), 200


@blueprint.get("/<int:year>")
def get_year(year: int) -> tuple[Any, int]:
    """Return the bands, levies, caps and reliefs configured for ``year``."""

    return jsonify(_serialise_year(year)), 200
