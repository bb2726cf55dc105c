"""Load tax year configuration files into immutable engine configs."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from fractions import Fraction
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Sequence

import yaml
from pydantic import ValidationError

from kepayroll.backend.services.calculators.bands import TaxBandTable
from kepayroll.backend.services.calculators.deductions import (
    ContributionCap,
    StatutoryDeductionRule,
    StatutoryDeductionRules,
)
from kepayroll.backend.services.calculators.money import MoneyAmount
from kepayroll.backend.services.calculators.paye import PAYEEngine
from kepayroll.backend.services.calculators.reliefs import ReliefCalculator
from kepayroll.backend.services.errors import UnsupportedTaxYear

from .schema import (
    ConfigurationError,
    DeductionRuleConfig,
    TaxYearFile,
    TaxYearManifest,
    TaxYearManifestEntry,
)

CONFIG_DIRECTORY = Path(__file__).resolve().parent / "data"
MANIFEST_FILE = CONFIG_DIRECTORY / "manifest.yaml"


@dataclass(frozen=True)
class TaxYearConfig:
    """Read-only reference data for computing payroll in one tax year."""

    year: int
    currency: str
    bands: TaxBandTable
    deductions: StatutoryDeductionRules
    reliefs: ReliefCalculator
    minimum_wage: MoneyAmount
    labels: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))

    @property
    def paye_engine(self) -> PAYEEngine:
        return PAYEEngine(bands=self.bands, reliefs=self.reliefs)

    def label_for(self, name: str) -> str:
        return self.labels.get(name, name.replace("_", " ").title())


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration file must define a mapping at the top level")
    return data


@lru_cache(maxsize=1)
def load_manifest() -> TaxYearManifest:
    """Load and cache the configuration manifest."""

    if not MANIFEST_FILE.exists():
        raise FileNotFoundError("Configuration manifest not found")

    raw_manifest = _load_yaml(MANIFEST_FILE)

    try:
        return TaxYearManifest.model_validate(raw_manifest)
    except ValidationError as error:  # pragma: no cover - defensive
        raise ConfigurationError(f"Manifest validation failed: {error}") from error


def manifest_entries() -> Sequence[TaxYearManifestEntry]:
    """Expose the configured manifest entries."""

    return load_manifest().years


def available_years() -> Sequence[int]:
    """Return the tax years declared in the manifest."""

    return load_manifest().supported_years


@lru_cache(maxsize=8)
def load_year_file(year: int) -> TaxYearFile:
    """Load and validate the raw configuration file for ``year``."""

    try:
        manifest_entry = load_manifest().get_entry(year)
    except KeyError as exc:
        raise UnsupportedTaxYear(year) from exc

    config_file = CONFIG_DIRECTORY / manifest_entry.resolved_filename
    if not config_file.exists():
        raise FileNotFoundError(
            f"Configuration file for year {year} missing: {config_file.name}"
        )

    raw_config = _load_yaml(config_file)
    raw_config.setdefault("year", year)

    try:
        configuration = TaxYearFile.model_validate(raw_config)
    except ValidationError as error:
        raise ConfigurationError(f"Configuration validation failed for {year}: {error}") from error

    if configuration.year != year:
        raise ConfigurationError(
            f"Configuration year mismatch: expected {year}, found {configuration.year}"
        )

    return configuration


def _money(value: Any, currency: str) -> MoneyAmount:
    return MoneyAmount.from_decimal(value, currency)


def _build_rule(rule: DeductionRuleConfig, currency: str) -> StatutoryDeductionRule:
    cap = _money(rule.cap, currency) if rule.cap is not None else None
    return StatutoryDeductionRule(name=rule.name, rate=Fraction(rule.rate), cap=cap)


def build_tax_year_config(source: TaxYearFile) -> TaxYearConfig:
    """Convert a validated configuration file into engine objects."""

    currency = source.currency
    bands = TaxBandTable.from_thresholds(
        [
            (
                _money(band.upper_bound, currency) if band.upper_bound is not None else None,
                Fraction(band.rate),
            )
            for band in source.paye.bands
        ],
        currency,
    )
    deductions = StatutoryDeductionRules(
        rules=[_build_rule(rule, currency) for rule in source.statutory_deductions],
        contribution_caps=[
            ContributionCap(name=name, cap=_money(cap, currency))
            for name, cap in source.contribution_caps.items()
        ],
        currency=currency,
    )
    reliefs = ReliefCalculator(
        personal_relief=_money(source.reliefs.personal_relief, currency),
        insurance_relief_rate=Fraction(source.reliefs.insurance.rate),
        insurance_relief_cap=_money(source.reliefs.insurance.cap, currency),
    )
    labels = {rule.name: rule.display_label for rule in source.statutory_deductions}

    return TaxYearConfig(
        year=source.year,
        currency=currency,
        bands=bands,
        deductions=deductions,
        reliefs=reliefs,
        minimum_wage=_money(source.minimum_wage, currency),
        labels=labels,
    )


@lru_cache(maxsize=8)
def load_tax_year_config(year: int) -> TaxYearConfig:
    """Return the cached engine configuration for ``year``.

    Raises :class:`UnsupportedTaxYear` when the manifest does not list ``year``.
    """

    return build_tax_year_config(load_year_file(year))


def clear_caches() -> None:
    load_tax_year_config.cache_clear()
    load_year_file.cache_clear()
    load_manifest.cache_clear()


__all__ = [
    "CONFIG_DIRECTORY",
    "ConfigurationError",
    "MANIFEST_FILE",
    "TaxYearConfig",
    "available_years",
    "build_tax_year_config",
    "clear_caches",
    "load_manifest",
    "load_tax_year_config",
    "load_year_file",
    "manifest_entries",
]
