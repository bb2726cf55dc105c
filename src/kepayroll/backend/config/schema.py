"""Pydantic models describing the tax year configuration files."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping, Sequence

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    computed_field,
    field_validator,
    model_validator,
)
from typing_extensions import Self

_CENT = Decimal("0.01")


class ConfigurationError(ValueError):
    """Raised when configuration values violate schema expectations."""


class ImmutableModel(BaseModel):
    """Base class that freezes instances and rejects unknown fields."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


def _coerce_decimal(value: Any) -> Any:
    # YAML turns ``0.06`` into a float; go through ``str`` so 6% stays exactly 6%.
    if isinstance(value, bool):
        raise ConfigurationError("Numeric configuration values cannot be booleans")
    if isinstance(value, float):
        return Decimal(str(value))
    return value


def _check_money(value: Decimal, label: str) -> None:
    if value < 0:
        raise ConfigurationError(f"{label} must be non-negative")
    if value != value.quantize(_CENT):
        raise ConfigurationError(f"{label} cannot have more than two decimal places")


def _check_rate(value: Decimal, label: str) -> None:
    if value < 0 or value > 1:
        raise ConfigurationError(f"{label} must be between 0 and 1")


class TaxBandConfig(ImmutableModel):
    """Single progressive PAYE band; ``upper`` is omitted for the top band."""

    upper_bound: Decimal | None = Field(default=None, alias="upper")
    rate: Decimal

    @field_validator("upper_bound", "rate", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any) -> Any:
        return _coerce_decimal(value)

    @model_validator(mode="after")
    def _validate_values(self) -> TaxBandConfig:
        _check_rate(self.rate, "Tax band rates")
        if self.upper_bound is not None:
            if self.upper_bound <= 0:
                raise ConfigurationError("Upper bounds must be positive values")
            _check_money(self.upper_bound, "Tax band upper bounds")
        return self


class PAYEConfig(ImmutableModel):
    """Monthly PAYE band table."""

    bands: Sequence[TaxBandConfig]

    @model_validator(mode="after")
    def _validate_bands(self) -> PAYEConfig:
        if not self.bands:
            raise ConfigurationError("At least one tax band must be defined")
        last_upper: Decimal | None = None
        for index, band in enumerate(self.bands):
            upper = band.upper_bound
            if upper is None and index != len(self.bands) - 1:
                raise ConfigurationError("Only the final tax band may omit 'upper'")
            if last_upper is not None and upper is not None and upper <= last_upper:
                raise ConfigurationError("Tax bands must be in ascending order")
            last_upper = upper if upper is not None else last_upper
        if self.bands[-1].upper_bound is not None:
            raise ConfigurationError("Final tax band must have an open upper bound")
        return self


class DeductionRuleConfig(ImmutableModel):
    """Statutory levy expressed as a rate of gross pay with an optional cap."""

    name: str
    label: str | None = None
    rate: Decimal
    cap: Decimal | None = None

    @field_validator("rate", "cap", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any) -> Any:
        return _coerce_decimal(value)

    @model_validator(mode="after")
    def _validate_rule(self) -> DeductionRuleConfig:
        if not self.name.strip():
            raise ConfigurationError("Deduction rules require a name")
        _check_rate(self.rate, f"Deduction '{self.name}' rate")
        if self.cap is not None:
            _check_money(self.cap, f"Deduction '{self.name}' cap")
        return self

    @computed_field
    @property
    def display_label(self) -> str:
        return self.label or self.name.replace("_", " ").title()


class InsuranceReliefConfig(ImmutableModel):
    """Relief on insurance premiums: ``min(premium * rate, cap)``."""

    rate: Decimal
    cap: Decimal

    @field_validator("rate", "cap", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any) -> Any:
        return _coerce_decimal(value)

    @model_validator(mode="after")
    def _validate_values(self) -> InsuranceReliefConfig:
        _check_rate(self.rate, "Insurance relief rate")
        _check_money(self.cap, "Insurance relief cap")
        return self


class ReliefConfig(ImmutableModel):
    """Relief constants credited against PAYE each month."""

    personal_relief: Decimal
    insurance: InsuranceReliefConfig

    @field_validator("personal_relief", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any) -> Any:
        return _coerce_decimal(value)

    @model_validator(mode="after")
    def _validate_values(self) -> ReliefConfig:
        _check_money(self.personal_relief, "Personal relief")
        return self


class TaxYearFile(ImmutableModel):
    """Structured representation of a ``<year>.yaml`` configuration file."""

    year: int
    currency: str = "KES"
    meta: Mapping[str, Any] = Field(default_factory=dict)
    paye: PAYEConfig
    statutory_deductions: Sequence[DeductionRuleConfig]
    contribution_caps: Mapping[str, Decimal] = Field(default_factory=dict)
    reliefs: ReliefConfig
    minimum_wage: Decimal

    @model_validator(mode="before")
    @classmethod
    def _prepare(cls, data: Any) -> Mapping[str, Any]:
        if not isinstance(data, Mapping):
            raise ConfigurationError("Configuration file must define a mapping at the top level")
        prepared = dict(data)
        meta = prepared.get("meta")
        if meta is None:
            prepared["meta"] = {}
        elif not isinstance(meta, Mapping):
            raise ConfigurationError("'meta' section must be a mapping if provided")
        caps = prepared.get("contribution_caps")
        if caps is None:
            prepared["contribution_caps"] = {}
        elif isinstance(caps, Mapping):
            prepared["contribution_caps"] = {
                str(name): _coerce_decimal(value) for name, value in caps.items()
            }
        else:
            raise ConfigurationError("'contribution_caps' must be a mapping")
        prepared["minimum_wage"] = _coerce_decimal(prepared.get("minimum_wage"))
        return prepared

    @model_validator(mode="after")
    def _validate_year(self) -> Self:
        if self.year <= 0:
            raise ConfigurationError("Configuration 'year' must be a positive integer")
        if not self.currency.strip():
            raise ConfigurationError("Configuration 'currency' cannot be empty")

        names = [rule.name for rule in self.statutory_deductions]
        names.extend(self.contribution_caps)
        if len(names) != len(set(names)):
            raise ConfigurationError("Deduction and contribution names must be unique")

        for name, cap in self.contribution_caps.items():
            _check_money(cap, f"Contribution cap '{name}'")

        _check_money(self.minimum_wage, "Minimum wage")
        if self.minimum_wage <= 0:
            raise ConfigurationError("Minimum wage must be positive")
        return self


class TaxYearManifestEntry(ImmutableModel):
    """Entry describing a supported tax year in the manifest."""

    year: int
    filename: str | None = None
    status: str = "active"
    notes_url: str | None = None

    @computed_field
    @property
    def resolved_filename(self) -> str:
        return self.filename or f"{self.year}.yaml"


class TaxYearManifest(ImmutableModel):
    """Manifest describing the available tax year configuration files."""

    years: Sequence[TaxYearManifestEntry]

    @model_validator(mode="after")
    def _validate_years(self) -> TaxYearManifest:
        seen: set[int] = set()
        for entry in self.years:
            if entry.year in seen:
                raise ConfigurationError(
                    f"Duplicate year {entry.year} declared in the configuration manifest"
                )
            seen.add(entry.year)
        return self

    def get_entry(self, year: int) -> TaxYearManifestEntry:
        for entry in self.years:
            if entry.year == year:
                return entry
        raise KeyError(year)

    @computed_field
    @property
    def supported_years(self) -> tuple[int, ...]:
        return tuple(sorted(entry.year for entry in self.years))


__all__ = [
    "ConfigurationError",
    "DeductionRuleConfig",
    "ImmutableModel",
    "InsuranceReliefConfig",
    "PAYEConfig",
    "ReliefConfig",
    "TaxBandConfig",
    "TaxYearFile",
    "TaxYearManifest",
    "TaxYearManifestEntry",
    "ValidationError",
]
