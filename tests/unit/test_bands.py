"""Unit coverage for progressive PAYE bands, reliefs, and the PAYE engine."""

from __future__ import annotations

from fractions import Fraction

import pytest

from kepayroll.backend.config.schema import ConfigurationError
from kepayroll.backend.config.year_config import TaxYearConfig
from kepayroll.backend.services.calculators.bands import TaxBand, TaxBandTable
from kepayroll.backend.services.calculators.money import MoneyAmount
from kepayroll.backend.services.calculators.reliefs import ReliefCalculator
from kepayroll.backend.services.errors import InvalidInput


def kes(value: str) -> MoneyAmount:
    return MoneyAmount.from_decimal(value)


@pytest.mark.parametrize(
    ("chargeable", "expected"),
    [
        ("0.00", "0.00"),
        ("24000.00", "2400.00"),
        ("32333.00", "4483.25"),
        ("45715.00", "8497.85"),
        ("500000.00", "144783.35"),
        ("1000000.00", "312283.35"),
    ],
)
def test_band_tax_matches_published_table(
    config_2024: TaxYearConfig, chargeable: str, expected: str
) -> None:
    assert config_2024.bands.tax_for(kes(chargeable)).to_decimal_string() == expected


def test_band_tax_is_monotonic(config_2024: TaxYearConfig) -> None:
    previous = MoneyAmount.zero()
    for whole in range(0, 1_000_001, 7_919):
        tax = config_2024.bands.tax_for(MoneyAmount(whole * 100))
        assert tax >= previous
        previous = tax


@pytest.mark.parametrize("boundary", ["24000.00", "32333.00", "500000.00", "800000.00"])
def test_band_tax_is_continuous_at_boundaries(
    config_2024: TaxYearConfig, boundary: str
) -> None:
    at = config_2024.bands.tax_for(kes(boundary))
    above = config_2024.bands.tax_for(kes(boundary).add(MoneyAmount(1)))

    # One extra cent is taxed at no more than the top marginal rate.
    assert 0 <= above.minor_units - at.minor_units <= 1


def test_band_tax_rejects_negative_chargeable_pay(config_2024: TaxYearConfig) -> None:
    with pytest.raises(InvalidInput):
        config_2024.bands.tax_for(MoneyAmount(-100, allow_negative=True))


def test_band_tax_rejects_foreign_currency(config_2024: TaxYearConfig) -> None:
    with pytest.raises(InvalidInput):
        config_2024.bands.tax_for(MoneyAmount(100, "USD"))


def test_band_for_uses_half_open_ranges(config_2024: TaxYearConfig) -> None:
    assert config_2024.bands.band_for(kes("23999.99")).rate == Fraction(1, 10)
    assert config_2024.bands.band_for(kes("24000.00")).rate == Fraction(1, 4)
    assert config_2024.bands.band_for(kes("900000.00")).upper is None


@pytest.mark.parametrize(
    "bands",
    [
        [],
        [TaxBand(kes("10.00"), None, Fraction(1, 10))],
        [
            TaxBand(kes("0.00"), kes("100.00"), Fraction(1, 10)),
            TaxBand(kes("150.00"), None, Fraction(1, 5)),
        ],
        [
            TaxBand(kes("0.00"), None, Fraction(1, 10)),
            TaxBand(kes("100.00"), None, Fraction(1, 5)),
        ],
        [TaxBand(kes("0.00"), kes("100.00"), Fraction(1, 10))],
        [TaxBand(kes("0.00"), None, Fraction(3, 2))],
    ],
    ids=["empty", "not-zero-start", "gap", "unbounded-middle", "bounded-last", "rate"],
)
def test_band_table_rejects_malformed_bands(bands: list[TaxBand]) -> None:
    with pytest.raises(ConfigurationError):
        TaxBandTable(bands)


def test_from_thresholds_builds_contiguous_bands() -> None:
    table = TaxBandTable.from_thresholds(
        [(kes("100.00"), Fraction(1, 10)), (None, Fraction(1, 5))], "KES"
    )

    lowers = [band.lower.to_decimal_string() for band in table]
    assert lowers == ["0.00", "100.00"]
    assert len(table) == 2
    assert table.tax_for(kes("150.00")) == kes("20.00")


def test_relief_floor_never_produces_refund() -> None:
    reliefs = ReliefCalculator(
        personal_relief=kes("2400.00"),
        insurance_relief_rate=Fraction(15, 100),
        insurance_relief_cap=kes("5000.00"),
    )

    outcome = reliefs.apply(kes("1795.00"))

    assert outcome.final_tax == MoneyAmount.zero()
    assert outcome.reliefs_applied == kes("1795.00")
    assert outcome.personal_relief == kes("2400.00")


def test_insurance_relief_is_capped(config_2024: TaxYearConfig) -> None:
    reliefs = config_2024.reliefs

    assert reliefs.insurance_relief(None) == MoneyAmount.zero()
    assert reliefs.insurance_relief(kes("2000.00")) == kes("300.00")
    assert reliefs.insurance_relief(kes("50000.00")) == kes("5000.00")


def test_paye_engine_applies_reliefs(config_2024: TaxYearConfig) -> None:
    outcome = config_2024.paye_engine.compute(kes("45715.00"), kes("2000.00"))

    assert outcome.tax_before_relief == kes("8497.85")
    assert outcome.insurance_relief == kes("300.00")
    assert outcome.reliefs_applied == kes("2700.00")
    assert outcome.final_tax == kes("5797.85")


def test_zero_chargeable_pay_owes_no_tax(config_2025: TaxYearConfig) -> None:
    outcome = config_2025.paye_engine.compute(MoneyAmount.zero())

    assert outcome.tax_before_relief == MoneyAmount.zero()
    assert outcome.final_tax == MoneyAmount.zero()
    assert outcome.reliefs_applied == MoneyAmount.zero()
