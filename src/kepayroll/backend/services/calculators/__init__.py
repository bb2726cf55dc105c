"""Money arithmetic and the statutory rules built on top of it."""

from .bands import TaxBand, TaxBandTable
from .deductions import (
    ContributionCap,
    DeductionBreakdown,
    StatutoryDeductionRule,
    StatutoryDeductionRules,
)
from .money import MoneyAmount, round_half_away_from_zero, sum_amounts
from .paye import PAYEEngine
from .reliefs import ReliefCalculator, ReliefOutcome
from .totals import PayrollTotals, reduce_totals

__all__ = [
    "ContributionCap",
    "DeductionBreakdown",
    "MoneyAmount",
    "PAYEEngine",
    "PayrollTotals",
    "ReliefCalculator",
    "ReliefOutcome",
    "StatutoryDeductionRule",
    "StatutoryDeductionRules",
    "TaxBand",
    "TaxBandTable",
    "reduce_totals",
    "round_half_away_from_zero",
    "sum_amounts",
]
