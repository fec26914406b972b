"""Payroll calculation engine."""

from hr_payroll.calculators.engine import PayrollConverter
from hr_payroll.calculators.gross_net import (
    DivisionUndefinedError,
    gross_from_net,
    net_from_gross,
)
from hr_payroll.calculators.rate_resolver import (
    DuplicateEffectiveDateError,
    NoApplicableRuleError,
    RuleSnapshot,
)
from hr_payroll.calculators.types import (
    CalculationError,
    ConversionDirection,
    ConversionResult,
    InvalidAmountError,
    InvalidRateError,
    RuleVersion,
    TaxStatus,
)

__all__ = [
    "CalculationError",
    "ConversionDirection",
    "ConversionResult",
    "DivisionUndefinedError",
    "DuplicateEffectiveDateError",
    "InvalidAmountError",
    "InvalidRateError",
    "NoApplicableRuleError",
    "PayrollConverter",
    "RuleSnapshot",
    "RuleVersion",
    "TaxStatus",
    "gross_from_net",
    "net_from_gross",
]
