"""Gross/net salary conversion under a flat withholding rate.

    net   = gross - gross * rate
    gross = net / (1 - rate)

Both results are quantized to currency precision with ROUND_HALF_UP, once,
after the full expression is evaluated.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from hr_payroll.calculators.types import (
    CENT,
    ONE,
    ZERO,
    CalculationError,
    InvalidAmountError,
    InvalidRateError,
    to_decimal,
)


class DivisionUndefinedError(CalculationError):
    """Raised when gross is requested under a 100% rate."""

    code = "DIVISION_UNDEFINED"

    def __init__(self, rate: Decimal):
        self.rate = rate
        super().__init__(f"Gross is undefined for rate {rate}")


def round_currency(value: Decimal) -> Decimal:
    """Round to 2 decimal places, half up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def net_from_gross(gross: Decimal | int | float | str, rate: Decimal | int | float | str) -> Decimal:
    """Calculate net salary from gross salary."""
    gross = to_decimal(gross)
    if gross < ZERO:
        raise InvalidAmountError(gross)

    rate = to_decimal(rate, InvalidRateError)
    if rate < ZERO or rate >= ONE:
        raise InvalidRateError(rate)

    return round_currency(gross - gross * rate)


def gross_from_net(net: Decimal | int | float | str, rate: Decimal | int | float | str) -> Decimal:
    """Calculate gross salary from net salary."""
    net = to_decimal(net)
    if net < ZERO:
        raise InvalidAmountError(net)

    rate = to_decimal(rate, InvalidRateError)
    if rate == ONE:
        raise DivisionUndefinedError(rate)
    if rate < ZERO or rate > ONE:
        raise InvalidRateError(rate)

    return round_currency(net / (ONE - rate))
