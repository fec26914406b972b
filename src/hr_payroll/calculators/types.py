"""Type definitions for the gross/net calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from uuid import UUID

ZERO = Decimal("0")
ONE = Decimal("1")
CENT = Decimal("0.01")


class TaxStatus(str, Enum):
    """Tax residency classification."""

    RESIDENT = "RESIDENT"
    NON_RESIDENT = "NON_RESIDENT"


class ConversionDirection(str, Enum):
    """Which side of the salary is known."""

    GROSS_TO_NET = "grossToNet"
    NET_TO_GROSS = "netToGross"


class CalculationError(Exception):
    """Base class for payroll calculation errors."""

    code = "CALCULATION_ERROR"


class InvalidRateError(CalculationError):
    """Raised when a rate falls outside [0, 1)."""

    code = "INVALID_RATE"

    def __init__(self, rate: object):
        self.rate = rate
        super().__init__(f"Rate {rate} must be in the range [0, 1)")


class InvalidAmountError(CalculationError):
    """Raised when a salary amount is negative or not a finite number."""

    code = "INVALID_AMOUNT"

    def __init__(self, amount: object, reason: str = "must be a non-negative number"):
        self.amount = amount
        super().__init__(f"Amount {amount} {reason}")


def to_decimal(
    value: Decimal | int | float | str,
    invalid: type[InvalidAmountError] | type[InvalidRateError] = InvalidAmountError,
) -> Decimal:
    """Coerce a numeric input to Decimal without float artifacts.

    Text that does not parse, NaN and infinities raise ``invalid``.
    """
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise invalid(value) from None
    if not result.is_finite():
        raise invalid(result)
    return result


@dataclass(frozen=True)
class RuleVersion:
    """Immutable rule version with fractional rates."""

    effective_from: date
    resident_rate: Decimal
    non_resident_rate: Decimal
    rule_version_id: UUID | None = None

    def __post_init__(self) -> None:
        for rate in (self.resident_rate, self.non_resident_rate):
            if not rate.is_finite() or rate < ZERO or rate >= ONE:
                raise InvalidRateError(rate)

    def rate_for(self, tax_status: TaxStatus) -> Decimal:
        """Return the withholding rate for a tax status."""
        if TaxStatus(tax_status) is TaxStatus.RESIDENT:
            return self.resident_rate
        return self.non_resident_rate


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of a single gross/net conversion."""

    amount: Decimal
    direction: ConversionDirection
    tax_status: TaxStatus
    as_of_date: date
    result: Decimal
    rate_applied: Decimal
    tax_amount: Decimal
    rule_version_id: UUID | None = None

    @property
    def gross(self) -> Decimal:
        if self.direction is ConversionDirection.GROSS_TO_NET:
            return self.amount
        return self.result

    @property
    def net(self) -> Decimal:
        if self.direction is ConversionDirection.GROSS_TO_NET:
            return self.result
        return self.amount
