"""Gross/net conversion against a resolved rule version."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from hr_payroll.calculators.gross_net import gross_from_net, net_from_gross, round_currency
from hr_payroll.calculators.rate_resolver import RuleSnapshot
from hr_payroll.calculators.types import (
    ConversionDirection,
    ConversionResult,
    TaxStatus,
    to_decimal,
)


class PayrollConverter:
    """Converts salary amounts using a snapshot of rule versions.

    The snapshot is taken once per request, so every line converted through
    the same converter sees the same rates.
    """

    def __init__(self, snapshot: RuleSnapshot):
        self.snapshot = snapshot

    def convert(
        self,
        amount: Decimal | int | float | str,
        direction: ConversionDirection | str,
        tax_status: TaxStatus | str,
        as_of_date: date,
    ) -> ConversionResult:
        """Convert one amount in the given direction.

        Raises:
            NoApplicableRuleError: If no version is effective on as_of_date
            InvalidAmountError: If amount is negative or not a finite number
            DivisionUndefinedError: If the rate is 100% when solving for gross
        """
        amount = to_decimal(amount)
        direction = ConversionDirection(direction)
        tax_status = TaxStatus(tax_status)

        version = self.snapshot.resolve(as_of_date)
        rate = version.rate_for(tax_status)

        if direction is ConversionDirection.GROSS_TO_NET:
            result = net_from_gross(amount, rate)
            tax_amount = round_currency(amount) - result
        else:
            result = gross_from_net(amount, rate)
            tax_amount = result - round_currency(amount)

        return ConversionResult(
            amount=amount,
            direction=direction,
            tax_status=tax_status,
            as_of_date=as_of_date,
            result=result,
            rate_applied=rate,
            tax_amount=tax_amount,
            rule_version_id=version.rule_version_id,
        )
