"""Effective-dated rule version resolution."""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from hr_payroll.calculators.types import CalculationError, RuleVersion, TaxStatus


class NoApplicableRuleError(CalculationError):
    """Raised when no rule version is in force on a date."""

    code = "NO_APPLICABLE_RULE"

    def __init__(self, rule_code: str, as_of_date: date):
        self.rule_code = rule_code
        self.as_of_date = as_of_date
        super().__init__(f"No version of rule '{rule_code}' is effective on {as_of_date}")


class DuplicateEffectiveDateError(CalculationError):
    """Raised when two versions of a rule share an effective date."""

    code = "DUPLICATE_EFFECTIVE_DATE"

    def __init__(self, rule_code: str, effective_from: date):
        self.rule_code = rule_code
        self.effective_from = effective_from
        super().__init__(
            f"Rule '{rule_code}' already has a version effective from {effective_from}"
        )


class RuleSnapshot:
    """Read-only view of one rule's versions, ordered by effective date.

    A version is in force from its effective_from until the next version
    starts, so resolution picks the latest version not after the target date.
    """

    def __init__(self, rule_code: str, versions: Iterable[RuleVersion]):
        self.rule_code = rule_code
        ordered = tuple(sorted(versions, key=lambda v: v.effective_from))
        for previous, current in zip(ordered, ordered[1:]):
            if previous.effective_from == current.effective_from:
                raise DuplicateEffectiveDateError(rule_code, current.effective_from)
        self._versions = ordered
        self._dates = [v.effective_from for v in ordered]

    @property
    def versions(self) -> tuple[RuleVersion, ...]:
        return self._versions

    def __len__(self) -> int:
        return len(self._versions)

    def resolve(self, as_of_date: date) -> RuleVersion:
        """Return the version in force on as_of_date.

        Raises:
            NoApplicableRuleError: If as_of_date precedes every version
        """
        index = bisect_right(self._dates, as_of_date)
        if index == 0:
            raise NoApplicableRuleError(self.rule_code, as_of_date)
        return self._versions[index - 1]

    def resolve_rate(self, as_of_date: date, tax_status: TaxStatus) -> Decimal:
        """Return the rate for a tax status on as_of_date."""
        return self.resolve(as_of_date).rate_for(tax_status)
