"""Rule version store backed by the database."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.calculators.rate_resolver import RuleSnapshot
from hr_payroll.models import PayrollRule, PayrollRuleVersion

logger = logging.getLogger(__name__)


class RuleNotFoundError(Exception):
    """Raised when a payroll rule code is unknown or inactive."""

    code = "RULE_NOT_FOUND"

    def __init__(self, rule_code: str):
        self.rule_code = rule_code
        super().__init__(f"Payroll rule '{rule_code}' not found")


class RuleStore:
    """Loads rule versions as immutable snapshots."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_rule(self, rule_code: str, active_only: bool = True) -> PayrollRule:
        """Get a payroll rule by code."""
        query = select(PayrollRule).where(PayrollRule.code == rule_code)
        if active_only:
            query = query.where(PayrollRule.is_active.is_(True))
        rule = (await self.session.execute(query)).scalar_one_or_none()
        if rule is None:
            logger.warning("Payroll rule %s not found", rule_code)
            raise RuleNotFoundError(rule_code)
        return rule

    async def load_snapshot(self, rule_code: str) -> RuleSnapshot:
        """Load every version of an active rule in a single query."""
        result = await self.session.execute(
            select(PayrollRuleVersion)
            .join(PayrollRule, PayrollRule.rule_id == PayrollRuleVersion.rule_id)
            .where(
                PayrollRule.code == rule_code,
                PayrollRule.is_active.is_(True),
            )
            .order_by(PayrollRuleVersion.effective_from)
        )
        versions = list(result.scalars().all())

        if not versions:
            # Distinguish an unknown rule from a rule without versions
            await self.get_rule(rule_code)

        return RuleSnapshot(rule_code, (v.to_rule_version() for v in versions))
