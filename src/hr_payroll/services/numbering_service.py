"""Monotonic identifier issuing per entity."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.models import NumberingRule


class NumberingRuleNotFoundError(Exception):
    """Raised when an entity has no numbering rule."""

    code = "NUMBERING_RULE_NOT_FOUND"

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(f"No numbering rule for entity: {entity}")


class NumberingService:
    """Issues the next formatted number for an entity.

    The counter row is locked for update, so concurrent transactions on
    Postgres serialize on it and never issue the same number twice.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def next_number(self, entity: str) -> str:
        """Increment the entity's counter and return the formatted number."""
        result = await self.session.execute(
            select(NumberingRule).where(NumberingRule.entity == entity).with_for_update()
        )
        rule = result.scalar_one_or_none()
        if rule is None:
            raise NumberingRuleNotFoundError(entity)

        rule.last_number += 1
        await self.session.flush()
        return rule.format(rule.last_number)

    async def ensure_rule(self, entity: str, prefix: str, pad_length: int = 6) -> NumberingRule:
        """Create a numbering rule if the entity has none."""
        rule = await self.session.get(NumberingRule, entity)
        if rule is None:
            rule = NumberingRule(entity=entity, prefix=prefix, pad_length=pad_length, last_number=0)
            self.session.add(rule)
            await self.session.flush()
        return rule
