"""Default payroll rules and numbering rules.

The NDFL rule is seeded at 13% for residents and 30% for non-residents,
effective 2024-01-01. Seeding is idempotent: existing rules are left alone.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.models import PayrollRule
from hr_payroll.services.calculation_service import CALCULATION_ENTITY
from hr_payroll.services.numbering_service import NumberingService
from hr_payroll.services.rule_service import RuleService

logger = logging.getLogger(__name__)

DEFAULT_RULES = [
    {
        "code": "NDFL",
        "name_tr": "NDFL (Gelir Vergisi)",
        "name_ru": "НДФЛ",
        "name_en": "NDFL (Personal Income Tax)",
        "category": "TAX",
        "effective_from": date(2024, 1, 1),
        "resident_rate": Decimal("13.0000"),
        "non_resident_rate": Decimal("30.0000"),
    },
]

DEFAULT_NUMBERING = [
    (CALCULATION_ENTITY, "PAY-CALC-", 6),
]


async def seed_defaults(session: AsyncSession, user_id: str | None = None) -> list[str]:
    """Create any missing default rules and numbering rules.

    Returns the codes of the rules that were created.
    """
    created = []
    rules = RuleService(session)

    for definition in DEFAULT_RULES:
        exists = await session.execute(
            select(PayrollRule.rule_id).where(PayrollRule.code == definition["code"])
        )
        if exists.scalar_one_or_none() is not None:
            logger.info("Rule %s already exists, skipping", definition["code"])
            continue
        await rules.create_rule(**definition, user_id=user_id)
        created.append(definition["code"])

    numbering = NumberingService(session)
    for entity, prefix, pad_length in DEFAULT_NUMBERING:
        await numbering.ensure_rule(entity, prefix, pad_length)

    return created
