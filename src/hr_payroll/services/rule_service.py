"""Payroll rule administration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hr_payroll.calculators.rate_resolver import DuplicateEffectiveDateError
from hr_payroll.models import PayrollCalculation, PayrollRule, PayrollRuleVersion
from hr_payroll.models.payroll import stored_rate
from hr_payroll.services.audit_service import AuditService
from hr_payroll.services.rule_store import RuleStore

logger = logging.getLogger(__name__)


class RuleAlreadyExistsError(Exception):
    """Raised when creating a rule whose code is taken."""

    code = "ALREADY_EXISTS"

    def __init__(self, rule_code: str):
        self.rule_code = rule_code
        super().__init__(f"Payroll rule '{rule_code}' already exists")


class RuleVersionNotFoundError(Exception):
    """Raised when a version id does not belong to the rule."""

    code = "RULE_VERSION_NOT_FOUND"

    def __init__(self, rule_code: str, rule_version_id: UUID):
        self.rule_code = rule_code
        self.rule_version_id = rule_version_id
        super().__init__(f"Version {rule_version_id} of rule '{rule_code}' not found")


class RuleVersionLockedError(Exception):
    """Raised when changing a version that calculations already reference."""

    code = "RULE_VERSION_LOCKED"

    def __init__(self, rule_version_id: UUID, reference_count: int):
        self.rule_version_id = rule_version_id
        self.reference_count = reference_count
        super().__init__(
            f"Rule version {rule_version_id} is referenced by "
            f"{reference_count} calculation(s) and cannot be changed"
        )


@dataclass
class RuleWithVersion:
    """A rule paired with the version in force on the listing date."""

    rule: PayrollRule
    current_version: PayrollRuleVersion | None


def _version_snapshot(version: PayrollRuleVersion) -> dict[str, object]:
    return {
        "rule_version_id": version.rule_version_id,
        "effective_from": version.effective_from,
        "resident_rate": version.resident_rate,
        "non_resident_rate": version.non_resident_rate,
        "is_percentage": version.is_percentage,
        "notes": version.notes,
    }


class RuleService:
    """Creates rules and manages their dated versions.

    Versions are append-only from the calculator's point of view: a new rate
    is introduced by adding a version with a later effective date. A version
    may only be deleted while no calculation references it.
    """

    def __init__(self, session: AsyncSession, audit: AuditService | None = None):
        self.session = session
        self.audit = audit or AuditService(session)
        self.store = RuleStore(session)

    async def list_rules(
        self,
        category: str | None = None,
        is_active: bool | None = None,
        as_of: date | None = None,
    ) -> list[RuleWithVersion]:
        """List rules with the version in force on as_of (default today)."""
        as_of = as_of or date.today()
        query = select(PayrollRule).options(selectinload(PayrollRule.versions))
        if category:
            query = query.where(PayrollRule.category == category)
        if is_active is not None:
            query = query.where(PayrollRule.is_active.is_(is_active))
        query = query.order_by(PayrollRule.category, PayrollRule.code)

        rules = (await self.session.execute(query)).scalars().all()

        listing = []
        for rule in rules:
            in_force = [v for v in rule.versions if v.effective_from <= as_of]
            current = max(in_force, key=lambda v: v.effective_from) if in_force else None
            listing.append(RuleWithVersion(rule=rule, current_version=current))
        return listing

    async def create_rule(
        self,
        code: str,
        name_tr: str,
        name_ru: str,
        name_en: str,
        category: str,
        effective_from: date,
        resident_rate: Decimal,
        non_resident_rate: Decimal,
        is_percentage: bool = True,
        is_active: bool = True,
        notes: str | None = None,
        user_id: str | None = None,
    ) -> RuleWithVersion:
        """Create a rule together with its initial version."""
        existing = await self.session.execute(
            select(PayrollRule.rule_id).where(PayrollRule.code == code)
        )
        if existing.scalar_one_or_none() is not None:
            raise RuleAlreadyExistsError(code)

        rule = PayrollRule(
            rule_id=uuid4(),
            code=code,
            name_tr=name_tr,
            name_ru=name_ru,
            name_en=name_en,
            category=category,
            is_active=is_active,
        )
        version = PayrollRuleVersion(
            rule_version_id=uuid4(),
            rule_id=rule.rule_id,
            effective_from=effective_from,
            resident_rate=stored_rate(resident_rate),
            non_resident_rate=stored_rate(non_resident_rate),
            is_percentage=is_percentage,
            notes=notes,
            created_by=user_id,
        )
        # Validate the rates as they will be stored, before anything is written
        version.to_rule_version()

        self.session.add(rule)
        await self.session.flush()
        self.session.add(version)
        await self.session.flush()

        await self.audit.record(
            action="CREATE",
            entity="PayrollRule",
            entity_id=rule.rule_id,
            new_values={
                "code": code,
                "category": category,
                "is_active": is_active,
                "version": _version_snapshot(version),
            },
            user_id=user_id,
        )
        logger.info("Created payroll rule %s effective %s", code, effective_from)
        return RuleWithVersion(rule=rule, current_version=version)

    async def list_versions(self, code: str) -> list[PayrollRuleVersion]:
        """List all versions of a rule, oldest first."""
        rule = await self.store.get_rule(code, active_only=False)
        result = await self.session.execute(
            select(PayrollRuleVersion)
            .where(PayrollRuleVersion.rule_id == rule.rule_id)
            .order_by(PayrollRuleVersion.effective_from)
        )
        return list(result.scalars().all())

    async def add_version(
        self,
        code: str,
        effective_from: date,
        resident_rate: Decimal,
        non_resident_rate: Decimal,
        is_percentage: bool = True,
        notes: str | None = None,
        user_id: str | None = None,
    ) -> PayrollRuleVersion:
        """Add a version that supersedes earlier ones from effective_from."""
        rule = await self.store.get_rule(code, active_only=False)

        clash = await self.session.execute(
            select(PayrollRuleVersion.rule_version_id).where(
                PayrollRuleVersion.rule_id == rule.rule_id,
                PayrollRuleVersion.effective_from == effective_from,
            )
        )
        if clash.scalar_one_or_none() is not None:
            raise DuplicateEffectiveDateError(code, effective_from)

        version = PayrollRuleVersion(
            rule_version_id=uuid4(),
            rule_id=rule.rule_id,
            effective_from=effective_from,
            resident_rate=stored_rate(resident_rate),
            non_resident_rate=stored_rate(non_resident_rate),
            is_percentage=is_percentage,
            notes=notes,
            created_by=user_id,
        )
        version.to_rule_version()

        self.session.add(version)
        await self.session.flush()

        await self.audit.record(
            action="CREATE",
            entity="PayrollRuleVersion",
            entity_id=version.rule_version_id,
            new_values={"code": code, **_version_snapshot(version)},
            user_id=user_id,
        )
        logger.info("Added version of %s effective %s", code, effective_from)
        return version

    async def delete_version(
        self,
        code: str,
        rule_version_id: UUID,
        user_id: str | None = None,
    ) -> None:
        """Delete an unreferenced version."""
        rule = await self.store.get_rule(code, active_only=False)
        version = await self.session.get(PayrollRuleVersion, rule_version_id)
        if version is None or version.rule_id != rule.rule_id:
            raise RuleVersionNotFoundError(code, rule_version_id)

        references = await self.session.scalar(
            select(func.count())
            .select_from(PayrollCalculation)
            .where(PayrollCalculation.rule_version_id == rule_version_id)
        )
        if references:
            raise RuleVersionLockedError(rule_version_id, references)

        old_values = {"code": code, **_version_snapshot(version)}
        await self.session.delete(version)
        await self.session.flush()

        await self.audit.record(
            action="DELETE",
            entity="PayrollRuleVersion",
            entity_id=rule_version_id,
            old_values=old_values,
            user_id=user_id,
        )
        logger.info("Deleted version %s of %s", rule_version_id, code)
