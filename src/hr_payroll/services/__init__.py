"""Payroll services."""

from hr_payroll.services.audit_service import AuditService
from hr_payroll.services.calculation_service import CALCULATION_ENTITY, CalculationService
from hr_payroll.services.numbering_service import NumberingRuleNotFoundError, NumberingService
from hr_payroll.services.rule_service import (
    RuleAlreadyExistsError,
    RuleService,
    RuleVersionLockedError,
    RuleVersionNotFoundError,
    RuleWithVersion,
)
from hr_payroll.services.rule_store import RuleNotFoundError, RuleStore

__all__ = [
    "AuditService",
    "CALCULATION_ENTITY",
    "CalculationService",
    "NumberingRuleNotFoundError",
    "NumberingService",
    "RuleAlreadyExistsError",
    "RuleNotFoundError",
    "RuleService",
    "RuleStore",
    "RuleVersionLockedError",
    "RuleVersionNotFoundError",
    "RuleWithVersion",
]
