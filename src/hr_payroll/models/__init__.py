"""ORM models."""

from hr_payroll.models.audit import AuditLog, NumberingRule
from hr_payroll.models.base import Base, TimestampMixin
from hr_payroll.models.payroll import PayrollCalculation, PayrollRule, PayrollRuleVersion

__all__ = [
    "AuditLog",
    "Base",
    "NumberingRule",
    "PayrollCalculation",
    "PayrollRule",
    "PayrollRuleVersion",
    "TimestampMixin",
]
