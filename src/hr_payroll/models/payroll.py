"""Payroll rule and calculation models."""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_payroll.calculators.types import InvalidRateError, RuleVersion, to_decimal
from hr_payroll.models.base import Base, TimestampMixin

HUNDRED = Decimal("100")

# Scale of the Numeric(9, 4) rate columns
RATE_SCALE = Decimal("0.0001")


def stored_rate(rate: Decimal | int | float | str) -> Decimal:
    """Round a rate to the precision the rate columns keep."""
    rate = to_decimal(rate, InvalidRateError)
    try:
        return rate.quantize(RATE_SCALE, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidRateError(rate) from None


class PayrollRule(Base, TimestampMixin):
    """Payroll rule definition (e.g. NDFL)."""

    __tablename__ = "payroll_rule"

    rule_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name_tr: Mapped[str] = mapped_column(String, nullable=False)
    name_ru: Mapped[str] = mapped_column(String, nullable=False)
    name_en: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, default="TAX")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    versions: Mapped[list[PayrollRuleVersion]] = relationship(
        back_populates="rule",
        order_by="PayrollRuleVersion.effective_from",
        cascade="all, delete-orphan",
    )


class PayrollRuleVersion(Base, TimestampMixin):
    """Dated snapshot of resident and non-resident rates.

    A version stays in force from effective_from until a later version
    supersedes it. Rates are stored either as percentages (13 for 13%) or as
    fractions, per is_percentage.
    """

    __tablename__ = "payroll_rule_version"

    rule_version_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    rule_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_rule.rule_id", ondelete="CASCADE"),
        nullable=False,
    )
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    resident_rate: Mapped[Decimal] = mapped_column(Numeric(9, 4), nullable=False)
    non_resident_rate: Mapped[Decimal] = mapped_column(Numeric(9, 4), nullable=False)
    is_percentage: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("rule_id", "effective_from", name="payroll_rule_version_effective_uq"),
        CheckConstraint(
            "resident_rate >= 0 AND non_resident_rate >= 0",
            name="payroll_rule_version_rates_check",
        ),
    )

    rule: Mapped[PayrollRule] = relationship(back_populates="versions")

    def to_rule_version(self) -> RuleVersion:
        """Convert to the immutable calculation type with fractional rates."""
        resident = Decimal(str(self.resident_rate))
        non_resident = Decimal(str(self.non_resident_rate))
        if self.is_percentage:
            resident = resident / HUNDRED
            non_resident = non_resident / HUNDRED
        return RuleVersion(
            effective_from=self.effective_from,
            resident_rate=resident,
            non_resident_rate=non_resident,
            rule_version_id=self.rule_version_id,
        )


class PayrollCalculation(Base, TimestampMixin):
    """Persisted result of one gross/net conversion.

    A rule version referenced by any calculation can no longer be removed.
    """

    __tablename__ = "payroll_calculation"

    calculation_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    number: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    rule_version_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_rule_version.rule_version_id", ondelete="RESTRICT"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    direction: Mapped[str] = mapped_column(String(16), nullable=False)
    tax_status: Mapped[str] = mapped_column(String(16), nullable=False)
    as_of_date: Mapped[date] = mapped_column(Date, nullable=False)
    result: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    rate_applied: Mapped[Decimal] = mapped_column(Numeric(9, 6), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "direction IN ('grossToNet', 'netToGross')",
            name="payroll_calculation_direction_check",
        ),
        CheckConstraint(
            "tax_status IN ('RESIDENT', 'NON_RESIDENT')",
            name="payroll_calculation_tax_status_check",
        ),
    )

    rule_version: Mapped[PayrollRuleVersion] = relationship()
