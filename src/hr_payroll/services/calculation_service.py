"""Gross/net calculation service."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.calculators.engine import PayrollConverter
from hr_payroll.calculators.rate_resolver import NoApplicableRuleError
from hr_payroll.calculators.types import (
    ConversionDirection,
    ConversionResult,
    InvalidAmountError,
    TaxStatus,
    to_decimal,
)
from hr_payroll.models import PayrollCalculation
from hr_payroll.services.audit_service import AuditService
from hr_payroll.services.numbering_service import NumberingService
from hr_payroll.services.rule_store import RuleStore

logger = logging.getLogger(__name__)

CALCULATION_ENTITY = "PAYROLL_CALCULATION"

# Scale of the Numeric(14, 2) amount column
AMOUNT_PLACES = 2


def _decimal_places(value: Decimal) -> int:
    return max(0, -value.normalize().as_tuple().exponent)


class CalculationService:
    """Runs conversions and records them.

    Each call loads one snapshot of the rule's versions, converts against it,
    and stores the result together with the rule version it used.
    """

    def __init__(
        self,
        session: AsyncSession,
        audit: AuditService | None = None,
        numbering: NumberingService | None = None,
    ):
        self.session = session
        self.audit = audit or AuditService(session)
        self.numbering = numbering or NumberingService(session)
        self.store = RuleStore(session)

    async def preview(
        self,
        rule_code: str,
        amount: Decimal,
        direction: ConversionDirection | str,
        tax_status: TaxStatus | str,
        as_of_date: date,
    ) -> ConversionResult:
        """Convert without persisting anything."""
        snapshot = await self.store.load_snapshot(rule_code)
        try:
            return PayrollConverter(snapshot).convert(amount, direction, tax_status, as_of_date)
        except NoApplicableRuleError:
            logger.warning("No version of %s effective on %s", rule_code, as_of_date)
            raise

    async def convert(
        self,
        rule_code: str,
        amount: Decimal,
        direction: ConversionDirection | str,
        tax_status: TaxStatus | str,
        as_of_date: date,
        user_id: str | None = None,
    ) -> tuple[PayrollCalculation, ConversionResult]:
        """Convert an amount and persist the calculation record.

        Recorded amounts keep at most two decimal places. Finer amounts are
        rejected instead of being rounded on storage.
        """
        amount = to_decimal(amount)
        if _decimal_places(amount) > AMOUNT_PLACES:
            raise InvalidAmountError(amount, f"has more than {AMOUNT_PLACES} decimal places")

        outcome = await self.preview(rule_code, amount, direction, tax_status, as_of_date)

        number = await self.numbering.next_number(CALCULATION_ENTITY)
        calculation = PayrollCalculation(
            calculation_id=uuid4(),
            number=number,
            rule_version_id=outcome.rule_version_id,
            amount=outcome.amount,
            direction=outcome.direction.value,
            tax_status=outcome.tax_status.value,
            as_of_date=outcome.as_of_date,
            result=outcome.result,
            rate_applied=outcome.rate_applied,
            tax_amount=outcome.tax_amount,
            created_by=user_id,
        )
        self.session.add(calculation)
        await self.session.flush()

        await self.audit.record(
            action="CREATE",
            entity="PayrollCalculation",
            entity_id=calculation.calculation_id,
            new_values={
                "number": number,
                "rule_code": rule_code,
                "rule_version_id": outcome.rule_version_id,
                "amount": outcome.amount,
                "direction": outcome.direction.value,
                "tax_status": outcome.tax_status.value,
                "date": outcome.as_of_date,
                "result": outcome.result,
                "rate_applied": outcome.rate_applied,
            },
            user_id=user_id,
        )
        logger.info(
            "Calculation %s: %s %s %s -> %s at rate %s",
            number,
            outcome.direction.value,
            outcome.tax_status.value,
            outcome.amount,
            outcome.result,
            outcome.rate_applied,
        )
        return calculation, outcome

    async def get_calculation(self, calculation_id: UUID) -> PayrollCalculation | None:
        """Get a calculation record by id."""
        return await self.session.get(PayrollCalculation, calculation_id)

    async def list_calculations(
        self,
        page: int = 1,
        page_size: int = 20,
        tax_status: TaxStatus | str | None = None,
    ) -> tuple[list[PayrollCalculation], int]:
        """List calculations, newest first, with the total count."""
        query = select(PayrollCalculation)
        if tax_status:
            query = query.where(PayrollCalculation.tax_status == TaxStatus(tax_status).value)

        count_query = select(func.count()).select_from(query.subquery())
        total = await self.session.scalar(count_query) or 0

        # Numbers outgrow their padding, so compare length before text
        query = query.order_by(
            PayrollCalculation.created_at.desc(),
            func.length(PayrollCalculation.number).desc(),
            PayrollCalculation.number.desc(),
        )
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await self.session.execute(query)
        return list(result.scalars().all()), total
