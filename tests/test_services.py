"""Tests for rule store, rule administration, numbering and calculations."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from hr_payroll.calculators.rate_resolver import (
    DuplicateEffectiveDateError,
    NoApplicableRuleError,
)
from hr_payroll.calculators.types import InvalidAmountError, InvalidRateError, TaxStatus
from hr_payroll.models import AuditLog, NumberingRule
from hr_payroll.seed import seed_defaults
from hr_payroll.services import (
    CALCULATION_ENTITY,
    CalculationService,
    NumberingRuleNotFoundError,
    NumberingService,
    RuleAlreadyExistsError,
    RuleNotFoundError,
    RuleService,
    RuleStore,
    RuleVersionLockedError,
    RuleVersionNotFoundError,
)

pytestmark = pytest.mark.asyncio


async def audit_entries(session, entity: str) -> list[AuditLog]:
    result = await session.execute(select(AuditLog).where(AuditLog.entity == entity))
    return list(result.scalars().all())


class TestRuleStore:
    """Test loading rule snapshots from the database."""

    async def test_load_snapshot_normalizes_percentages(self, session, ndfl_rule):
        snapshot = await RuleStore(session).load_snapshot("NDFL")

        assert len(snapshot) == 2
        assert snapshot.resolve_rate(date(2022, 6, 1), TaxStatus.RESIDENT) == Decimal("0.13")
        assert snapshot.resolve_rate(date(2023, 6, 1), TaxStatus.RESIDENT) == Decimal("0.15")
        assert snapshot.resolve_rate(date(2023, 6, 1), TaxStatus.NON_RESIDENT) == Decimal("0.30")

    async def test_unknown_rule(self, session, ndfl_rule):
        with pytest.raises(RuleNotFoundError) as exc_info:
            await RuleStore(session).load_snapshot("MISSING")

        assert exc_info.value.rule_code == "MISSING"

    async def test_inactive_rule(self, session, ndfl_rule):
        ndfl_rule.is_active = False
        await session.flush()

        with pytest.raises(RuleNotFoundError):
            await RuleStore(session).load_snapshot("NDFL")


class TestNumberingService:
    """Test monotonic number issuing."""

    async def test_numbers_increase(self, session, ndfl_rule):
        numbering = NumberingService(session)

        assert await numbering.next_number("PAYROLL_CALCULATION") == "PAY-CALC-000001"
        assert await numbering.next_number("PAYROLL_CALCULATION") == "PAY-CALC-000002"

    async def test_unknown_entity(self, session):
        with pytest.raises(NumberingRuleNotFoundError) as exc_info:
            await NumberingService(session).next_number("ASSET")

        assert exc_info.value.entity == "ASSET"

    async def test_ensure_rule_keeps_counter(self, session):
        numbering = NumberingService(session)
        await numbering.ensure_rule("DOCUMENT", "DOC-", 4)
        assert await numbering.next_number("DOCUMENT") == "DOC-0001"

        rule = await numbering.ensure_rule("DOCUMENT", "OTHER-", 8)
        assert rule.prefix == "DOC-"
        assert await numbering.next_number("DOCUMENT") == "DOC-0002"

    async def test_format(self):
        rule = NumberingRule(entity="EMPLOYEE", prefix="EMP-", pad_length=6, last_number=0)
        assert rule.format(42) == "EMP-000042"


class TestCalculationService:
    """Test conversions recorded through the service."""

    async def test_convert_records_calculation(self, session, ndfl_rule):
        service = CalculationService(session)

        calculation, outcome = await service.convert(
            rule_code="NDFL",
            amount=Decimal("1000"),
            direction="grossToNet",
            tax_status="RESIDENT",
            as_of_date=date(2022, 6, 1),
            user_id="user-1",
        )

        assert outcome.result == Decimal("870.00")
        assert outcome.rate_applied == Decimal("0.13")
        assert calculation.number == "PAY-CALC-000001"
        assert calculation.result == Decimal("870.00")
        assert calculation.created_by == "user-1"

        versions = await RuleService(session).list_versions("NDFL")
        assert calculation.rule_version_id == versions[0].rule_version_id

    async def test_convert_writes_audit_log(self, session, ndfl_rule):
        calculation, _ = await CalculationService(session).convert(
            rule_code="NDFL",
            amount=Decimal("870"),
            direction="netToGross",
            tax_status="RESIDENT",
            as_of_date=date(2022, 6, 1),
            user_id="user-1",
        )

        entries = await audit_entries(session, "PayrollCalculation")
        assert len(entries) == 1
        entry = entries[0]
        assert entry.action == "CREATE"
        assert entry.entity_id == str(calculation.calculation_id)
        assert entry.user_id == "user-1"
        assert entry.new_values["result"] == "1000.00"
        assert entry.new_values["date"] == "2022-06-01"
        assert entry.old_values is None

    async def test_no_rule_for_date(self, session, ndfl_rule):
        with pytest.raises(NoApplicableRuleError):
            await CalculationService(session).convert(
                rule_code="NDFL",
                amount=Decimal("1000"),
                direction="grossToNet",
                tax_status="RESIDENT",
                as_of_date=date(2019, 6, 1),
            )

        assert await audit_entries(session, "PayrollCalculation") == []

    async def test_preview_does_not_persist(self, session, ndfl_rule):
        service = CalculationService(session)
        outcome = await service.preview(
            "NDFL", Decimal("1000"), "grossToNet", "NON_RESIDENT", date(2024, 1, 1)
        )

        assert outcome.result == Decimal("700.00")
        items, total = await service.list_calculations()
        assert items == []
        assert total == 0

    async def test_list_calculations_paginates(self, session, ndfl_rule):
        service = CalculationService(session)
        for status in ("RESIDENT", "NON_RESIDENT", "RESIDENT"):
            await service.convert("NDFL", Decimal("1000"), "grossToNet", status, date(2024, 1, 1))

        items, total = await service.list_calculations(page=1, page_size=2)
        assert total == 3
        assert [c.number for c in items] == ["PAY-CALC-000003", "PAY-CALC-000002"]

        items, total = await service.list_calculations(tax_status=TaxStatus.NON_RESIDENT)
        assert total == 1
        assert items[0].result == Decimal("700.00")

    async def test_get_calculation(self, session, ndfl_rule):
        service = CalculationService(session)
        calculation, _ = await service.convert(
            "NDFL", Decimal("1000"), "grossToNet", "RESIDENT", date(2024, 1, 1)
        )

        assert await service.get_calculation(calculation.calculation_id) is calculation
        assert await service.get_calculation(uuid4()) is None

    async def test_list_orders_numbers_past_their_padding(self, session, ndfl_rule):
        numbering_rule = await session.get(NumberingRule, CALCULATION_ENTITY)
        numbering_rule.pad_length = 1
        numbering_rule.last_number = 8
        await session.flush()

        service = CalculationService(session)
        for _ in range(2):
            await service.convert("NDFL", Decimal("1000"), "grossToNet", "RESIDENT", date(2024, 1, 1))

        items, _ = await service.list_calculations()
        assert [c.number for c in items] == ["PAY-CALC-10", "PAY-CALC-9"]

    async def test_sub_cent_amount_is_not_recorded(self, session, ndfl_rule):
        service = CalculationService(session)

        with pytest.raises(InvalidAmountError) as exc_info:
            await service.convert(
                "NDFL", Decimal("1000.005"), "grossToNet", "RESIDENT", date(2024, 1, 1)
            )

        assert exc_info.value.amount == Decimal("1000.005")
        _, total = await service.list_calculations()
        assert total == 0

    async def test_recorded_amount_matches_outcome(self, session, ndfl_rule):
        calculation, outcome = await CalculationService(session).convert(
            "NDFL", "1000.50", "grossToNet", "RESIDENT", date(2024, 1, 1)
        )
        await session.refresh(calculation)

        assert calculation.amount == outcome.amount == Decimal("1000.50")
        assert calculation.result == outcome.result


class TestRuleService:
    """Test rule and version administration."""

    async def test_list_rules_with_current_version(self, session, ndfl_rule):
        listing = await RuleService(session).list_rules(as_of=date(2022, 6, 1))

        assert len(listing) == 1
        assert listing[0].rule.code == "NDFL"
        assert listing[0].current_version.effective_from == date(2020, 1, 1)

        listing = await RuleService(session).list_rules(as_of=date(2019, 6, 1))
        assert listing[0].current_version is None

    async def test_create_rule(self, session):
        service = RuleService(session)
        created = await service.create_rule(
            code="NDFL_PATENT",
            name_tr="NDFL (Patent)",
            name_ru="НДФЛ (Патент)",
            name_en="NDFL (Patent)",
            category="TAX",
            effective_from=date(2024, 1, 1),
            resident_rate=Decimal("13"),
            non_resident_rate=Decimal("13"),
            user_id="admin",
        )

        assert created.rule.code == "NDFL_PATENT"
        assert created.current_version.created_by == "admin"

        snapshot = await RuleStore(session).load_snapshot("NDFL_PATENT")
        assert snapshot.resolve_rate(date(2024, 5, 1), TaxStatus.NON_RESIDENT) == Decimal("0.13")

        entries = await audit_entries(session, "PayrollRule")
        assert len(entries) == 1
        assert entries[0].new_values["code"] == "NDFL_PATENT"

    async def test_create_existing_rule(self, session, ndfl_rule):
        with pytest.raises(RuleAlreadyExistsError):
            await RuleService(session).create_rule(
                code="NDFL",
                name_tr="x",
                name_ru="x",
                name_en="x",
                category="TAX",
                effective_from=date(2024, 1, 1),
                resident_rate=Decimal("13"),
                non_resident_rate=Decimal("30"),
            )

    async def test_create_rule_rejects_full_rate(self, session):
        with pytest.raises(InvalidRateError):
            await RuleService(session).create_rule(
                code="BAD",
                name_tr="x",
                name_ru="x",
                name_en="x",
                category="TAX",
                effective_from=date(2024, 1, 1),
                resident_rate=Decimal("100"),
                non_resident_rate=Decimal("30"),
            )

        with pytest.raises(RuleNotFoundError):
            await RuleStore(session).get_rule("BAD")

    async def test_add_version_supersedes(self, session, ndfl_rule):
        service = RuleService(session)
        version = await service.add_version(
            "NDFL",
            effective_from=date(2025, 1, 1),
            resident_rate=Decimal("0.2"),
            non_resident_rate=Decimal("0.3"),
            is_percentage=False,
            user_id="admin",
        )

        assert version.effective_from == date(2025, 1, 1)
        snapshot = await RuleStore(session).load_snapshot("NDFL")
        assert snapshot.resolve_rate(date(2024, 12, 31), TaxStatus.RESIDENT) == Decimal("0.15")
        assert snapshot.resolve_rate(date(2025, 6, 1), TaxStatus.RESIDENT) == Decimal("0.2")

    async def test_add_version_duplicate_date(self, session, ndfl_rule):
        with pytest.raises(DuplicateEffectiveDateError):
            await RuleService(session).add_version(
                "NDFL",
                effective_from=date(2023, 1, 1),
                resident_rate=Decimal("14"),
                non_resident_rate=Decimal("30"),
            )

    async def test_rate_is_checked_at_stored_precision(self, session, ndfl_rule):
        service = RuleService(session)

        with pytest.raises(InvalidRateError):
            await service.add_version(
                "NDFL",
                effective_from=date(2025, 1, 1),
                resident_rate=Decimal("99.99999"),
                non_resident_rate=Decimal("30"),
            )

        versions = await service.list_versions("NDFL")
        assert [v.effective_from for v in versions] == [date(2020, 1, 1), date(2023, 1, 1)]
        outcome = await CalculationService(session).preview(
            "NDFL", Decimal("1000"), "grossToNet", "RESIDENT", date(2022, 6, 1)
        )
        assert outcome.result == Decimal("870.00")

    async def test_rates_rounded_to_stored_precision(self, session, ndfl_rule):
        version = await RuleService(session).add_version(
            "NDFL",
            effective_from=date(2025, 1, 1),
            resident_rate=Decimal("12.34567"),
            non_resident_rate=Decimal("30"),
        )

        assert version.resident_rate == Decimal("12.3457")
        snapshot = await RuleStore(session).load_snapshot("NDFL")
        assert snapshot.resolve_rate(date(2025, 6, 1), TaxStatus.RESIDENT) == Decimal("0.123457")

    async def test_create_rule_checks_stored_precision(self, session):
        with pytest.raises(InvalidRateError):
            await RuleService(session).create_rule(
                code="ROUNDS_UP",
                name_tr="x",
                name_ru="x",
                name_en="x",
                category="TAX",
                effective_from=date(2024, 1, 1),
                resident_rate=Decimal("13"),
                non_resident_rate=Decimal("99.99995"),
            )

    async def test_delete_referenced_version_is_locked(self, session, ndfl_rule):
        await CalculationService(session).convert(
            "NDFL", Decimal("1000"), "grossToNet", "RESIDENT", date(2022, 6, 1)
        )
        service = RuleService(session)
        versions = await service.list_versions("NDFL")

        with pytest.raises(RuleVersionLockedError) as exc_info:
            await service.delete_version("NDFL", versions[0].rule_version_id)

        assert exc_info.value.reference_count == 1

    async def test_delete_unreferenced_version(self, session, ndfl_rule):
        service = RuleService(session)
        versions = await service.list_versions("NDFL")

        await service.delete_version("NDFL", versions[1].rule_version_id, user_id="admin")

        remaining = await service.list_versions("NDFL")
        assert [v.effective_from for v in remaining] == [date(2020, 1, 1)]

        entries = await audit_entries(session, "PayrollRuleVersion")
        assert [e.action for e in entries] == ["DELETE"]
        assert entries[0].old_values["effective_from"] == "2023-01-01"

    async def test_delete_unknown_version(self, session, ndfl_rule):
        with pytest.raises(RuleVersionNotFoundError):
            await RuleService(session).delete_version("NDFL", uuid4())


class TestSeed:
    """Test default rule seeding."""

    async def test_seed_is_idempotent(self, session):
        assert await seed_defaults(session) == ["NDFL"]
        assert await seed_defaults(session) == []

        snapshot = await RuleStore(session).load_snapshot("NDFL")
        assert snapshot.resolve_rate(date(2024, 6, 1), TaxStatus.RESIDENT) == Decimal("0.13")
        assert snapshot.resolve_rate(date(2024, 6, 1), TaxStatus.NON_RESIDENT) == Decimal("0.30")
        assert await NumberingService(session).next_number("PAYROLL_CALCULATION") == "PAY-CALC-000001"
