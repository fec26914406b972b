"""Pytest fixtures for payroll tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.config import Settings
from hr_payroll.database import Database
from hr_payroll.models import NumberingRule, PayrollRule, PayrollRuleVersion
from hr_payroll.services.calculation_service import CALCULATION_ENTITY

# In-memory SQLite shared through a single connection per test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def test_settings() -> Settings:
    """Settings pointing at the test database."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
    )


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[Database, None]:
    """Create a fresh test database with all tables."""
    db = Database.from_url(TEST_DATABASE_URL)
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with database.session_factory() as session:
        yield session
        await session.rollback()


async def add_ndfl_rule(session: AsyncSession, code: str = "NDFL") -> PayrollRule:
    """NDFL rule with two versions: 13% from 2020 and 15% from 2023."""
    rule = PayrollRule(
        rule_id=uuid4(),
        code=code,
        name_tr="NDFL",
        name_ru="НДФЛ",
        name_en="NDFL",
        category="TAX",
        is_active=True,
    )
    session.add(rule)
    await session.flush()

    session.add_all(
        [
            PayrollRuleVersion(
                rule_version_id=uuid4(),
                rule_id=rule.rule_id,
                effective_from=date(2020, 1, 1),
                resident_rate=Decimal("13.0000"),
                non_resident_rate=Decimal("30.0000"),
                is_percentage=True,
            ),
            PayrollRuleVersion(
                rule_version_id=uuid4(),
                rule_id=rule.rule_id,
                effective_from=date(2023, 1, 1),
                resident_rate=Decimal("15.0000"),
                non_resident_rate=Decimal("30.0000"),
                is_percentage=True,
            ),
        ]
    )
    session.add(
        NumberingRule(entity=CALCULATION_ENTITY, prefix="PAY-CALC-", pad_length=6, last_number=0)
    )
    await session.flush()
    return rule


@pytest_asyncio.fixture
async def ndfl_rule(session: AsyncSession) -> PayrollRule:
    """Seeded NDFL rule in the test session."""
    return await add_ndfl_rule(session)


@pytest_asyncio.fixture
async def seeded_database(database: Database) -> Database:
    """Database with the NDFL rule committed, for API tests."""
    async with database.session() as session:
        await add_ndfl_rule(session)
    return database
