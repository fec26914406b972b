"""Payroll Command Line Interface.

Provides operational tools for:
- Schema creation
- Seeding default rules
- Ad-hoc gross/net conversion
- Listing rules with their current rates

Usage:
    python -m hr_payroll.cli init-db
    python -m hr_payroll.cli seed
    python -m hr_payroll.cli convert --amount 1000 --direction grossToNet \\
        --tax-status RESIDENT --date 2024-06-01
    python -m hr_payroll.cli rules
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable

from pydantic_core import to_jsonable_python

from hr_payroll.calculators.types import CalculationError, ConversionDirection, TaxStatus
from hr_payroll.config import Settings, get_settings
from hr_payroll.database import Database
from hr_payroll.seed import seed_defaults
from hr_payroll.services.calculation_service import CalculationService
from hr_payroll.services.rule_service import RuleService
from hr_payroll.services.rule_store import RuleNotFoundError


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_decimal(s: str) -> Decimal:
    """Parse decimal amount."""
    try:
        value = Decimal(s)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid amount: {s!r}") from None
    if not value.is_finite():
        raise argparse.ArgumentTypeError(f"amount must be a finite number: {s!r}")
    return value


class PayrollCli:
    """Payroll Command Line Interface."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m hr_payroll.cli",
            description="Payroll rule and conversion tools",
        )
        parser.add_argument(
            "--database-url",
            type=str,
            help="Database URL (default: $DATABASE_URL)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create database tables")

        seed = subparsers.add_parser("seed", help="Install default rules and numbering")
        seed.add_argument("--user-id", type=str, help="Recorded as the author")

        convert = subparsers.add_parser("convert", help="Convert gross/net salary")
        convert.add_argument("--amount", type=parse_decimal, required=True)
        convert.add_argument(
            "--direction",
            type=str,
            choices=[d.value for d in ConversionDirection],
            required=True,
        )
        convert.add_argument(
            "--tax-status",
            type=str,
            choices=[s.value for s in TaxStatus],
            default=TaxStatus.RESIDENT.value,
        )
        convert.add_argument(
            "--date",
            type=parse_date,
            default=date.today(),
            help="Effective date (ISO format, default today)",
        )
        convert.add_argument(
            "--rule-code",
            type=str,
            help="Rule code (default: $NDFL_RULE_CODE)",
        )

        rules = subparsers.add_parser("rules", help="List rules and current rates")
        rules.add_argument("--category", type=str, help="Filter by category")
        rules.add_argument(
            "--as-of",
            type=parse_date,
            help="Show versions in force on this date (default today)",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        handlers: dict[str, Callable[[Database, argparse.Namespace], Awaitable[int]]] = {
            "init-db": self._cmd_init_db,
            "seed": self._cmd_seed,
            "convert": self._cmd_convert,
            "rules": self._cmd_rules,
        }
        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        return asyncio.run(self._dispatch(handler, parsed))

    async def _dispatch(
        self,
        handler: Callable[[Database, argparse.Namespace], Awaitable[int]],
        args: argparse.Namespace,
    ) -> int:
        database = Database.from_url(args.database_url or self.settings.database_url)
        try:
            return await handler(database, args)
        except (CalculationError, RuleNotFoundError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2
        finally:
            await database.dispose()

    async def _cmd_init_db(self, database: Database, args: argparse.Namespace) -> int:
        """Create tables."""
        await database.create_all()
        print("Database tables created.")
        return 0

    async def _cmd_seed(self, database: Database, args: argparse.Namespace) -> int:
        """Install default rules."""
        async with database.session() as session:
            created = await seed_defaults(session, user_id=args.user_id)
        if created:
            print(f"Created rules: {', '.join(created)}")
        else:
            print("Default rules already present.")
        return 0

    async def _cmd_convert(self, database: Database, args: argparse.Namespace) -> int:
        """Convert an amount without recording it."""
        async with database.session() as session:
            outcome = await CalculationService(session).preview(
                rule_code=args.rule_code or self.settings.ndfl_rule_code,
                amount=args.amount,
                direction=args.direction,
                tax_status=args.tax_status,
                as_of_date=args.date,
            )

        output: dict[str, Any] = {
            "amount": outcome.amount,
            "direction": outcome.direction.value,
            "taxStatus": outcome.tax_status.value,
            "date": outcome.as_of_date,
            "result": outcome.result,
            "rateApplied": outcome.rate_applied,
            "taxAmount": outcome.tax_amount,
            "ruleVersionId": outcome.rule_version_id,
        }
        print(json.dumps(to_jsonable_python(output), indent=2))
        return 0

    async def _cmd_rules(self, database: Database, args: argparse.Namespace) -> int:
        """List rules with the version in force."""
        async with database.session() as session:
            listing = await RuleService(session).list_rules(
                category=args.category, as_of=args.as_of
            )

        if not listing:
            print("No payroll rules found.")
            return 0

        for item in listing:
            version = item.current_version
            if version is None:
                print(f"{item.rule.code:<20} {item.rule.category:<12} (no version in force)")
                continue
            rates = version.to_rule_version()
            print(
                f"{item.rule.code:<20} {item.rule.category:<12} "
                f"from {version.effective_from}  "
                f"resident={rates.resident_rate:.4f}  "
                f"non_resident={rates.non_resident_rate:.4f}"
            )
        return 0


def main() -> None:
    """CLI entry point."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(PayrollCli(settings).run())


if __name__ == "__main__":
    main()
