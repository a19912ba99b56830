"""Payroll remittance command line interface.

Provides operational tools for:
- Period status, finalize and reopen
- CNAB400 generation to a file
- Inspecting an existing remittance file

Usage:
    python -m payroll_remittance.cli status --month 11 --year 2025
    python -m payroll_remittance.cli finalize --month 11 --year 2025 --actor ana --role PAYROLL
    python -m payroll_remittance.cli reopen --month 11 --year 2025 --actor bia --role FINANCE --reason "late bonus"
    python -m payroll_remittance.cli cnab400 --month 11 --year 2025 --actor bia --output CNAB400-11-2025.REM
    python -m payroll_remittance.cli inspect CNAB400-11-2025.REM
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable

from payroll_remittance.config import Settings, get_settings
from payroll_remittance.database import create_engine, create_schema, create_session_factory
from payroll_remittance.errors import RemittanceError
from payroll_remittance.money import Money
from payroll_remittance.remittance.cnab400 import Cnab400ItauEncoder
from payroll_remittance.remittance.types import PaymentFilter
from payroll_remittance.services.remittance_service import RemittanceService, company_profile
from payroll_remittance.services.state_machine import Actor, PayrollStateMachine, PeriodStatus


def _add_period_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--month", type=int, required=True, help="Period month (1-12)")
    parser.add_argument("--year", type=int, required=True, help="Period year")


def _add_actor_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--actor", type=str, required=True, help="Acting user id (audit)")
    parser.add_argument("--role", type=str, help="Acting user role")


class RemittanceCli:
    """Payroll remittance command line interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m payroll_remittance.cli",
            description="Payroll finalization and remittance tools",
        )
        parser.add_argument(
            "--database-url",
            type=str,
            help="Database URL (default: $DATABASE_URL)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # init-db command
        subparsers.add_parser("init-db", help="Create missing tables")

        # status command
        status = subparsers.add_parser("status", help="Show payroll period status")
        _add_period_arguments(status)

        # finalize command
        finalize = subparsers.add_parser("finalize", help="Finalize a payroll period")
        _add_period_arguments(finalize)
        _add_actor_arguments(finalize)

        # reopen command
        reopen = subparsers.add_parser("reopen", help="Reopen a finalized payroll period")
        _add_period_arguments(reopen)
        _add_actor_arguments(reopen)
        reopen.add_argument("--reason", type=str, help="Why the period is reopened")

        # cnab400 command
        cnab = subparsers.add_parser("cnab400", help="Generate the CNAB400 remittance file")
        _add_period_arguments(cnab)
        _add_actor_arguments(cnab)
        cnab.add_argument("--company", type=str, help="Company code filter")
        cnab.add_argument("--cost-center", type=str, help="Cost center code filter")
        cnab.add_argument(
            "--output",
            type=str,
            help="Output file path (default: the generated file name)",
        )

        # inspect command
        inspect = subparsers.add_parser("inspect", help="Decode and check a remittance file")
        inspect.add_argument("path", type=str, help="Path to a .REM file")
        inspect.add_argument(
            "--details",
            action="store_true",
            help="List every detail record",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        # Dispatch to command handler
        handlers: dict[str, Callable[..., int]] = {
            "init-db": self._database_command(self._cmd_init_db, create_tables=True),
            "status": self._database_command(self._cmd_status),
            "finalize": self._database_command(self._cmd_finalize),
            "reopen": self._database_command(self._cmd_reopen),
            "cnab400": self._database_command(self._cmd_cnab400),
            "inspect": self._cmd_inspect,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return handler(parsed)
        except RemittanceError as e:
            print(f"ERROR [{e.code}]: {e.message}", file=sys.stderr)
            for key, value in e.context.items():
                print(f"  {key}: {value}", file=sys.stderr)
            return 2

    # ------------------------------------------------------------------
    # Database plumbing
    # ------------------------------------------------------------------

    def _settings(self, args: argparse.Namespace) -> Settings:
        settings = get_settings()
        if args.database_url:
            settings = dataclasses.replace(settings, database_url=args.database_url)
        return settings

    def _database_command(
        self,
        command: Callable[[Any, Settings, argparse.Namespace], Awaitable[int]],
        create_tables: bool = False,
    ) -> Callable[[argparse.Namespace], int]:
        """Run an async command inside one committed session."""

        def run(args: argparse.Namespace) -> int:
            settings = self._settings(args)

            async def execute() -> int:
                engine = create_engine(settings.database_url)
                try:
                    if create_tables:
                        await create_schema(engine)
                    async with create_session_factory(engine)() as session:
                        result = await command(session, settings, args)
                        await session.commit()
                        return result
                finally:
                    await engine.dispose()

            return asyncio.run(execute())

        return run

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def _cmd_init_db(self, session: Any, settings: Settings, args: argparse.Namespace) -> int:
        """Create missing tables."""
        print("Schema is up to date.")
        return 0

    async def _cmd_status(self, session: Any, settings: Settings, args: argparse.Namespace) -> int:
        """Show payroll period status."""
        machine = PayrollStateMachine(session, settings)
        _print_status(await machine.get_status(args.month, args.year))
        return 0

    async def _cmd_finalize(self, session: Any, settings: Settings, args: argparse.Namespace) -> int:
        """Finalize a payroll period."""
        machine = PayrollStateMachine(session, settings)
        period = await machine.finalize(args.month, args.year, Actor(args.actor, args.role))
        _print_status(period)
        return 0

    async def _cmd_reopen(self, session: Any, settings: Settings, args: argparse.Namespace) -> int:
        """Reopen a finalized payroll period."""
        machine = PayrollStateMachine(session, settings)
        period = await machine.reopen(
            args.month,
            args.year,
            Actor(args.actor, args.role),
            args.reason,
        )
        _print_status(period)
        return 0

    async def _cmd_cnab400(self, session: Any, settings: Settings, args: argparse.Namespace) -> int:
        """Generate the CNAB400 remittance file."""
        service = RemittanceService(session, settings)
        generated = await service.generate_cnab400(
            PaymentFilter(
                month=args.month,
                year=args.year,
                company=args.company,
                cost_center=args.cost_center,
            ),
            Actor(args.actor, args.role),
        )
        output = Path(args.output or generated.filename)
        output.write_bytes(generated.content)

        print(f"Wrote {output}")
        print(f"  Sequence: {generated.sequence}")
        print(f"  Records: {generated.record_count}")
        print(f"  Total: {generated.total.format_brl()}")
        return 0

    def _cmd_inspect(self, args: argparse.Namespace) -> int:
        """Decode and check a remittance file."""
        settings = self._settings(args)
        encoder = Cnab400ItauEncoder(company_profile(settings))
        remittance = encoder.decode(Path(args.path).read_bytes())

        header = remittance.header
        print(f"Remittance file: {args.path}")
        print(f"  Bank: {header.bank_code} {header.bank_name}")
        print(f"  Company: {header.company_code} {header.company_name} ({header.company_document})")
        print(f"  Generated on: {header.generated_on.isoformat()}")
        print(f"  Sequence: {header.remittance_sequence}")
        print(f"  Records: {remittance.trailer.record_count}")
        print(f"  Total: {Money(remittance.trailer.total_amount_cents).format_brl()}")

        if args.details:
            print("\nDetails:")
            for detail in remittance.details:
                print(
                    f"  {detail.detail_number:>6} | {detail.name:<40} | "
                    f"{detail.bank_code} {detail.agency}-{detail.agency_check_digit} "
                    f"{detail.account}-{detail.account_check_digit} | "
                    f"{Money(detail.amount_cents).format_brl():>16}"
                )

        print("\nTrailer check: PASSED")
        return 0


def _print_status(period: PeriodStatus) -> None:
    print(f"Payroll period {period.month:02d}/{period.year}: {period.status.value}")
    if period.finalized_at is not None:
        print(f"  Finalized at: {period.finalized_at.isoformat()}")
        print(f"  Finalized by: {period.finalized_by}")
    for entry in period.reopen_history:
        reason = f" ({entry.reason})" if entry.reason else ""
        print(f"  Reopened at {entry.reopened_at.isoformat()} by {entry.reopened_by}{reason}")


def main() -> int:
    """CLI entry point."""
    cli = RemittanceCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
