"""Rota payroll command line interface.

Provides operational tools for:
- Month reconciliation (table or JSON)
- Month approval
- Accountant email dispatch
- Schema creation

Usage:
    rota-payroll reconcile 2024 3
    rota-payroll reconcile 2024 3 --json
    rota-payroll approve 2024 3 --user-id UUID
    rota-payroll send-email 2024 3 --user-id UUID --user-email me@example.com
    rota-payroll init-db
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Callable
from uuid import UUID

from rota_payroll.config import configure_logging, get_settings
from rota_payroll.database import create_schema, dispose_db, get_session, init_db
from rota_payroll.exceptions import RotaPayrollError
from rota_payroll.notifications import build_sender
from rota_payroll.services.email_service import PayrollEmailService
from rota_payroll.services.payroll_service import PayrollService
from rota_payroll.services.permissions import Actor, GrantedPermissions


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


def _fmt(value: object) -> str:
    return "-" if value is None else str(value)


class PayrollCli:
    """Rota payroll Command Line Interface.

    Commands run with every permission granted; access control is the
    operator's shell account.
    """

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="rota-payroll",
            description="Rota payroll operational tools",
        )
        parser.add_argument("--log-level", type=str, help="Override LOG_LEVEL")
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        reconcile = subparsers.add_parser("reconcile", help="Reconcile a payroll month")
        reconcile.add_argument("year", type=int)
        reconcile.add_argument("month", type=int)
        reconcile.add_argument("--json", action="store_true", help="Print rows as JSON")

        approve = subparsers.add_parser("approve", help="Approve a payroll month")
        approve.add_argument("year", type=int)
        approve.add_argument("month", type=int)
        approve.add_argument("--user-id", type=parse_uuid, required=True, help="Approver ID")

        send = subparsers.add_parser("send-email", help="Email an approved month")
        send.add_argument("year", type=int)
        send.add_argument("month", type=int)
        send.add_argument("--user-id", type=parse_uuid, required=True, help="Sender ID")
        send.add_argument("--user-email", type=str, help="Address to CC")

        subparsers.add_parser("init-db", help="Create tables from ORM metadata")

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        configure_logging(parsed.log_level)

        handlers: dict[str, Callable[..., int]] = {
            "reconcile": self._cmd_reconcile,
            "approve": self._cmd_approve,
            "send-email": self._cmd_send_email,
            "init-db": self._cmd_init_db,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return handler(parsed)
        except RotaPayrollError as exc:
            print(f"Error [{exc.code}]: {exc.message}", file=sys.stderr)
            return 2

    def _actor(self, user_id: UUID | None, email: str | None = None) -> Actor:
        return Actor(user_id=user_id, email=email, permissions=GrantedPermissions.everything())

    def _cmd_reconcile(self, args: argparse.Namespace) -> int:
        """Print the reconciled month."""

        async def reconcile():
            try:
                async with get_session() as session:
                    return await PayrollService(session).get_month_data(
                        self._actor(None), args.year, args.month
                    )
            finally:
                await dispose_db()

        data = asyncio.run(reconcile())
        result = data.result

        if args.json:
            print(json.dumps(result.to_dict(), indent=2, sort_keys=True))
            return 0

        print(f"Payroll {args.year}-{args.month:02d}: {result.period_start} to {result.period_end}")
        print(f"  Rows: {len(result.rows)}  Fingerprint: {result.fingerprint[:12]}")
        print()
        for row in result.rows:
            print(
                f"  {row.date}  {row.employee_name:<24} "
                f"planned {_fmt(row.planned_hours):>6}  actual {_fmt(row.actual_hours):>6}  "
                f"rate {_fmt(row.hourly_rate):>6}  pay {_fmt(row.total_pay):>8}  {row.flags}"
            )
        print()
        for summary in result.summaries:
            print(
                f"  {summary.employee_name:<24} hours {summary.actual_hours:>7}  "
                f"pay {summary.total_pay:>9}"
            )
        print(f"\n  Total: {result.total_pay}")
        return 0

    def _cmd_approve(self, args: argparse.Namespace) -> int:
        """Approve a month."""

        async def approve():
            try:
                async with get_session() as session:
                    return await PayrollService(session).approve_month(
                        self._actor(args.user_id), args.year, args.month
                    )
            finally:
                await dispose_db()

        approval = asyncio.run(approve())
        print(f"Approved payroll {args.year}-{args.month:02d}")
        print(f"  Snapshot hash: {approval.snapshot_hash}")
        print(f"  Rows: {len(approval.snapshot.get('rows', []))}")
        return 0

    def _cmd_send_email(self, args: argparse.Namespace) -> int:
        """Send the accountant email for an approved month."""
        settings = get_settings()

        async def send():
            try:
                async with get_session() as session:
                    service = PayrollEmailService(session, build_sender(settings), settings)
                    return await service.send_payroll_email(
                        self._actor(args.user_id, args.user_email), args.year, args.month
                    )
            finally:
                await dispose_db()

        result = asyncio.run(send())
        if not result.sent:
            print(f"Email failed: {result.error}", file=sys.stderr)
            return 1
        print(f"Sent payroll email to {', '.join(result.to)}")
        if result.cc:
            print(f"  CC: {', '.join(result.cc)}")
        if result.alerted_employees:
            status = "sent" if result.alert_sent else "FAILED"
            print(f"  Earnings alert {status}: {', '.join(result.alerted_employees)}")
        return 0

    def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create all tables."""

        async def init():
            engine, _ = init_db()
            try:
                await create_schema(engine)
            finally:
                await dispose_db()

        asyncio.run(init())
        print("Schema created.")
        return 0


def main() -> int:
    """CLI entry point."""
    cli = PayrollCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
