# reconciliation/management/commands/audit_ledger.py
"""
Management command to run the reconciliation audit.

Usage:
    # Run every check and print findings
    python manage.py audit_ledger

    # Run selected checks only
    python manage.py audit_ledger --check balance --check trial_balance

    # Machine-readable report
    python manage.py audit_ledger --json

    # Exit non-zero when any error-severity finding is reported (for cron/CI)
    python manage.py audit_ledger --fail-on-error

    # List available checks
    python manage.py audit_ledger --list
"""

import json

from django.core.management.base import BaseCommand, CommandError

from accounting.exceptions import LedgerValidationError
from reconciliation.auditor import run_audit
from reconciliation.checks import CHECKS


class Command(BaseCommand):
    """Run the ledger reconciliation audit."""

    help = "Re-verify ledger invariants and report violations"

    def add_arguments(self, parser):
        parser.add_argument(
            "--check",
            action="append",
            dest="checks",
            help="Run only this check (repeatable)",
        )
        parser.add_argument(
            "--json",
            action="store_true",
            dest="as_json",
            help="Print the report as JSON",
        )
        parser.add_argument(
            "--fail-on-error",
            action="store_true",
            help="Exit with an error when any error-severity finding is reported",
        )
        parser.add_argument(
            "--list",
            action="store_true",
            help="List available checks",
        )

    def handle(self, *args, **options):
        if options["list"]:
            for name, check in CHECKS.items():
                summary = (check.__doc__ or "").strip().splitlines()[0] if check.__doc__ else ""
                self.stdout.write(f"  {name:<22} {summary}")
            return

        try:
            report = run_audit(options.get("checks"))
        except LedgerValidationError as exc:
            raise CommandError(str(exc))

        if options["as_json"]:
            self.stdout.write(json.dumps(report.to_dict(), indent=2, default=str))
        else:
            self._print_report(report)

        if options["fail_on_error"] and not report.ok:
            raise CommandError(f"Ledger audit found {len(report.errors)} error(s)")

    def _print_report(self, report):
        self.stdout.write(f"Checks run: {', '.join(report.checks_run)}")

        for finding in report.findings:
            line = f"  [{finding.severity.upper()}] {finding.check}: {finding.message}"
            if finding.is_error:
                self.stdout.write(self.style.ERROR(line))
            else:
                self.stdout.write(self.style.WARNING(line))

        summary = f"{len(report.errors)} error(s), {len(report.warnings)} warning(s)"
        if report.ok:
            self.stdout.write(self.style.SUCCESS(f"Ledger audit passed: {summary}"))
        else:
            self.stdout.write(self.style.ERROR(f"Ledger audit failed: {summary}"))
