# accounting/management/commands/seed_chart_of_accounts.py
"""
Management command to seed the default chart of accounts.

Usage:
    # Create every missing account of the default chart
    python manage.py seed_chart_of_accounts

    # Also open the current accounting period
    python manage.py seed_chart_of_accounts --open-current-period

Existing accounts are left untouched, so the command can be re-run.
"""

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from accounting.chart import DEFAULT_CHART
from accounting.commands import ensure_account, open_period
from accounting.models import Account
from accounting.periods import period_key


class Command(BaseCommand):
    """Seed the default chart of accounts."""

    help = "Create the default chart of accounts (idempotent)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--open-current-period",
            action="store_true",
            help="Open the accounting period containing today",
        )

    def handle(self, *args, **options):
        existing = set(Account.objects.values_list("code", flat=True))
        created = 0

        for code, name, name_ar, account_type, parent_code, is_contra in DEFAULT_CHART:
            result = ensure_account(
                None,
                code=code,
                name=name,
                name_ar=name_ar,
                account_type=account_type,
                parent_code=parent_code,
                is_contra=is_contra,
            )
            if not result.success:
                raise CommandError(f"Could not seed account {code}: {result.error}")
            if code not in existing:
                created += 1
                self.stdout.write(f"  Created {code} {name}")

        self.stdout.write(
            self.style.SUCCESS(
                f"Chart of accounts: {created} created, {len(DEFAULT_CHART) - created} already present"
            )
        )

        if options.get("open_current_period"):
            key = period_key(timezone.localdate())
            result = open_period(None, key)
            if not result.success:
                raise CommandError(f"Could not open period {key}: {result.error}")
            self.stdout.write(self.style.SUCCESS(f"Accounting period {key} is open"))
