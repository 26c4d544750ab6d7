from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="LedgerSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True)),
                ("next_value", models.BigIntegerField(default=1)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=20, unique=True)),
                ("name", models.CharField(max_length=255)),
                ("name_ar", models.CharField(blank=True, default="", max_length=255)),
                ("account_type", models.CharField(
                    choices=[("asset", "Asset"), ("liability", "Liability"), ("equity", "Equity"), ("revenue", "Revenue"), ("expense", "Expense")],
                    db_column="type",
                    max_length=20,
                )),
                ("nature", models.CharField(choices=[("debit", "Debit"), ("credit", "Credit")], max_length=10)),
                ("is_contra", models.BooleanField(default=False, help_text="Contra accounts carry the nature opposite to their type")),
                ("opening_balance", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("allow_manual_entry", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("parent", models.ForeignKey(
                    blank=True,
                    db_constraint=False,
                    null=True,
                    on_delete=django.db.models.deletion.DO_NOTHING,
                    related_name="children",
                    to="accounting.account",
                )),
            ],
            options={
                "ordering": ["code"],
                "indexes": [models.Index(fields=["account_type"], name="acct_type_idx")],
            },
        ),
        migrations.CreateModel(
            name="AccountingPeriod",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("period", models.CharField(help_text="YYYY-MM", max_length=7, unique=True)),
                ("status", models.CharField(choices=[("open", "Open"), ("closed", "Closed")], default="open", max_length=10)),
                ("opened_at", models.DateTimeField(blank=True, null=True)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("closed_by", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="closed_accounting_periods",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "ordering": ["period"],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("entry_number", models.PositiveBigIntegerField(
                    blank=True,
                    help_text="Allocated from LedgerSequence when the entry is posted",
                    null=True,
                    unique=True,
                )),
                ("description", models.TextField(blank=True, default="")),
                ("date", models.DateField()),
                ("period", models.CharField(help_text="YYYY-MM", max_length=7)),
                ("status", models.CharField(
                    choices=[("draft", "Draft"), ("posted", "Posted"), ("reversed", "Reversed")],
                    default="draft",
                    max_length=10,
                )),
                ("reference_type", models.CharField(blank=True, default="", max_length=50)),
                ("reference_id", models.BigIntegerField(blank=True, null=True)),
                ("branch", models.CharField(blank=True, default="", max_length=100)),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("reversed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="created_journal_entries",
                    to=settings.AUTH_USER_MODEL,
                )),
                ("posted_by", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="posted_journal_entries",
                    to=settings.AUTH_USER_MODEL,
                )),
                ("reversed_by", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="reversed_journal_entries",
                    to=settings.AUTH_USER_MODEL,
                )),
                ("reverses_entry", models.OneToOneField(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="reversal_entry",
                    to="accounting.journalentry",
                )),
            ],
            options={
                "ordering": ["-date", "-id"],
                "indexes": [
                    models.Index(fields=["date", "id"], name="je_date_id_idx"),
                    models.Index(fields=["status"], name="je_status_idx"),
                    models.Index(fields=["period"], name="je_period_idx"),
                    models.Index(fields=["reference_type", "reference_id"], name="je_reference_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "posted"), ("reverses_entry__isnull", True), ("reference_id__isnull", False)),
                        fields=("reference_type", "reference_id"),
                        name="uniq_active_entry_per_document",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalPosting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_no", models.PositiveIntegerField()),
                ("debit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("credit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="postings",
                    to="accounting.account",
                )),
                ("entry", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="postings",
                    to="accounting.journalentry",
                )),
            ],
            options={
                "ordering": ["entry", "line_no"],
                "unique_together": {("entry", "line_no")},
                "indexes": [models.Index(fields=["account", "entry"], name="posting_account_entry_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("debit__gt", 0), ("credit__gt", 0), _negated=True),
                        name="chk_posting_not_both_debit_credit",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("debit__exact", 0), ("credit__exact", 0), _negated=True),
                        name="chk_posting_not_both_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("debit__gte", 0), ("credit__gte", 0)),
                        name="chk_posting_non_negative",
                    ),
                ],
            },
        ),
    ]
