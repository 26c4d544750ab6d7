from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion


def _document_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("number", models.CharField(blank=True, default="", max_length=50)),
        ("date", models.DateField()),
        ("branch", models.CharField(blank=True, default="", max_length=100)),
        ("status", models.CharField(
            choices=[("draft", "Draft"), ("posted", "Posted"), ("cancelled", "Cancelled")],
            default="draft",
            max_length=12,
        )),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        ("journal_entry", models.ForeignKey(
            blank=True,
            db_constraint=False,
            null=True,
            on_delete=django.db.models.deletion.DO_NOTHING,
            related_name="+",
            to="accounting.journalentry",
        )),
    ]


def _amount():
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)


PAYMENT_METHOD = [("cash", "Cash"), ("credit", "Credit")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounting", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Invoice",
            fields=_document_fields() + [
                ("customer_name", models.CharField(blank=True, default="", max_length=255)),
                ("payment_method", models.CharField(choices=PAYMENT_METHOD, default="cash", max_length=10)),
                ("subtotal", _amount()),
                ("discount", _amount()),
                ("tax", _amount()),
                ("total", _amount()),
            ],
            options={
                "ordering": ["-date", "-id"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="SupplierInvoice",
            fields=_document_fields() + [
                ("supplier_name", models.CharField(blank=True, default="", max_length=255)),
                ("payment_method", models.CharField(choices=PAYMENT_METHOD, default="cash", max_length=10)),
                ("subtotal", _amount()),
                ("discount", _amount()),
                ("tax", _amount()),
                ("total", _amount()),
            ],
            options={
                "ordering": ["-date", "-id"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="Expense",
            fields=_document_fields() + [
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("expense_account_code", models.CharField(max_length=20)),
                ("payment_account_code", models.CharField(
                    blank=True,
                    default="",
                    help_text="Defaults to the cash account",
                    max_length=20,
                )),
                ("total", _amount()),
            ],
            options={
                "ordering": ["-date", "-id"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="PayrollRun",
            fields=_document_fields() + [
                ("period", models.CharField(help_text="YYYY-MM", max_length=7)),
                ("gross_total", _amount()),
                ("deductions_total", _amount()),
                ("net_total", _amount()),
            ],
            options={
                "ordering": ["-date", "-id"],
                "abstract": False,
            },
        ),
    ]
