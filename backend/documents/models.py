"""
Business documents that post to the ledger.

Amounts here are already computed by the owning modules (pricing, tax,
payroll). The ledger only turns them into balanced entries. A document
with status POSTED must carry exactly one valid journal_entry link; the
reconciliation audit reports any that don't.
"""

from decimal import Decimal

from django.db import models


class PostableDocument(models.Model):
    """Columns shared by every document table that can post."""

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        POSTED = "posted", "Posted"
        CANCELLED = "cancelled", "Cancelled"

    class PaymentMethod(models.TextChoices):
        CASH = "cash", "Cash"
        CREDIT = "credit", "Credit"

    # Posting reference type, a key of settings.LEDGER_REFERENCE_MODELS
    REFERENCE_TYPE = ""

    number = models.CharField(max_length=50, blank=True, default="")
    date = models.DateField()
    branch = models.CharField(max_length=100, blank=True, default="")
    status = models.CharField(
        max_length=12,
        choices=Status.choices,
        default=Status.DRAFT,
    )

    # Written by the ledger inside the posting transaction. No database
    # constraint so drift shows up in the reconciliation audit instead of
    # blocking writes.
    journal_entry = models.ForeignKey(
        "accounting.JournalEntry",
        null=True,
        blank=True,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="+",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["-date", "-id"]

    @property
    def display_number(self) -> str:
        return self.number or str(self.pk)


class Invoice(PostableDocument):
    REFERENCE_TYPE = "invoice"

    customer_name = models.CharField(max_length=255, blank=True, default="")
    payment_method = models.CharField(
        max_length=10,
        choices=PostableDocument.PaymentMethod.choices,
        default=PostableDocument.PaymentMethod.CASH,
    )
    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    discount = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))

    def __str__(self):
        return f"Invoice {self.display_number} ({self.status})"


class SupplierInvoice(PostableDocument):
    REFERENCE_TYPE = "supplier_invoice"

    supplier_name = models.CharField(max_length=255, blank=True, default="")
    payment_method = models.CharField(
        max_length=10,
        choices=PostableDocument.PaymentMethod.choices,
        default=PostableDocument.PaymentMethod.CASH,
    )
    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    discount = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))

    def __str__(self):
        return f"Supplier invoice {self.display_number} ({self.status})"


class Expense(PostableDocument):
    REFERENCE_TYPE = "expense"

    description = models.CharField(max_length=255, blank=True, default="")
    expense_account_code = models.CharField(max_length=20)
    payment_account_code = models.CharField(
        max_length=20,
        blank=True,
        default="",
        help_text="Defaults to the cash account",
    )
    total = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))

    def __str__(self):
        return f"Expense {self.display_number} ({self.status})"


class PayrollRun(PostableDocument):
    REFERENCE_TYPE = "payroll_run"

    period = models.CharField(max_length=7, help_text="YYYY-MM")
    gross_total = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    deductions_total = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    net_total = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))

    def __str__(self):
        return f"Payroll run {self.period} ({self.status})"
