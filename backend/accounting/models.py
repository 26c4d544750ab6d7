"""
Ledger models.

Tables:
- Account: chart of accounts (hierarchical, flat parent pointers)
- AccountingPeriod: month buckets whose open/closed status gates postings
- JournalEntry: one balanced transaction (draft -> posted -> reversed)
- JournalPosting: one debit-or-credit line of an entry
- LedgerSequence: row-locked counters for entry numbers

DO NOT write to these tables directly. All mutations go through the
command layer (accounting/commands.py), which validates requests, enforces
workflow policies and keeps every posting inside one transaction.
Posted and reversed entries are never updated in place: corrections are
new entries.
"""

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q, Sum


class LedgerSequence(models.Model):
    """
    Named counters for sequential identifiers.

    Commands read and increment a row under select_for_update inside the
    posting transaction, so concurrent writers never receive the same value
    and a rolled-back posting gives its value back.
    """

    name = models.CharField(max_length=100, unique=True)
    next_value = models.BigIntegerField(default=1)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name}={self.next_value}"


class Account(models.Model):
    """
    Chart of Accounts entry.

    Supports:
    - Hierarchical structure (parent/child, parent owns ordering only)
    - Account types with a debit/credit nature
    - Contra accounts (nature opposite to the type's usual side)
    - Bilingual names (English/Arabic)
    """

    class AccountType(models.TextChoices):
        ASSET = "asset", "Asset"
        LIABILITY = "liability", "Liability"
        EQUITY = "equity", "Equity"
        REVENUE = "revenue", "Revenue"
        EXPENSE = "expense", "Expense"

    class Nature(models.TextChoices):
        DEBIT = "debit", "Debit"
        CREDIT = "credit", "Credit"

    # Map account types to the side that increases their balance
    NATURE_MAP = {
        AccountType.ASSET: Nature.DEBIT,
        AccountType.EXPENSE: Nature.DEBIT,
        AccountType.LIABILITY: Nature.CREDIT,
        AccountType.EQUITY: Nature.CREDIT,
        AccountType.REVENUE: Nature.CREDIT,
    }

    code = models.CharField(max_length=20, unique=True)

    # Multilingual names
    name = models.CharField(max_length=255)
    name_ar = models.CharField(max_length=255, blank=True, default="")

    account_type = models.CharField(
        max_length=20,
        choices=AccountType.choices,
        db_column="type",
    )
    nature = models.CharField(max_length=10, choices=Nature.choices)
    is_contra = models.BooleanField(
        default=False,
        help_text="Contra accounts carry the nature opposite to their type",
    )

    # Hierarchy. No database constraint: a dangling parent is tolerated at
    # read time (promoted to a root) and reported by the reconciliation audit.
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="children",
    )

    opening_balance = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    allow_manual_entry = models.BooleanField(default=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        indexes = [
            models.Index(fields=["account_type"], name="acct_type_idx"),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    def get_localized_name(self, language: str = "en") -> str:
        """Get name in specified language, fallback to English."""
        if language == "ar" and self.name_ar:
            return self.name_ar
        return self.name

    @classmethod
    def expected_nature(cls, account_type: str, is_contra: bool = False) -> str:
        nature = cls.NATURE_MAP[account_type]
        if is_contra:
            return cls.Nature.CREDIT if nature == cls.Nature.DEBIT else cls.Nature.DEBIT
        return nature

    @property
    def is_debit_nature(self) -> bool:
        return self.nature == self.Nature.DEBIT

    def clean(self):
        if self.account_type not in self.NATURE_MAP:
            raise ValidationError(f"Unknown account type '{self.account_type}'.")
        expected = self.expected_nature(self.account_type, self.is_contra)
        if self.nature != expected:
            raise ValidationError(
                f"Account {self.code}: nature '{self.nature}' does not match "
                f"type '{self.account_type}' (expected '{expected}')."
            )

    def save(self, *args, **kwargs):
        # Invariant: nature follows type unless flagged contra
        if not self.nature and self.account_type in self.NATURE_MAP:
            self.nature = self.expected_nature(self.account_type, self.is_contra)
        self.clean()
        super().save(*args, **kwargs)


class AccountingPeriod(models.Model):
    """
    Calendar-month bucket gating new postings.

    A period row that does not exist is treated as open unless
    LEDGER_REQUIRE_DEFINED_PERIOD is set. Closing a period does not touch
    entries already posted in it.
    """

    class Status(models.TextChoices):
        OPEN = "open", "Open"
        CLOSED = "closed", "Closed"

    period = models.CharField(max_length=7, unique=True, help_text="YYYY-MM")
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.OPEN,
    )
    opened_at = models.DateTimeField(null=True, blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="closed_accounting_periods",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["period"]

    def __str__(self):
        return f"{self.period} ({self.status})"

    @staticmethod
    def key_for(value) -> str:
        """Period key for a date: 'YYYY-MM'."""
        return f"{value.year:04d}-{value.month:02d}"

    @property
    def is_open(self) -> bool:
        return self.status == self.Status.OPEN


class JournalEntry(models.Model):
    """
    Journal Entry header.

    Workflow: DRAFT -> POSTED -> REVERSED
    - DRAFT: manual entry being prepared, may be unbalanced, no number
    - POSTED: balanced, numbered, affects account balances
    - REVERSED: cancelled by a mirror entry (reverses_entry points back)

    Entries can also be created directly as POSTED by document modules.
    """

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        POSTED = "posted", "Posted"
        REVERSED = "reversed", "Reversed"

    entry_number = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        unique=True,
        help_text="Allocated from LedgerSequence when the entry is posted",
    )
    description = models.TextField(blank=True, default="")
    date = models.DateField()
    period = models.CharField(max_length=7, help_text="YYYY-MM")
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.DRAFT,
    )

    # Owning document
    reference_type = models.CharField(max_length=50, blank=True, default="")
    reference_id = models.BigIntegerField(null=True, blank=True)

    branch = models.CharField(max_length=100, blank=True, default="")

    # Posting metadata
    posted_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="posted_journal_entries",
    )

    # Reversal metadata
    reversed_at = models.DateTimeField(null=True, blank=True)
    reversed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="reversed_journal_entries",
    )
    reverses_entry = models.OneToOneField(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="reversal_entry",
    )

    # Audit
    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="created_journal_entries",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date", "-id"]
        indexes = [
            models.Index(fields=["date", "id"], name="je_date_id_idx"),
            models.Index(fields=["status"], name="je_status_idx"),
            models.Index(fields=["period"], name="je_period_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="je_reference_idx"),
        ]
        constraints = [
            # One active entry per document. Mirrors, drafts and reversed
            # originals are outside the lineage check.
            models.UniqueConstraint(
                fields=["reference_type", "reference_id"],
                condition=(
                    Q(status="posted")
                    & Q(reverses_entry__isnull=True)
                    & Q(reference_id__isnull=False)
                ),
                name="uniq_active_entry_per_document",
            ),
        ]

    def __str__(self):
        num = self.entry_number or f"#{self.id}"
        return f"JE {num} ({self.date}) {self.status}"

    @property
    def has_reference(self) -> bool:
        return bool(self.reference_type) and self.reference_id is not None

    @property
    def is_reversal(self) -> bool:
        return self.reverses_entry_id is not None

    @property
    def total_debit(self) -> Decimal:
        return self.postings.aggregate(total=Sum("debit"))["total"] or Decimal("0.00")

    @property
    def total_credit(self) -> Decimal:
        return self.postings.aggregate(total=Sum("credit"))["total"] or Decimal("0.00")

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


class JournalPosting(models.Model):
    """
    Individual line within a journal entry.
    Each line affects one account with either a debit or credit amount.
    """

    entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="postings",
    )
    line_no = models.PositiveIntegerField()
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="postings",
    )
    debit = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    credit = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        unique_together = ("entry", "line_no")
        ordering = ["entry", "line_no"]
        constraints = [
            models.CheckConstraint(
                condition=~(Q(debit__gt=0) & Q(credit__gt=0)),
                name="chk_posting_not_both_debit_credit",
            ),
            models.CheckConstraint(
                condition=~(Q(debit__exact=0) & Q(credit__exact=0)),
                name="chk_posting_not_both_zero",
            ),
            models.CheckConstraint(
                condition=Q(debit__gte=0) & Q(credit__gte=0),
                name="chk_posting_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["account", "entry"], name="posting_account_entry_idx"),
        ]

    def __str__(self):
        return f"JE#{self.entry_id} L{self.line_no}"

    @property
    def amount(self) -> Decimal:
        """Returns the non-zero amount (debit or credit)."""
        return self.debit if self.debit > 0 else self.credit

    @property
    def is_debit(self) -> bool:
        return self.debit > 0
