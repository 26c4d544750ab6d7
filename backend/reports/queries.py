# reports/queries.py
"""
Ledger reader: balances, account ledgers and the trial balance.

Every aggregate reads effective posted entries only:
- status POSTED
- excluding mirrors whose original is already REVERSED

Drafts and reversed originals never reach an aggregate, and a completed
reversal drops both sides of the pair, so it nets to zero at every point
in time. While a reversal is half done (mirror posted, original still
POSTED) both sides are read and still cancel.

Balances are expressed on the account's nature: a debit-nature account's
balance is opening + debits - credits, a credit-nature account's is
opening + credits - debits.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from django.db.models import Q, Sum

from accounting import registry
from accounting.exceptions import LedgerValidationError
from accounting.models import Account, JournalEntry, JournalPosting


ZERO = Decimal("0.00")


def check_range(date_from: Optional[date], date_to: Optional[date]) -> None:
    if date_from and date_to and date_from > date_to:
        raise LedgerValidationError(
            f"Invalid date range: {date_from} is after {date_to}.",
            details={"date_from": str(date_from), "date_to": str(date_to)},
        )


def effective_posted():
    """JournalEntry queryset every aggregate reads from."""
    return (
        JournalEntry.objects
        .filter(status=JournalEntry.Status.POSTED)
        .exclude(reverses_entry__status=JournalEntry.Status.REVERSED)
    )


def effective_postings(date_from=None, date_to=None, branch=None):
    """JournalPosting queryset restricted to effective posted entries."""
    queryset = (
        JournalPosting.objects
        .filter(entry__status=JournalEntry.Status.POSTED)
        .exclude(entry__reverses_entry__status=JournalEntry.Status.REVERSED)
    )
    if date_from:
        queryset = queryset.filter(entry__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(entry__date__lte=date_to)
    if branch:
        queryset = queryset.filter(entry__branch=branch)
    return queryset


def signed(account: Account, debit: Decimal, credit: Decimal) -> Decimal:
    """Movement expressed on the account's nature."""
    if account.is_debit_nature:
        return debit - credit
    return credit - debit


def movement_by_account(date_from=None, date_to=None, branch=None) -> Dict[int, tuple]:
    """{account_id: (debit, credit)} over effective postings in range."""
    rows = (
        effective_postings(date_from, date_to, branch)
        .values("account_id")
        .annotate(debit=Sum("debit"), credit=Sum("credit"))
    )
    return {
        row["account_id"]: (row["debit"] or ZERO, row["credit"] or ZERO)
        for row in rows
    }


def account_balance(code: str, as_of: Optional[date] = None, branch: Optional[str] = None) -> Decimal:
    """
    Balance of one account on its nature, up to and including as_of.

    Raises AccountNotFound for an unknown code.
    """
    account = registry.get_account(code)
    totals = (
        effective_postings(date_to=as_of, branch=branch)
        .filter(account=account)
        .aggregate(debit=Sum("debit"), credit=Sum("credit"))
    )
    return account.opening_balance + signed(
        account, totals["debit"] or ZERO, totals["credit"] or ZERO
    )


# =============================================================================
# Account ledger
# =============================================================================

@dataclass
class LedgerLine:
    date: date
    entry_id: int
    entry_number: Optional[int]
    line_no: int
    description: str
    debit: Decimal
    credit: Decimal
    balance: Decimal
    reference_type: str = ""
    reference_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "entry_id": self.entry_id,
            "entry_number": self.entry_number,
            "line_no": self.line_no,
            "description": self.description,
            "debit": str(self.debit),
            "credit": str(self.credit),
            "balance": str(self.balance),
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
        }


@dataclass
class AccountLedger:
    account: Account
    opening: Decimal
    lines: List[LedgerLine] = field(default_factory=list)

    @property
    def closing(self) -> Decimal:
        return self.lines[-1].balance if self.lines else self.opening

    def to_dict(self) -> dict:
        return {
            "code": self.account.code,
            "name": self.account.name,
            "nature": self.account.nature,
            "opening": str(self.opening),
            "closing": str(self.closing),
            "lines": [line.to_dict() for line in self.lines],
        }


def account_ledger(code: str, date_from=None, date_to=None, branch=None) -> AccountLedger:
    """
    Chronological postings of one account with a running balance.

    The running balance starts from the opening balance plus all effective
    movement before date_from.
    """
    check_range(date_from, date_to)
    account = registry.get_account(code)

    opening = account.opening_balance
    if date_from:
        prior = (
            effective_postings(branch=branch)
            .filter(account=account, entry__date__lt=date_from)
            .aggregate(debit=Sum("debit"), credit=Sum("credit"))
        )
        opening += signed(account, prior["debit"] or ZERO, prior["credit"] or ZERO)

    postings = (
        effective_postings(date_from, date_to, branch)
        .filter(account=account)
        .select_related("entry")
        .order_by("entry__date", "entry__entry_number", "entry_id", "line_no")
    )

    ledger = AccountLedger(account=account, opening=opening)
    balance = opening
    for posting in postings:
        balance += signed(account, posting.debit, posting.credit)
        entry = posting.entry
        ledger.lines.append(LedgerLine(
            date=entry.date,
            entry_id=entry.id,
            entry_number=entry.entry_number,
            line_no=posting.line_no,
            description=entry.description,
            debit=posting.debit,
            credit=posting.credit,
            balance=balance,
            reference_type=entry.reference_type,
            reference_id=entry.reference_id,
        ))
    return ledger


# =============================================================================
# Trial balance
# =============================================================================

@dataclass
class TrialBalanceRow:
    account: Account
    beginning: Decimal
    debit: Decimal
    credit: Decimal
    ending: Decimal

    def to_dict(self) -> dict:
        return {
            "code": self.account.code,
            "name": self.account.name,
            "name_ar": self.account.name_ar,
            "account_type": self.account.account_type,
            "nature": self.account.nature,
            "beginning": str(self.beginning),
            "debit": str(self.debit),
            "credit": str(self.credit),
            "ending": str(self.ending),
        }


@dataclass
class TrialBalance:
    date_from: Optional[date]
    date_to: Optional[date]
    branch: Optional[str]
    rows: List[TrialBalanceRow] = field(default_factory=list)

    @property
    def total_debit(self) -> Decimal:
        return sum((row.debit for row in self.rows), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((row.credit for row in self.rows), ZERO)

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit

    def row(self, code: str) -> Optional[TrialBalanceRow]:
        return next((row for row in self.rows if row.account.code == code), None)

    def to_dict(self) -> dict:
        return {
            "date_from": self.date_from.isoformat() if self.date_from else None,
            "date_to": self.date_to.isoformat() if self.date_to else None,
            "branch": self.branch,
            "rows": [row.to_dict() for row in self.rows],
            "totals": {
                "debit": str(self.total_debit),
                "credit": str(self.total_credit),
            },
            "is_balanced": self.is_balanced,
        }


def trial_balance(date_from=None, date_to=None, branch=None, include_zero: bool = False) -> TrialBalance:
    """
    Per-account beginning balance, debit and credit movement in range, and
    ending balance.

    Accounts with no opening balance and no movement are skipped unless
    include_zero. totals.debit == totals.credit for any ledger whose
    entries all balance.
    """
    check_range(date_from, date_to)

    prior = movement_by_account(date_to=_day_before(date_from), branch=branch) if date_from else {}
    period = movement_by_account(date_from, date_to, branch)

    report = TrialBalance(date_from=date_from, date_to=date_to, branch=branch)
    for account in Account.objects.order_by("code"):
        prior_debit, prior_credit = prior.get(account.id, (ZERO, ZERO))
        debit, credit = period.get(account.id, (ZERO, ZERO))
        beginning = account.opening_balance + signed(account, prior_debit, prior_credit)

        if not include_zero and beginning == 0 and debit == 0 and credit == 0:
            continue

        report.rows.append(TrialBalanceRow(
            account=account,
            beginning=beginning,
            debit=debit,
            credit=credit,
            ending=beginning + signed(account, debit, credit),
        ))
    return report


def _day_before(value: date) -> date:
    return date.fromordinal(value.toordinal() - 1)


# =============================================================================
# Entry listings
# =============================================================================

def journal_entries(date_from=None, date_to=None, branch=None, status=None, reference_type=None):
    """
    Journal entries matching the filters, newest first, postings prefetched.

    Unlike the aggregates this listing can show any status.
    """
    check_range(date_from, date_to)
    if status and status not in JournalEntry.Status.values:
        raise LedgerValidationError(
            f"Unknown entry status '{status}'.",
            details={"status": status},
        )

    filters = Q()
    if date_from:
        filters &= Q(date__gte=date_from)
    if date_to:
        filters &= Q(date__lte=date_to)
    if branch:
        filters &= Q(branch=branch)
    if status:
        filters &= Q(status=status)
    if reference_type:
        filters &= Q(reference_type=reference_type)

    return (
        JournalEntry.objects
        .filter(filters)
        .select_related("reverses_entry")
        .prefetch_related("postings__account")
        .order_by("-date", "-id")
    )


def entries_for_reference(reference_type: str, reference_id: int):
    """Every entry that names a document, originals and mirrors, oldest first."""
    return (
        JournalEntry.objects
        .filter(reference_type=reference_type, reference_id=reference_id)
        .prefetch_related("postings__account")
        .order_by("id")
    )
