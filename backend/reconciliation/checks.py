# reconciliation/checks.py
"""
Ledger invariant checks.

Each check is a read-only function returning a list of Finding. A check
never raises for a violation it detects: violations are data. The auditor
(reconciliation.auditor) runs every check independently so one crashing
check does not hide the others.

Checks:
- balance: every posted or reversed entry balances to the cent
- orphan: every entry reference resolves to an existing document row
- duplicate_link: at most one active entry per document
- unlinked_document: posted documents carry a valid journal_entry link
- trial_balance: system-wide debit total equals credit total
- account_tree: no dangling parent pointers and no parent cycles
- empty_entry: posted entries have at least two postings
- pending_reversal: no mirror whose original is still posted
- unformalized_period: posted entries sit in defined periods

A completed reversal shares its document reference between the reversed
original and the mirror; neither counts as an active entry for the
duplicate_link check. A half-finished reversal (mirror posted, original
still posted) is reported by pending_reversal only.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from django.apps import apps
from django.conf import settings
from django.db.models import Count, Sum

from accounting import registry
from accounting.models import Account, AccountingPeriod, JournalEntry, JournalPosting
from accounting.posting import to_cents
from reports.queries import effective_postings


ERROR = "error"
WARNING = "warning"


@dataclass
class Finding:
    check: str
    severity: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.severity == ERROR

    def to_dict(self) -> dict:
        return {
            "check": self.check,
            "severity": self.severity,
            "message": self.message,
            "details": self.details,
        }


def _cents_to_str(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}{cents // 100}.{cents % 100:02d}"


def _reference_models() -> Dict[str, Any]:
    return {
        reference_type: apps.get_model(label)
        for reference_type, label in settings.LEDGER_REFERENCE_MODELS.items()
    }


# =============================================================================
# Entry checks
# =============================================================================

def check_balance() -> List[Finding]:
    """Every non-draft entry's postings sum to a zero delta."""
    entries = (
        JournalEntry.objects
        .exclude(status=JournalEntry.Status.DRAFT)
        .annotate(debit_total=Sum("postings__debit"), credit_total=Sum("postings__credit"))
        .values("id", "entry_number", "status", "debit_total", "credit_total")
        .order_by("id")
    )

    findings = []
    for entry in entries.iterator():
        delta = to_cents(entry["debit_total"] or 0) - to_cents(entry["credit_total"] or 0)
        if delta:
            findings.append(Finding(
                check="balance",
                severity=ERROR,
                message=f"Entry {entry['id']} (JE #{entry['entry_number']}) is out of balance by {_cents_to_str(delta)}.",
                details={
                    "entry_id": entry["id"],
                    "entry_number": entry["entry_number"],
                    "status": entry["status"],
                    "delta": _cents_to_str(delta),
                },
            ))
    return findings


def check_empty_entries() -> List[Finding]:
    """Non-draft entries with fewer than two postings."""
    entries = (
        JournalEntry.objects
        .exclude(status=JournalEntry.Status.DRAFT)
        .annotate(line_count=Count("postings"))
        .filter(line_count__lt=2)
        .values("id", "entry_number", "line_count")
        .order_by("id")
    )
    return [
        Finding(
            check="empty_entry",
            severity=ERROR,
            message=f"Entry {entry['id']} (JE #{entry['entry_number']}) has {entry['line_count']} posting(s).",
            details={"entry_id": entry["id"], "line_count": entry["line_count"]},
        )
        for entry in entries
    ]


def check_trial_balance() -> List[Finding]:
    """Global debit total equals global credit total."""
    findings = []
    scopes = {
        "effective": effective_postings(),
        "all_posted": JournalPosting.objects.exclude(entry__status=JournalEntry.Status.DRAFT),
    }
    for scope, postings in scopes.items():
        totals = postings.aggregate(debit=Sum("debit"), credit=Sum("credit"))
        delta = to_cents(totals["debit"] or 0) - to_cents(totals["credit"] or 0)
        if delta:
            findings.append(Finding(
                check="trial_balance",
                severity=ERROR,
                message=f"Trial balance ({scope}) is off by {_cents_to_str(delta)}.",
                details={
                    "scope": scope,
                    "debit": str(totals["debit"] or 0),
                    "credit": str(totals["credit"] or 0),
                    "delta": _cents_to_str(delta),
                },
            ))
    return findings


def check_pending_reversals() -> List[Finding]:
    """Mirrors posted while their original is still POSTED."""
    mirrors = (
        JournalEntry.objects
        .filter(reverses_entry__status=JournalEntry.Status.POSTED)
        .values("id", "entry_number", "reverses_entry_id", "reverses_entry__entry_number")
        .order_by("id")
    )
    return [
        Finding(
            check="pending_reversal",
            severity=WARNING,
            message=(
                f"JE #{mirror['entry_number']} reverses JE #{mirror['reverses_entry__entry_number']}, "
                "which is still posted. Re-run the reversal to finish it."
            ),
            details={"reversal_entry_id": mirror["id"], "entry_id": mirror["reverses_entry_id"]},
        )
        for mirror in mirrors
    ]


def check_unformalized_periods() -> List[Finding]:
    """Periods that hold posted entries but have no AccountingPeriod row."""
    used = set(
        JournalEntry.objects
        .exclude(status=JournalEntry.Status.DRAFT)
        .values_list("period", flat=True)
        .order_by()
        .distinct()
    )
    defined = set(AccountingPeriod.objects.values_list("period", flat=True))
    return [
        Finding(
            check="unformalized_period",
            severity=WARNING,
            message=f"Period {period} has posted entries but is not defined.",
            details={"period": period},
        )
        for period in sorted(used - defined)
    ]


# =============================================================================
# Document link checks
# =============================================================================

def check_orphans() -> List[Finding]:
    """Every entry reference resolves to an existing document row."""
    models = _reference_models()
    findings = []

    referenced = (
        JournalEntry.objects
        .exclude(reference_id__isnull=True)
        .values_list("reference_type", flat=True)
        .order_by()
        .distinct()
    )
    for reference_type in sorted(set(referenced)):
        entries = JournalEntry.objects.filter(
            reference_type=reference_type, reference_id__isnull=False,
        ).values_list("id", "reference_id")

        model = models.get(reference_type)
        if model is None:
            for entry_id, reference_id in entries:
                findings.append(Finding(
                    check="orphan",
                    severity=ERROR,
                    message=f"Entry {entry_id} references unknown document type '{reference_type}'.",
                    details={"entry_id": entry_id, "reference_type": reference_type, "reference_id": reference_id},
                ))
            continue

        entries = list(entries)
        existing = set(
            model.objects
            .filter(pk__in={reference_id for _, reference_id in entries})
            .values_list("pk", flat=True)
        )
        for entry_id, reference_id in entries:
            if reference_id not in existing:
                findings.append(Finding(
                    check="orphan",
                    severity=ERROR,
                    message=f"Entry {entry_id} references missing {reference_type} {reference_id}.",
                    details={"entry_id": entry_id, "reference_type": reference_type, "reference_id": reference_id},
                ))
    return findings


def check_duplicate_links() -> List[Finding]:
    """At most one active (posted, non-mirror) entry per document."""
    duplicates = (
        JournalEntry.objects
        .filter(
            status=JournalEntry.Status.POSTED,
            reverses_entry__isnull=True,
            reference_id__isnull=False,
        )
        .values("reference_type", "reference_id")
        .annotate(entry_count=Count("id"))
        .filter(entry_count__gt=1)
        .order_by("reference_type", "reference_id")
    )

    findings = []
    for row in duplicates:
        entry_ids = list(
            JournalEntry.objects
            .filter(
                status=JournalEntry.Status.POSTED,
                reverses_entry__isnull=True,
                reference_type=row["reference_type"],
                reference_id=row["reference_id"],
            )
            .order_by("id")
            .values_list("id", flat=True)
        )
        findings.append(Finding(
            check="duplicate_link",
            severity=ERROR,
            message=(
                f"{row['reference_type']} {row['reference_id']} has "
                f"{row['entry_count']} active journal entries."
            ),
            details={
                "reference_type": row["reference_type"],
                "reference_id": row["reference_id"],
                "entry_ids": entry_ids,
            },
        ))
    return findings


def check_unlinked_documents() -> List[Finding]:
    """
    Posted documents must carry a journal_entry link to an existing, active
    entry (posted, not a reversal) that names the document back.
    """
    findings = []
    for reference_type, model in _reference_models().items():
        documents = (
            model.objects
            .filter(status=model.Status.POSTED)
            .values_list("pk", "journal_entry_id")
            .order_by("pk")
        )
        documents = list(documents)
        entries = {
            entry["id"]: entry
            for entry in JournalEntry.objects.filter(
                pk__in={entry_id for _, entry_id in documents if entry_id is not None}
            ).values("id", "status", "reference_type", "reference_id", "reverses_entry_id")
        }

        for pk, entry_id in documents:
            details = {"reference_type": reference_type, "reference_id": pk, "journal_entry_id": entry_id}
            entry = entries.get(entry_id)
            if entry_id is None:
                message = f"Posted {reference_type} {pk} has no journal entry."
            elif entry is None:
                message = f"Posted {reference_type} {pk} links to missing journal entry {entry_id}."
            elif entry["status"] == JournalEntry.Status.DRAFT:
                message = f"Posted {reference_type} {pk} links to draft journal entry {entry_id}."
            elif entry["status"] == JournalEntry.Status.REVERSED:
                message = f"Posted {reference_type} {pk} links to reversed journal entry {entry_id}."
            elif entry["reverses_entry_id"] is not None:
                message = f"Posted {reference_type} {pk} links to reversal entry {entry_id}."
            elif (entry["reference_type"], entry["reference_id"]) != (reference_type, pk):
                message = f"Posted {reference_type} {pk} links to journal entry {entry_id} of another document."
            else:
                continue
            findings.append(Finding(
                check="unlinked_document",
                severity=WARNING,
                message=message,
                details=details,
            ))
    return findings


# =============================================================================
# Chart checks
# =============================================================================

def check_account_tree() -> List[Finding]:
    """Dangling parent pointers and parent cycles in the chart."""
    forest = registry.build_forest(Account.objects.all())
    findings = [
        Finding(
            check="account_tree",
            severity=ERROR,
            message=f"Account {code} points at a parent that does not exist.",
            details={"code": code},
        )
        for code in forest.dangling
    ]
    findings.extend(
        Finding(
            check="account_tree",
            severity=ERROR,
            message=f"Accounts {', '.join(cycle)} form a parent cycle.",
            details={"codes": cycle},
        )
        for cycle in forest.cycles
    )
    return findings


# Execution order of the full audit
CHECKS = {
    "balance": check_balance,
    "empty_entry": check_empty_entries,
    "trial_balance": check_trial_balance,
    "orphan": check_orphans,
    "duplicate_link": check_duplicate_links,
    "unlinked_document": check_unlinked_documents,
    "pending_reversal": check_pending_reversals,
    "unformalized_period": check_unformalized_periods,
    "account_tree": check_account_tree,
}
