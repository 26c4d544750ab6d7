# accounting/policies.py
"""
Business policy functions for ledger operations.

Policies answer: "Is this action allowed given the current state?"
They do NOT perform the action. That's the command's job.

Workflow rules (status transitions, immutability after posting) are
enforced HERE, not in model.save(). Models only enforce invariants that
are always true (an account's nature matches its type).

Usage:
    from accounting.policies import can_delete_account

    allowed, reason = can_delete_account(account)
    if not allowed:
        raise HasPostings(reason)

Design Principles:
1. Policies are pure functions (no writes)
2. Policies return (bool, str) tuples for clear error messages
3. Policies check ONE thing conceptually
4. Commands compose policies and pick the error kind to raise
"""


# =============================================================================
# Account Policies
# =============================================================================

def can_delete_account(account) -> tuple[bool, str]:
    """
    Check if an account can be deleted.

    Rules:
    - Cannot have postings (posted, reversed or draft)
    """
    if account.postings.exists():
        return False, f"Cannot delete account {account.code}: it has postings."
    return True, ""


def can_change_account_classification(account) -> tuple[bool, str]:
    """
    Check if type / nature / contra flag can be changed.

    Rules:
    - Cannot reclassify an account once postings reference it
    """
    if account.postings.exists():
        return False, f"Cannot change the classification of account {account.code}: it has postings."
    return True, ""


def can_reparent(account, new_parent, parent_of: dict) -> tuple[bool, str]:
    """
    Check if an account can be moved under new_parent.

    Args:
        account: Account being moved
        new_parent: Target parent Account (or None for a root)
        parent_of: {account_id: parent_id} for the whole chart

    Rules:
    - Cannot be its own parent
    - Cannot move under one of its own descendants
    """
    if new_parent is None:
        return True, ""
    if new_parent.pk == account.pk:
        return False, "An account cannot be its own parent."

    seen = set()
    current = new_parent.pk
    while current is not None and current not in seen:
        if current == account.pk:
            return False, f"Account {new_parent.code} is a descendant of {account.code}."
        seen.add(current)
        current = parent_of.get(current)
    return True, ""


def can_post_manually(account) -> tuple[bool, str]:
    """Manual (draft) entries may only use accounts flagged for manual entry."""
    if not account.allow_manual_entry:
        return False, f"Account {account.code} does not allow manual entries."
    return True, ""


# =============================================================================
# Journal Entry Policies
# =============================================================================

def validate_status_transition(old_status, new_status) -> tuple[bool, str]:
    """
    Validate a journal entry status transition.

    Allowed transitions:
    - DRAFT -> POSTED (post)
    - POSTED -> REVERSED (reversal marks original)

    Everything else, including re-posting a posted entry, is rejected.
    Draft deletion is not a transition: the row goes away.
    """
    from accounting.models import JournalEntry

    allowed_transitions = {
        (JournalEntry.Status.DRAFT, JournalEntry.Status.POSTED),
        (JournalEntry.Status.POSTED, JournalEntry.Status.REVERSED),
    }

    if (old_status, new_status) in allowed_transitions:
        return True, ""

    return False, f"Invalid status transition: {old_status} -> {new_status}"


def can_delete_entry(entry) -> tuple[bool, str]:
    """
    Check if a journal entry can be deleted.

    Rules:
    - Only DRAFT entries can be deleted
    """
    from accounting.models import JournalEntry

    if entry.status != JournalEntry.Status.DRAFT:
        return False, f"Cannot delete a {entry.status} entry. Reverse it instead."
    return True, ""


def can_reverse_entry(entry) -> tuple[bool, str]:
    """
    Check if a journal entry can be reversed.

    Rules:
    - Must be POSTED
    - Reversal mirrors themselves are not reversed again
    """
    from accounting.models import JournalEntry

    if entry.status != JournalEntry.Status.POSTED:
        return False, f"Only posted entries can be reversed (entry is {entry.status})."
    if entry.reverses_entry_id is not None:
        return False, "A reversal entry cannot itself be reversed."
    return True, ""


# =============================================================================
# Period Policies
# =============================================================================

def can_post_to_period(period, require_defined: bool = False) -> tuple[bool, str]:
    """
    Check if posting is allowed into a period.

    Args:
        period: AccountingPeriod row or None when no row exists
        require_defined: strict mode, undefined periods are rejected

    Rules:
    - Undefined periods are open unless require_defined
    - Period must be OPEN
    """
    if period is None:
        if require_defined:
            return False, "No accounting period is defined for this date."
        return True, ""

    if not period.is_open:
        return False, f"Accounting period {period.period} is closed."

    return True, ""


# =============================================================================
# Document Link Policies
# =============================================================================

def can_link_document(document) -> tuple[bool, str]:
    """
    Check if a document can receive a journal entry link.

    Rules:
    - The document must not already carry a journal entry
    """
    if document.journal_entry_id is not None:
        return False, (
            f"Document {document.pk} is already linked to journal entry "
            f"{document.journal_entry_id}."
        )
    return True, ""
