# accounting/exceptions.py
"""
Typed rejections raised by the ledger core.

Every failure the ledger can report to a document module is one of these.
Commands raise them inside the posting transaction so the surrounding
``transaction.atomic()`` block rolls back, then convert them to a
``CommandResult`` on the way out.

Only ``StoreUnavailable`` is retryable. Every other kind is a deterministic
rejection: retrying with the same input reproduces it.
"""

from typing import Optional, Dict, Any


class LedgerError(Exception):
    """
    Base class for all ledger rejections.

    Carries:
    - code: stable machine-readable kind (used in CommandResult.code)
    - retryable: whether the caller may retry with backoff
    - details: additional context for logging and API payloads
    """

    code = "ledger_error"
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.details = details or {}
        super().__init__(message)

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary for logging/diagnostics."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": str(self),
            "retryable": self.retryable,
            "details": self.details,
        }


class LedgerValidationError(LedgerError):
    """Malformed request shape. Raised before any I/O."""

    code = "validation_error"


class EmptyEntry(LedgerValidationError):
    """
    Fewer than two lines, or a line with both sides set or both zero.
    """

    code = "empty_entry"


class UnbalancedEntry(LedgerError):
    """Debit total differs from credit total. Raised before any write."""

    code = "unbalanced"


class PeriodClosed(LedgerError):
    """The entry date falls in a closed (or, in strict mode, undefined) period."""

    code = "period_closed"


class AccountNotFound(LedgerError):
    code = "not_found"


class EntryNotFound(LedgerError):
    code = "not_found"


class AccountConflict(LedgerError):
    code = "conflict"


class AlreadyLinked(LedgerError):
    """
    The referenced document already carries a journal entry.

    This is the double-posting guard: evaluated inside the posting
    transaction with the document row locked, and backed by a unique
    constraint on (reference_type, reference_id) for active entries.
    """

    code = "already_linked"


class HasPostings(LedgerError):
    """The account is referenced by postings and cannot be deleted or retyped."""

    code = "has_postings"


class NotPosted(LedgerError):
    """Only posted entries can be reversed."""

    code = "not_posted"


class InvalidStatusTransition(LedgerError):
    code = "invalid_transition"


class StoreUnavailable(LedgerError):
    """
    Transient infrastructure failure (connection dropped, lock timeout).

    The only kind eligible for caller-side retry with backoff.
    """

    code = "store_unavailable"
    retryable = True
