# accounting/commands.py
"""
Command layer for ledger operations.

Commands are the single point where ledger state changes.
Document modules, management commands and tasks call commands; commands
enforce rules and write inside one transaction.

Pattern:
1. Validate the request shape and amounts (no I/O)
2. Apply business policies (can_*)
3. Perform the operation inside transaction.atomic()
4. Return CommandResult

Failures are raised as accounting.exceptions.LedgerError subclasses inside
the transaction, so it rolls back, and only converted to a failed
CommandResult after the atomic block has exited. No failure path commits a
row.
"""

import functools
import logging
from typing import Optional

from django.apps import apps
from django.conf import settings
from django.db import IntegrityError, InterfaceError, OperationalError, transaction
from django.utils import timezone

from accounting import periods, registry
from accounting.exceptions import (
    AccountConflict,
    AccountNotFound,
    AlreadyLinked,
    EntryNotFound,
    HasPostings,
    InvalidStatusTransition,
    LedgerError,
    LedgerValidationError,
    NotPosted,
    StoreUnavailable,
)
from accounting.models import (
    Account,
    AccountingPeriod,
    JournalEntry,
    JournalPosting,
    LedgerSequence,
)
from accounting.policies import (
    can_change_account_classification,
    can_delete_account,
    can_delete_entry,
    can_link_document,
    can_post_manually,
    can_reparent,
    can_reverse_entry,
    validate_status_transition,
)
from accounting.posting import (
    DocumentReference,
    PostingLine,
    PostingRequest,
    check_balanced,
    validate_request,
)

logger = logging.getLogger(__name__)


ENTRY_NUMBER_SEQUENCE = "journal_entry_number"


class CommandResult:
    """
    Wrapper for command results with success/failure info.

    Usage:
        result = post_entry(actor, request)
        if result.success:
            entry = result.data
        else:
            error_message = result.error
            kind = result.code   # e.g. "unbalanced", "already_linked"
    """

    def __init__(self, success: bool, data=None, error: str = None, code: str = None, details=None):
        self.success = success
        self.data = data
        self.error = error
        self.code = code
        self.details = details or {}

    def __repr__(self):
        if self.success:
            return f"CommandResult(ok, data={self.data!r})"
        return f"CommandResult(fail, code={self.code!r}, error={self.error!r})"

    @property
    def retryable(self) -> bool:
        return self.code == StoreUnavailable.code

    @classmethod
    def ok(cls, data=None):
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, code: str = "ledger_error", details=None):
        return cls(success=False, error=error, code=code, details=details)

    @classmethod
    def from_error(cls, exc: LedgerError):
        return cls.fail(str(exc), code=exc.code, details=exc.details)


def ledger_command(func):
    """
    Turn a raising command body into a CommandResult-returning command.

    The body does its own transaction.atomic() blocks; by the time an
    exception reaches this wrapper they have rolled back.
    """

    name = func.__name__.lstrip("_")

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            data = func(*args, **kwargs)
        except LedgerError as exc:
            logger.warning(
                "%s rejected: %s", name, exc,
                extra={"command": name, "error": exc.to_dict()},
            )
            return CommandResult.from_error(exc)
        except (OperationalError, InterfaceError) as exc:
            error = StoreUnavailable(f"Ledger store unavailable: {exc}")
            logger.error(
                "%s failed: %s", name, error,
                extra={"command": name, "error": error.to_dict()},
            )
            return CommandResult.from_error(error)
        return CommandResult.ok(data)

    return wrapper


def _user(actor):
    """The user row to stamp on audit columns, if any."""
    if actor is None or not getattr(actor, "is_authenticated", False):
        return None
    return actor


def _next_sequence(name: str) -> int:
    """
    Allocate the next value of a named sequence.
    Uses select_for_update to avoid concurrent duplicates; must run inside
    the caller's transaction so a rollback returns the value.
    """
    try:
        seq = LedgerSequence.objects.select_for_update().get(name=name)
    except LedgerSequence.DoesNotExist:
        try:
            with transaction.atomic():
                seq = LedgerSequence.objects.create(name=name, next_value=1)
        except IntegrityError:
            seq = LedgerSequence.objects.select_for_update().get(name=name)

    value = seq.next_value
    seq.next_value = value + 1
    seq.save(update_fields=["next_value", "updated_at"])
    return value


# =============================================================================
# Account Commands
# =============================================================================

def _get_parent(parent_code: Optional[str]):
    if not parent_code:
        return None
    return registry.get_account(parent_code)


def _check_nature(code, account_type, nature, is_contra) -> str:
    if account_type not in Account.NATURE_MAP:
        raise LedgerValidationError(
            f"Unknown account type '{account_type}'.",
            details={"code": code, "account_type": account_type},
        )
    expected = Account.expected_nature(account_type, is_contra)
    if nature is None:
        return expected
    if nature != expected:
        raise LedgerValidationError(
            f"Nature '{nature}' does not match type '{account_type}'"
            + (" for a contra account." if is_contra else ". Flag the account as contra to override."),
            details={"code": code, "account_type": account_type, "nature": nature},
        )
    return nature


def _create_account(
    actor,
    name: str,
    account_type: str,
    code: Optional[str] = None,
    nature: Optional[str] = None,
    parent_code: Optional[str] = None,
    is_contra: bool = False,
    name_ar: str = "",
    opening_balance=0,
    allow_manual_entry: bool = True,
):
    """
    Create a new account in the chart of accounts.

    Args:
        actor: The acting user (None for system jobs)
        name: Account name (English)
        account_type: One of Account.AccountType values
        code: Account code; auto-assigned under parent_code when omitted
        nature: debit/credit; derived from account_type when omitted
        parent_code: Optional parent account code
        is_contra: Contra account, nature opposite to the type's side
        name_ar: Arabic name (optional)
        opening_balance: Opening balance in the account's nature

    Returns:
        CommandResult with the created Account, or a failure with code
        not_found (parent), conflict (code taken) or validation_error.
    """
    nature = _check_nature(code, account_type, nature, is_contra)

    with transaction.atomic():
        parent = _get_parent(parent_code)
        if not code:
            code = registry.next_code(parent_code)

        if Account.objects.filter(code=code).exists():
            raise AccountConflict(f"Account code '{code}' already exists.", details={"code": code})

        try:
            with transaction.atomic():
                account = Account.objects.create(
                    code=code,
                    name=name,
                    name_ar=name_ar,
                    account_type=account_type,
                    nature=nature,
                    is_contra=is_contra,
                    parent=parent,
                    opening_balance=opening_balance,
                    allow_manual_entry=allow_manual_entry,
                )
        except IntegrityError:
            raise AccountConflict(f"Account code '{code}' already exists.", details={"code": code})

    logger.info("Account created: %s %s", account.code, account.name)
    return account


create_account = ledger_command(_create_account)


@ledger_command
def ensure_account(actor, code: str, name: str, account_type: str, **fields):
    """
    Get-or-create an account by code. Idempotent: an existing account is
    returned unchanged.
    """
    account = Account.objects.filter(code=code).first()
    if account is not None:
        return account
    try:
        return _create_account(actor, name=name, account_type=account_type, code=code, **fields)
    except AccountConflict:
        # Created concurrently
        return Account.objects.get(code=code)


@ledger_command
def update_account(actor, code: str, /, **updates):
    """
    Update an existing account.

    Args:
        code: Code of the account to update
        **updates: name, name_ar, parent_code, allow_manual_entry,
            opening_balance, account_type, nature, is_contra

    Reclassifying (account_type / nature / is_contra) is refused once the
    account has postings.
    """
    allowed_fields = {
        "name", "name_ar", "parent_code", "allow_manual_entry",
        "opening_balance", "account_type", "nature", "is_contra",
    }
    unknown = set(updates) - allowed_fields
    if unknown:
        raise LedgerValidationError(
            f"Cannot update field(s): {', '.join(sorted(unknown))}.",
            details={"fields": sorted(unknown)},
        )

    with transaction.atomic():
        try:
            account = Account.objects.select_for_update().get(code=code)
        except Account.DoesNotExist:
            raise AccountNotFound(f"Account '{code}' not found.", details={"code": code})

        classification = {"account_type", "nature", "is_contra"}
        if any(field in updates and updates[field] != getattr(account, field) for field in classification):
            allowed, reason = can_change_account_classification(account)
            if not allowed:
                raise HasPostings(reason, details={"code": code})
            account_type = updates.get("account_type", account.account_type)
            is_contra = updates.get("is_contra", account.is_contra)
            nature = updates.get("nature")
            if nature is None:
                nature = Account.expected_nature(account_type, is_contra) if account_type in Account.NATURE_MAP else None
            account.nature = _check_nature(code, account_type, nature, is_contra)
            account.account_type = account_type
            account.is_contra = is_contra

        if "parent_code" in updates:
            new_parent = _get_parent(updates["parent_code"])
            parent_of = dict(Account.objects.values_list("id", "parent_id"))
            allowed, reason = can_reparent(account, new_parent, parent_of)
            if not allowed:
                raise LedgerValidationError(reason, details={"code": code})
            account.parent = new_parent

        for field in ("name", "name_ar", "allow_manual_entry", "opening_balance"):
            if field in updates:
                setattr(account, field, updates[field])

        account.save()

    logger.info("Account updated: %s (%s)", code, ", ".join(sorted(updates)))
    return account


@ledger_command
def delete_account(actor, code: str):
    """
    Delete an account that no posting references.

    Children move up to the deleted account's parent.
    """
    with transaction.atomic():
        try:
            account = Account.objects.select_for_update().get(code=code)
        except Account.DoesNotExist:
            raise AccountNotFound(f"Account '{code}' not found.", details={"code": code})

        allowed, reason = can_delete_account(account)
        if not allowed:
            raise HasPostings(reason, details={"code": code})

        reparented = Account.objects.filter(parent_id=account.id).update(parent_id=account.parent_id)
        account.delete()

    logger.info("Account deleted: %s (%s children reparented)", code, reparented)
    return {"deleted": True, "code": code, "reparented": reparented}


# =============================================================================
# Period Commands
# =============================================================================

@ledger_command
def open_period(actor, period: str):
    """
    Open (or reopen) an accounting period. Idempotent.

    Args:
        period: Period key, "YYYY-MM"
    """
    periods.validate_period_key(period)
    now = timezone.now()
    with transaction.atomic():
        row, created = AccountingPeriod.objects.select_for_update().get_or_create(
            period=period,
            defaults={"status": AccountingPeriod.Status.OPEN, "opened_at": now},
        )
        if not created and row.status != AccountingPeriod.Status.OPEN:
            row.status = AccountingPeriod.Status.OPEN
            row.opened_at = now
            row.closed_at = None
            row.closed_by = None
            row.save(update_fields=["status", "opened_at", "closed_at", "closed_by", "updated_at"])
            logger.info("Accounting period reopened: %s", period)
    return row


@ledger_command
def close_period(actor, period: str):
    """
    Close an accounting period. Idempotent.

    Entries already posted in the period are untouched; new postings dated
    inside it are rejected with PeriodClosed.
    """
    periods.validate_period_key(period)
    now = timezone.now()
    with transaction.atomic():
        row, created = AccountingPeriod.objects.select_for_update().get_or_create(
            period=period,
            defaults={"status": AccountingPeriod.Status.OPEN, "opened_at": now},
        )
        if row.status != AccountingPeriod.Status.CLOSED:
            row.status = AccountingPeriod.Status.CLOSED
            row.closed_at = now
            row.closed_by = _user(actor)
            row.save(update_fields=["status", "closed_at", "closed_by", "updated_at"])
            logger.info("Accounting period closed: %s", period)
    return row


# =============================================================================
# Document link helpers
# =============================================================================

def _document_model(reference_type: str):
    label = settings.LEDGER_REFERENCE_MODELS.get(reference_type)
    if label is None:
        raise LedgerValidationError(
            f"Unknown reference type '{reference_type}'.",
            details={"reference_type": reference_type},
        )
    return apps.get_model(label)


def _lock_unlinked_document(reference: DocumentReference):
    """
    Lock the referenced document row and check it carries no entry.

    Must run inside the posting transaction: the row lock makes a second
    concurrent post for the same document wait, then see the link.
    """
    model = _document_model(reference.type)
    document = model.objects.select_for_update().filter(pk=reference.id).first()
    if document is None:
        raise LedgerValidationError(
            f"Referenced {reference.type} {reference.id} does not exist.",
            details=reference.to_dict(),
        )
    allowed, reason = can_link_document(document)
    if not allowed:
        raise AlreadyLinked(
            reason,
            details={**reference.to_dict(), "journal_entry_id": document.journal_entry_id},
        )
    return document


def _link_document(document, entry: JournalEntry) -> None:
    type(document).objects.filter(pk=document.pk).update(journal_entry_id=entry.id)
    document.journal_entry_id = entry.id


# =============================================================================
# Ledger Writer
# =============================================================================

def _build_postings(entry: JournalEntry, lines, accounts) -> list:
    return [
        JournalPosting(
            entry=entry,
            line_no=line_no,
            account=accounts[line.account_code],
            debit=line.debit,
            credit=line.credit,
        )
        for line_no, line in enumerate(lines, start=1)
    ]


def _save_entry(entry: JournalEntry, reference: Optional[DocumentReference], **save_kwargs) -> None:
    """Save inside a savepoint, translating the per-document unique index."""
    try:
        with transaction.atomic():
            entry.save(**save_kwargs)
    except IntegrityError:
        if reference is not None and entry.reverses_entry_id is None:
            raise AlreadyLinked(
                f"{reference.type} {reference.id} already has an active journal entry.",
                details=reference.to_dict(),
            )
        raise


def _log_posted(entry: JournalEntry, request: PostingRequest) -> None:
    logger.info(
        "Journal entry posted: JE #%s (%s lines) %s",
        entry.entry_number, len(request.lines), request.description,
        extra={
            "entry_id": entry.id,
            "entry_number": entry.entry_number,
            "reference": request.reference.to_dict() if request.reference else None,
            "reverses_entry_id": entry.reverses_entry_id,
        },
    )


def post_request(actor, request, reverses: Optional[JournalEntry] = None) -> JournalEntry:
    """
    Post a request, raising on any rejection.

    Raising counterpart of post_entry for callers composing a larger
    transaction (e.g. posting a document and updating its status).

    A mirror (reverses is set) keeps the document reference for lineage but
    neither checks nor writes the document link.
    """
    request = validate_request(request)

    with transaction.atomic():
        period = periods.ensure_open(request.date, lock=True)
        accounts = registry.resolve_many(request.account_codes)

        document = None
        if request.reference is not None and reverses is None:
            document = _lock_unlinked_document(request.reference)

        user = _user(actor)
        entry = JournalEntry(
            entry_number=_next_sequence(ENTRY_NUMBER_SEQUENCE),
            description=request.description,
            date=request.date,
            period=period,
            status=JournalEntry.Status.POSTED,
            reference_type=request.reference.type if request.reference else "",
            reference_id=request.reference.id if request.reference else None,
            branch=request.branch,
            reverses_entry=reverses,
            posted_at=timezone.now(),
            posted_by=user,
            created_by=user,
        )
        _save_entry(entry, request.reference)
        JournalPosting.objects.bulk_create(_build_postings(entry, request.lines, accounts))

        if document is not None:
            _link_document(document, entry)

    _log_posted(entry, request)
    return entry


@ledger_command
def post_entry(actor, request):
    """
    Post a balanced journal entry and link it to its document.

    Args:
        actor: The acting user (None for system jobs)
        request: PostingRequest or an equivalent dict payload

    Returns:
        CommandResult with the posted JournalEntry, or a failure whose code
        is one of validation_error, empty_entry, unbalanced, period_closed,
        not_found, already_linked, store_unavailable.

    Everything (number allocation, entry row, posting rows, document link)
    is written in one transaction. A rejected request consumes no entry
    number.
    """
    return post_request(actor, request)


# =============================================================================
# Draft (manual) entries
# =============================================================================

def _lines_of(entry: JournalEntry) -> list:
    return [
        PostingLine(p.account.code, debit=p.debit, credit=p.credit)
        for p in entry.postings.select_related("account").order_by("line_no")
    ]


def _request_of(entry: JournalEntry) -> PostingRequest:
    reference = None
    if entry.has_reference:
        reference = DocumentReference(entry.reference_type, entry.reference_id)
    return PostingRequest(
        description=entry.description,
        date=entry.date,
        lines=_lines_of(entry),
        branch=entry.branch,
        reference=reference,
    )


def _get_entry(entry_id: int, lock: bool = False) -> JournalEntry:
    queryset = JournalEntry.objects.all()
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=entry_id)
    except JournalEntry.DoesNotExist:
        raise EntryNotFound(f"Journal entry {entry_id} not found.", details={"entry_id": entry_id})


@ledger_command
def create_draft_entry(actor, request):
    """
    Save a manual entry as a draft.

    Drafts need well-formed lines but may be unbalanced; they get no entry
    number and are not gated by period. Every account must allow manual
    entry.
    """
    request = validate_request(request, require_balance=False)

    with transaction.atomic():
        accounts = registry.resolve_many(request.account_codes)
        for account in accounts.values():
            allowed, reason = can_post_manually(account)
            if not allowed:
                raise LedgerValidationError(reason, details={"code": account.code})

        user = _user(actor)
        entry = JournalEntry.objects.create(
            description=request.description,
            date=request.date,
            period=periods.period_key(request.date),
            status=JournalEntry.Status.DRAFT,
            reference_type=request.reference.type if request.reference else "",
            reference_id=request.reference.id if request.reference else None,
            branch=request.branch,
            created_by=user,
        )
        JournalPosting.objects.bulk_create(_build_postings(entry, request.lines, accounts))

    logger.info("Draft journal entry created: #%s %s", entry.id, request.description)
    return entry


@ledger_command
def post_draft_entry(actor, entry_id: int):
    """
    Post a draft: draft -> posted with the full posting validation
    (balance, period, document link, number allocation) in one transaction.
    """
    with transaction.atomic():
        entry = _get_entry(entry_id, lock=True)
        allowed, reason = validate_status_transition(entry.status, JournalEntry.Status.POSTED)
        if not allowed:
            raise InvalidStatusTransition(reason, details={"entry_id": entry_id})

        request = _request_of(entry)
        check_balanced(request.lines)
        entry.period = periods.ensure_open(entry.date, lock=True)

        document = None
        if request.reference is not None:
            document = _lock_unlinked_document(request.reference)

        user = _user(actor)
        entry.entry_number = _next_sequence(ENTRY_NUMBER_SEQUENCE)
        entry.status = JournalEntry.Status.POSTED
        entry.posted_at = timezone.now()
        entry.posted_by = user
        _save_entry(
            entry,
            request.reference,
            update_fields=["entry_number", "status", "period", "posted_at", "posted_by", "updated_at"],
        )

        if document is not None:
            _link_document(document, entry)

    _log_posted(entry, request)
    return entry


@ledger_command
def delete_draft_entry(actor, entry_id: int):
    """Delete a draft entry and its postings. Posted history is immutable."""
    with transaction.atomic():
        entry = _get_entry(entry_id, lock=True)
        allowed, reason = can_delete_entry(entry)
        if not allowed:
            raise InvalidStatusTransition(reason, details={"entry_id": entry_id})
        entry.delete()

    logger.info("Draft journal entry deleted: #%s", entry_id)
    return {"deleted": True, "entry_id": entry_id}


# =============================================================================
# Reversal
# =============================================================================

LINK_CLEAR = "clear"
LINK_REDIRECT = "redirect"
LINK_KEEP = "keep"
LINK_POLICIES = (LINK_CLEAR, LINK_REDIRECT, LINK_KEEP)


def _mirror_request(original: JournalEntry) -> PostingRequest:
    reference = None
    if original.has_reference:
        reference = DocumentReference(original.reference_type, original.reference_id)
    return PostingRequest(
        description=f"Reversal of JE #{original.entry_number}: {original.description}",
        date=timezone.localdate(),
        lines=[line.swapped() for line in _lines_of(original)],
        branch=original.branch,
        reference=reference,
    )


def _apply_link_policy(original: JournalEntry, mirror: JournalEntry, link_policy: str) -> None:
    if link_policy == LINK_KEEP or not original.has_reference:
        return
    model = _document_model(original.reference_type)
    documents = model.objects.filter(pk=original.reference_id, journal_entry_id=original.id)
    if link_policy == LINK_CLEAR:
        documents.update(journal_entry_id=None)
    elif link_policy == LINK_REDIRECT:
        documents.update(journal_entry_id=mirror.id)


def _mark_reversed(actor, entry_id: int, link_policy: str) -> JournalEntry:
    if link_policy not in LINK_POLICIES:
        raise LedgerValidationError(
            f"Unknown link policy '{link_policy}'.",
            details={"link_policy": link_policy},
        )

    with transaction.atomic():
        original = _get_entry(entry_id, lock=True)
        if original.status == JournalEntry.Status.REVERSED:
            return original

        mirror = JournalEntry.objects.filter(reverses_entry=original).first()
        if mirror is None:
            raise InvalidStatusTransition(
                f"Journal entry {entry_id} has no reversal entry to point at.",
                details={"entry_id": entry_id},
            )

        allowed, reason = validate_status_transition(original.status, JournalEntry.Status.REVERSED)
        if not allowed:
            raise InvalidStatusTransition(reason, details={"entry_id": entry_id})

        original.status = JournalEntry.Status.REVERSED
        original.reversed_at = timezone.now()
        original.reversed_by = _user(actor)
        original.save(update_fields=["status", "reversed_at", "reversed_by", "updated_at"])
        _apply_link_policy(original, mirror, link_policy)

    logger.info(
        "Journal entry reversed: JE #%s by JE #%s",
        original.entry_number, mirror.entry_number,
        extra={"entry_id": original.id, "reversal_entry_id": mirror.id, "link_policy": link_policy},
    )
    return original


@ledger_command
def mark_entry_reversed(actor, entry_id: int, link_policy: str = LINK_CLEAR):
    """
    Second step of a reversal: mark the original reversed and apply the
    document link policy. Idempotent, safe to retry.
    """
    return _mark_reversed(actor, entry_id, link_policy)


def reverse_posted(actor, entry_id: int, link_policy: str = LINK_CLEAR) -> dict:
    """
    Reverse a posted journal entry, raising on any rejection.

    Posts a mirror entry (every line's debit and credit swapped, dated
    today, same branch and document reference, reverses_entry pointing
    back) through the normal posting path, then marks the original
    reversed.

    The two steps are separate transactions. If the process dies between
    them the mirror exists and the original is still posted; calling
    reverse_entry again finds the mirror and only runs the second step.

    Args:
        link_policy: what happens to the document's journal_entry link
            "clear" (default): unset it
            "redirect": point it at the mirror
            "keep": leave it on the reversed original

    Returns:
        {"original": entry, "reversal": mirror}. reverse_entry wraps this in
        a CommandResult.
    """
    if link_policy not in LINK_POLICIES:
        raise LedgerValidationError(
            f"Unknown link policy '{link_policy}'.",
            details={"link_policy": link_policy},
        )

    with transaction.atomic():
        original = _get_entry(entry_id, lock=True)
        allowed, reason = can_reverse_entry(original)
        if not allowed:
            raise NotPosted(reason, details={"entry_id": entry_id, "status": original.status})

        mirror = JournalEntry.objects.filter(reverses_entry=original).first()
        if mirror is None:
            mirror = post_request(actor, _mirror_request(original), reverses=original)
        else:
            logger.info(
                "Resuming reversal of JE #%s: mirror JE #%s exists",
                original.entry_number, mirror.entry_number,
            )

    original = _mark_reversed(actor, entry_id, link_policy)
    return {"original": original, "reversal": mirror}


reverse_entry = ledger_command(reverse_posted)
