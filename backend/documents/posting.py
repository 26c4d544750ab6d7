# documents/posting.py
"""
Turn business documents into ledger postings.

Each builder maps an already-computed document onto a PostingRequest using
the account codes in settings.LEDGER_POSTING_ACCOUNTS:

    Invoice           Dr cash|receivable (total)
                      Cr sales (subtotal - discount), Cr VAT (tax)
    SupplierInvoice   Dr purchases (subtotal - discount), Dr VAT (tax)
                      Cr cash|payable (total)
    Expense           Dr expense account, Cr payment account (cash)
    PayrollRun        Dr payroll expense (gross)
                      Cr accrued payroll (net), Cr deductions payable

A document whose amounts don't add up produces an unbalanced request and
is rejected by the ledger; it stays a draft.
"""

import logging
from decimal import Decimal

from django.conf import settings
from django.db import transaction

from accounting.commands import LINK_CLEAR, ledger_command, post_request, reverse_posted
from accounting.exceptions import LedgerValidationError
from accounting.models import JournalEntry
from accounting.posting import DocumentReference, PostingLine, PostingRequest
from documents.models import Expense, Invoice, PayrollRun, PostableDocument, SupplierInvoice

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _account(key: str) -> str:
    return settings.LEDGER_POSTING_ACCOUNTS[key]


def _branch(document) -> str:
    return document.branch or getattr(settings, "LEDGER_DEFAULT_BRANCH", "")


def _request(document, description: str, lines: list) -> PostingRequest:
    return PostingRequest(
        description=description,
        date=document.date,
        lines=[line for line in lines if line.debit > 0 or line.credit > 0],
        branch=_branch(document),
        reference=DocumentReference(document.REFERENCE_TYPE, document.pk),
    )


def _settlement_account(document, credit_key: str) -> str:
    if document.payment_method == PostableDocument.PaymentMethod.CREDIT:
        return _account(credit_key)
    return _account("cash")


def invoice_request(invoice: Invoice) -> PostingRequest:
    net_sales = invoice.subtotal - invoice.discount
    return _request(
        invoice,
        f"Sales invoice #{invoice.display_number}",
        [
            PostingLine(_settlement_account(invoice, "receivable"), debit=invoice.total),
            PostingLine(_account("sales"), credit=net_sales),
            PostingLine(_account("vat"), credit=invoice.tax),
        ],
    )


def supplier_invoice_request(invoice: SupplierInvoice) -> PostingRequest:
    net_purchases = invoice.subtotal - invoice.discount
    return _request(
        invoice,
        f"Supplier invoice #{invoice.display_number}",
        [
            PostingLine(_account("purchases"), debit=net_purchases),
            PostingLine(_account("vat"), debit=invoice.tax),
            PostingLine(_settlement_account(invoice, "payable"), credit=invoice.total),
        ],
    )


def expense_request(expense: Expense) -> PostingRequest:
    description = f"Expense #{expense.display_number}"
    if expense.description:
        description = f"{description}: {expense.description}"
    return _request(
        expense,
        description,
        [
            PostingLine(expense.expense_account_code, debit=expense.total),
            PostingLine(expense.payment_account_code or _account("cash"), credit=expense.total),
        ],
    )


def payroll_request(run: PayrollRun) -> PostingRequest:
    return _request(
        run,
        f"Payroll for {run.period}",
        [
            PostingLine(_account("payroll_expense"), debit=run.gross_total),
            PostingLine(_account("accrued_payroll"), credit=run.net_total),
            PostingLine(_account("payroll_deductions"), credit=run.deductions_total),
        ],
    )


BUILDERS = {
    Invoice: invoice_request,
    SupplierInvoice: supplier_invoice_request,
    Expense: expense_request,
    PayrollRun: payroll_request,
}


def build_request(document) -> PostingRequest:
    builder = BUILDERS.get(type(document))
    if builder is None:
        raise LedgerValidationError(f"{type(document).__name__} documents do not post.")
    return builder(document)


def _set_status(document, status: str) -> None:
    type(document).objects.filter(pk=document.pk).update(status=status)
    document.status = status


@ledger_command
def post_document(actor, document):
    """
    Post a draft document to the ledger.

    The journal entry, the document's journal_entry link and its status
    change commit together; on rejection the document stays a draft.

    Returns:
        CommandResult with the posted JournalEntry
    """
    if document.status != PostableDocument.Status.DRAFT:
        raise LedgerValidationError(
            f"Only draft documents can be posted ({document.REFERENCE_TYPE} "
            f"{document.pk} is {document.status}).",
            details={"type": document.REFERENCE_TYPE, "id": document.pk, "status": document.status},
        )

    request = build_request(document)
    with transaction.atomic():
        entry = post_request(actor, request)
        _set_status(document, PostableDocument.Status.POSTED)

    document.journal_entry_id = entry.id
    logger.info(
        "Document posted: %s %s -> JE #%s",
        document.REFERENCE_TYPE, document.display_number, entry.entry_number,
        extra={"reference": request.reference.to_dict(), "entry_id": entry.id},
    )
    return entry


def _finished_reversal(document):
    """
    The document's reversed entry and its mirror, when a reversal already
    went through for a document still marked posted.
    """
    original = (
        JournalEntry.objects
        .filter(
            reference_type=document.REFERENCE_TYPE,
            reference_id=document.pk,
            status=JournalEntry.Status.REVERSED,
            reverses_entry__isnull=True,
        )
        .order_by("-id")
        .first()
    )
    if original is None:
        return None
    mirror = JournalEntry.objects.filter(reverses_entry=original).first()
    if mirror is None:
        return None
    return {"original": original, "reversal": mirror}


@ledger_command
def cancel_document(actor, document, link_policy: str = LINK_CLEAR):
    """
    Cancel a posted document by reversing its journal entry.

    The reversal and the status change commit together. A document left
    posted after its entry was already reversed (reverse_entry called
    directly) is only marked cancelled.

    Returns:
        CommandResult with {"original": entry, "reversal": mirror}
    """
    if document.status != PostableDocument.Status.POSTED:
        raise LedgerValidationError(
            f"{document.REFERENCE_TYPE} {document.pk} has no posted journal entry to reverse.",
            details={"type": document.REFERENCE_TYPE, "id": document.pk, "status": document.status},
        )

    entry = None
    if document.journal_entry_id is not None:
        entry = JournalEntry.objects.filter(pk=document.journal_entry_id).first()

    if entry is not None and entry.status == JournalEntry.Status.POSTED and not entry.is_reversal:
        with transaction.atomic():
            result = reverse_posted(actor, entry.id, link_policy)
            _set_status(document, PostableDocument.Status.CANCELLED)
    else:
        result = _finished_reversal(document)
        if result is None:
            raise LedgerValidationError(
                f"{document.REFERENCE_TYPE} {document.pk} has no posted journal entry to reverse.",
                details={"type": document.REFERENCE_TYPE, "id": document.pk, "status": document.status},
            )
        _set_status(document, PostableDocument.Status.CANCELLED)
        logger.info(
            "Completing cancellation of %s %s: JE #%s already reversed",
            document.REFERENCE_TYPE, document.display_number, result["original"].entry_number,
        )

    document.refresh_from_db(fields=["journal_entry"])

    logger.info(
        "Document cancelled: %s %s, JE #%s reversed by JE #%s",
        document.REFERENCE_TYPE, document.display_number,
        result["original"].entry_number, result["reversal"].entry_number,
    )
    return result
