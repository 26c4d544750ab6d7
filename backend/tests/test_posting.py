# tests/test_posting.py
"""
Tests for the ledger writer.

Tests cover:
- Request shape validation (typed requests and untyped payloads)
- Line rules and exact balance checking
- Entry numbering, including numbers not consumed by rejections
- No partial writes when the transaction fails midway
- Document linking and AlreadyLinked
- Seeded random line sets: mismatched sums never write a row
- Draft entries: create, post, delete
"""

import random
from datetime import date
from decimal import Decimal
from unittest import mock

import pytest
from django.db import OperationalError

from accounting.commands import (
    CommandResult,
    create_draft_entry,
    delete_draft_entry,
    post_draft_entry,
    post_entry,
    update_account,
)
from accounting.exceptions import EmptyEntry, LedgerValidationError, UnbalancedEntry
from accounting.models import JournalEntry, JournalPosting
from accounting.posting import (
    DocumentReference,
    PostingLine,
    PostingRequest,
    check_balanced,
    to_cents,
    validate_request,
)
from documents.models import Invoice
from reports.queries import account_balance, trial_balance


def _request(lines, **kwargs):
    kwargs.setdefault("description", "test entry")
    kwargs.setdefault("date", date(2024, 3, 1))
    return PostingRequest(lines=lines, **kwargs)


# =============================================================================
# Request validation (no I/O)
# =============================================================================

class TestValidateRequest:

    def test_to_cents_is_exact(self):
        assert to_cents(Decimal("0.10")) + to_cents(Decimal("0.20")) == to_cents(Decimal("0.30"))
        assert to_cents(Decimal("115")) == 11500

    def test_balanced_with_decimal_amounts(self):
        check_balanced([
            PostingLine("1111", debit=Decimal("0.10")),
            PostingLine("1111", debit=Decimal("0.20")),
            PostingLine("4111", credit=Decimal("0.30")),
        ])

    def test_off_by_one_cent_is_unbalanced(self):
        with pytest.raises(UnbalancedEntry) as exc_info:
            check_balanced([
                PostingLine("1111", debit=Decimal("100.00")),
                PostingLine("4111", credit=Decimal("99.99")),
            ])
        assert exc_info.value.details["delta"] == "0.01"

    def test_single_line_is_empty_entry(self):
        with pytest.raises(EmptyEntry):
            validate_request(_request([PostingLine("1111", debit=Decimal("10"))]))

    def test_line_with_both_sides_is_empty_entry(self):
        with pytest.raises(EmptyEntry):
            validate_request(_request([
                PostingLine("1111", debit=Decimal("10"), credit=Decimal("10")),
                PostingLine("4111", credit=Decimal("0")),
            ]))

    def test_zero_line_is_empty_entry(self):
        with pytest.raises(EmptyEntry) as exc_info:
            validate_request(_request([
                PostingLine("1111", debit=Decimal("10")),
                PostingLine("4111", credit=Decimal("10")),
                PostingLine("2141"),
            ]))
        assert exc_info.value.details["line_no"] == 3

    def test_empty_entry_is_a_validation_error(self):
        assert issubclass(EmptyEntry, LedgerValidationError)

    def test_negative_amount_is_shape_error(self):
        with pytest.raises(LedgerValidationError) as exc_info:
            validate_request(_request([
                PostingLine("1111", debit=Decimal("-10")),
                PostingLine("4111", credit=Decimal("-10")),
            ]))
        assert "errors" in exc_info.value.details

    def test_three_decimal_places_is_shape_error(self):
        with pytest.raises(LedgerValidationError):
            validate_request(_request([
                PostingLine("1111", debit=Decimal("10.005")),
                PostingLine("4111", credit=Decimal("10.005")),
            ]))

    def test_zeros_below_the_cent_are_accepted(self):
        request = validate_request(_request([
            PostingLine("1111", debit=Decimal("115.000")),
            PostingLine("4111", credit=Decimal("100.0000")),
            PostingLine("2141", credit=Decimal("3") * Decimal("5.000")),
        ]))
        assert [line.debit + line.credit for line in request.lines] == [
            Decimal("115.00"), Decimal("100.00"), Decimal("15.00"),
        ]
        assert str(request.lines[0].debit) == "115.00"

    def test_unknown_reference_type_is_shape_error(self):
        with pytest.raises(LedgerValidationError) as exc_info:
            validate_request(_request(
                [PostingLine("1111", debit=Decimal("1")), PostingLine("4111", credit=Decimal("1"))],
                reference=DocumentReference("purchase_order", 7),
            ))
        assert "reference" in exc_info.value.details["errors"]

    def test_payload_is_normalized(self, cash_sale_payload):
        request = validate_request(cash_sale_payload)
        assert isinstance(request, PostingRequest)
        assert request.date == date(2024, 3, 1)
        assert request.lines[0] == PostingLine("1111", debit=Decimal("115.00"), credit=Decimal("0.00"))

    def test_payload_missing_date(self, cash_sale_payload):
        del cash_sale_payload["date"]
        with pytest.raises(LedgerValidationError) as exc_info:
            validate_request(cash_sale_payload)
        assert "date" in exc_info.value.details["errors"]

    def test_non_mapping_payload(self):
        with pytest.raises(LedgerValidationError):
            validate_request(["not", "a", "request"])

    def test_drafts_may_be_unbalanced(self):
        request = validate_request(
            _request([PostingLine("1111", debit=Decimal("10")), PostingLine("4111", credit=Decimal("9"))]),
            require_balance=False,
        )
        assert len(request.lines) == 2


class TestCommandResult:

    def test_only_store_unavailable_is_retryable(self):
        assert CommandResult.fail("down", code="store_unavailable").retryable is True
        assert CommandResult.fail("nope", code="unbalanced").retryable is False


# =============================================================================
# Posting
# =============================================================================

@pytest.mark.django_db
class TestPostEntry:

    def test_cash_sale(self, chart, cash_sale, user):
        before = account_balance("1111")

        result = post_entry(user, cash_sale)

        assert result.success, result.error
        entry = result.data
        assert entry.status == JournalEntry.Status.POSTED
        assert entry.entry_number == 1
        assert entry.period == "2024-03"
        assert entry.posted_by == user
        assert entry.posted_at is not None
        assert [p.line_no for p in entry.postings.order_by("line_no")] == [1, 2, 3]
        assert entry.is_balanced

        assert account_balance("1111") == before + Decimal("115")

        report = trial_balance(date(2024, 3, 1), date(2024, 3, 31))
        assert report.total_debit == Decimal("115.00")
        assert report.total_credit == Decimal("115.00")
        assert report.is_balanced

    def test_payload_request(self, chart, cash_sale_payload):
        result = post_entry(None, cash_sale_payload)
        assert result.success, result.error
        assert result.data.postings.count() == 3

    def test_computed_amounts_with_trailing_zeros(self, chart):
        result = post_entry(None, _request([
            PostingLine("1111", debit=Decimal("115.000")),
            PostingLine("4111", credit=Decimal("100.000")),
            PostingLine("2141", credit=Decimal("15.000")),
        ]))

        assert result.success, result.error
        assert account_balance("1111") == Decimal("115.00")

    def test_unbalanced_rejected_and_number_not_consumed(self, chart, cash_sale):
        unbalanced = PostingRequest(
            description=cash_sale.description,
            date=cash_sale.date,
            lines=[
                PostingLine("1111", debit=Decimal("115")),
                PostingLine("4111", credit=Decimal("100")),
                PostingLine("2141", credit=Decimal("14")),
            ],
        )

        result = post_entry(None, unbalanced)

        assert not result.success
        assert result.code == "unbalanced"
        assert result.details["delta"] == "1.00"
        assert JournalEntry.objects.count() == 0

        assert post_entry(None, cash_sale).data.entry_number == 1

    def test_unknown_account_rejected_and_number_not_consumed(self, chart, cash_sale):
        bad = _request([PostingLine("1111", debit=Decimal("5")), PostingLine("9999", credit=Decimal("5"))])

        result = post_entry(None, bad)

        assert result.code == "not_found"
        assert result.details["codes"] == ["9999"]
        assert JournalEntry.objects.count() == 0
        assert post_entry(None, cash_sale).data.entry_number == 1

    def test_entry_numbers_increase(self, chart, cash_sale):
        numbers = [post_entry(None, cash_sale).data.entry_number for _ in range(3)]
        assert numbers == [1, 2, 3]

    def test_branch_and_description_stored(self, chart, cash_sale):
        cash_sale.branch = "riyadh"
        entry = post_entry(None, cash_sale).data
        assert entry.branch == "riyadh"
        assert entry.description == "cash sale"

    def test_store_unavailable_is_retryable(self, chart, cash_sale):
        with mock.patch(
            "accounting.commands.periods.ensure_open",
            side_effect=OperationalError("connection lost"),
        ):
            result = post_entry(None, cash_sale)
        assert result.code == "store_unavailable"
        assert result.retryable


# =============================================================================
# No partial writes
# =============================================================================

@pytest.mark.django_db
class TestNoPartialWrites:

    def test_failure_writing_postings_leaves_no_entry(self, chart, cash_sale):
        with mock.patch(
            "accounting.commands.JournalPosting.objects.bulk_create",
            side_effect=OperationalError("disk full"),
        ):
            result = post_entry(None, cash_sale)

        assert result.code == "store_unavailable"
        assert JournalEntry.objects.count() == 0
        assert JournalPosting.objects.count() == 0
        assert post_entry(None, cash_sale).data.entry_number == 1

    def test_failure_writing_link_leaves_document_unlinked(self, chart, invoice):
        request = _request(
            [
                PostingLine("1111", debit=Decimal("207")),
                PostingLine("4111", credit=Decimal("180")),
                PostingLine("2141", credit=Decimal("27")),
            ],
            reference=DocumentReference("invoice", invoice.pk),
        )
        with mock.patch(
            "accounting.commands._link_document",
            side_effect=OperationalError("lost connection"),
        ):
            result = post_entry(None, request)

        assert not result.success
        assert JournalEntry.objects.count() == 0
        assert JournalPosting.objects.count() == 0
        invoice.refresh_from_db()
        assert invoice.journal_entry_id is None


# =============================================================================
# Document links
# =============================================================================

@pytest.mark.django_db
class TestDocumentLinks:

    def _invoice_request(self, invoice):
        return _request(
            [
                PostingLine("1111", debit=Decimal("207")),
                PostingLine("4111", credit=Decimal("180")),
                PostingLine("2141", credit=Decimal("27")),
            ],
            reference=DocumentReference("invoice", invoice.pk),
        )

    def test_link_written_in_same_transaction(self, chart, invoice):
        entry = post_entry(None, self._invoice_request(invoice)).data

        invoice.refresh_from_db()
        assert invoice.journal_entry_id == entry.id
        assert entry.reference_type == "invoice"
        assert entry.reference_id == invoice.pk

    def test_second_post_for_same_document_is_already_linked(self, chart, invoice):
        first = post_entry(None, self._invoice_request(invoice))
        second = post_entry(None, self._invoice_request(invoice))

        assert first.success
        assert not second.success
        assert second.code == "already_linked"
        assert second.details["journal_entry_id"] == first.data.id
        assert JournalEntry.objects.count() == 1

    def test_missing_document_rejected(self, chart):
        request = _request(
            [PostingLine("1111", debit=Decimal("1")), PostingLine("4111", credit=Decimal("1"))],
            reference=DocumentReference("invoice", 424242),
        )
        result = post_entry(None, request)
        assert result.code == "validation_error"
        assert JournalEntry.objects.count() == 0

    def test_unique_index_backs_up_the_row_lock(self, chart, invoice):
        first = post_entry(None, self._invoice_request(invoice)).data
        # Link lost out of band; the storage constraint still refuses a second active entry
        Invoice.objects.filter(pk=invoice.pk).update(journal_entry_id=None)

        result = post_entry(None, self._invoice_request(invoice))

        assert result.code == "already_linked"
        assert JournalEntry.objects.filter(status=JournalEntry.Status.POSTED).count() == 1
        assert JournalEntry.objects.get().id == first.id

    def test_stale_document_read_hits_unique_index(self, chart, invoice, cash_sale):
        # A second writer that read the document before the first one committed
        stale = Invoice.objects.get(pk=invoice.pk)
        first = post_entry(None, self._invoice_request(invoice)).data

        with mock.patch("accounting.commands._lock_unlinked_document", return_value=stale):
            result = post_entry(None, self._invoice_request(invoice))

        assert not result.success
        assert result.code == "already_linked"
        assert JournalEntry.objects.count() == 1
        assert JournalPosting.objects.filter(entry_id=first.id).count() == JournalPosting.objects.count()
        invoice.refresh_from_db()
        assert invoice.journal_entry_id == first.id

        # The rejected writer's entry number was rolled back
        assert post_entry(None, cash_sale).data.entry_number == first.entry_number + 1


# =============================================================================
# Randomized line sets
# =============================================================================

LEAF_CODES = ["1111", "1141", "2111", "2141", "3100", "4111", "5120", "5201"]


def _split_cents(rng, total, parts):
    """Split total cents into parts positive amounts."""
    cuts = sorted(rng.sample(range(1, total), parts - 1))
    return [high - low for low, high in zip([0] + cuts, cuts + [total])]


def random_balanced_lines(rng):
    total = rng.randint(200, 10_000_000)
    lines = [
        PostingLine(rng.choice(LEAF_CODES), debit=Decimal(cents).scaleb(-2))
        for cents in _split_cents(rng, total, rng.randint(1, 3))
    ]
    lines += [
        PostingLine(rng.choice(LEAF_CODES), credit=Decimal(cents).scaleb(-2))
        for cents in _split_cents(rng, total, rng.randint(1, 3))
    ]
    rng.shuffle(lines)
    return lines


@pytest.mark.django_db
class TestRandomizedLineSets:

    @pytest.mark.parametrize("seed", range(20))
    def test_mismatched_sums_always_rejected(self, chart, seed):
        rng = random.Random(seed)
        lines = random_balanced_lines(rng)
        index = rng.randrange(len(lines))
        line = lines[index]
        delta = Decimal(rng.randint(1, 5000)).scaleb(-2)
        if line.debit:
            lines[index] = PostingLine(line.account_code, debit=line.debit + delta)
        else:
            lines[index] = PostingLine(line.account_code, credit=line.credit + delta)

        result = post_entry(None, _request(lines))

        assert not result.success
        assert result.code == "unbalanced"
        assert Decimal(result.details["delta"]).copy_abs() == delta
        assert JournalEntry.objects.count() == 0
        assert JournalPosting.objects.count() == 0

    @pytest.mark.parametrize("seed", range(20))
    def test_matching_sums_always_post(self, chart, seed):
        lines = random_balanced_lines(random.Random(seed))

        result = post_entry(None, _request(lines))

        assert result.success, result.error
        assert result.data.postings.count() == len(lines)
        assert trial_balance().is_balanced


# =============================================================================
# Drafts
# =============================================================================

@pytest.mark.django_db
class TestDraftEntries:

    def _unbalanced(self):
        return _request([PostingLine("1111", debit=Decimal("50")), PostingLine("3100", credit=Decimal("40"))])

    def test_create_draft_without_number(self, chart, user):
        result = create_draft_entry(user, self._unbalanced())
        assert result.success, result.error
        entry = result.data
        assert entry.status == JournalEntry.Status.DRAFT
        assert entry.entry_number is None
        assert entry.created_by == user

    def test_draft_does_not_affect_balances(self, chart):
        create_draft_entry(None, self._unbalanced())
        assert account_balance("1111") == Decimal("0.00")

    def test_draft_requires_manual_entry_accounts(self, chart):
        update_account(None, "3100", allow_manual_entry=False)
        result = create_draft_entry(None, self._unbalanced())
        assert result.code == "validation_error"
        assert JournalEntry.objects.count() == 0

    def test_unbalanced_draft_cannot_post(self, chart):
        draft = create_draft_entry(None, self._unbalanced()).data

        result = post_draft_entry(None, draft.id)

        assert result.code == "unbalanced"
        draft.refresh_from_db()
        assert draft.status == JournalEntry.Status.DRAFT
        assert draft.entry_number is None

    def test_post_balanced_draft(self, chart, cash_sale, user):
        draft = create_draft_entry(None, cash_sale).data

        result = post_draft_entry(user, draft.id)

        assert result.success, result.error
        entry = result.data
        assert entry.status == JournalEntry.Status.POSTED
        assert entry.entry_number == 1
        assert entry.posted_by == user
        assert account_balance("1111") == Decimal("115.00")

    def test_posting_twice_is_invalid_transition(self, chart, cash_sale):
        draft = create_draft_entry(None, cash_sale).data
        post_draft_entry(None, draft.id)

        result = post_draft_entry(None, draft.id)

        assert result.code == "invalid_transition"

    def test_draft_posting_respects_closed_period(self, chart, cash_sale):
        from accounting.commands import close_period

        draft = create_draft_entry(None, cash_sale).data
        close_period(None, "2024-03")

        assert post_draft_entry(None, draft.id).code == "period_closed"

    def test_delete_draft(self, chart):
        draft = create_draft_entry(None, self._unbalanced()).data

        result = delete_draft_entry(None, draft.id)

        assert result.success
        assert JournalEntry.objects.count() == 0
        assert JournalPosting.objects.count() == 0

    def test_posted_entry_cannot_be_deleted(self, chart, cash_sale):
        entry = post_entry(None, cash_sale).data
        result = delete_draft_entry(None, entry.id)
        assert result.code == "invalid_transition"
        assert JournalEntry.objects.filter(pk=entry.id).exists()

    def test_unknown_entry(self, chart):
        assert post_draft_entry(None, 123456).code == "not_found"
