# tests/test_periods.py
"""
Tests for the period gate.

Tests cover:
- Period keys
- Open/close transitions and their idempotency
- Posting into closed, reopened and undefined periods
- Strict mode (LEDGER_REQUIRE_DEFINED_PERIOD)
"""

from datetime import date

import pytest

from accounting import periods
from accounting.commands import close_period, open_period, post_entry
from accounting.exceptions import LedgerValidationError, PeriodClosed
from accounting.models import AccountingPeriod, JournalEntry, JournalPosting, LedgerSequence


@pytest.mark.django_db
class TestPeriodKeys:

    def test_period_key_from_date(self):
        assert periods.period_key(date(2024, 3, 1)) == "2024-03"
        assert periods.period_key("2024-12-31") == "2024-12"

    def test_invalid_date_string(self):
        with pytest.raises(LedgerValidationError):
            periods.period_key("2024-13-01")

    def test_validate_period_key(self):
        assert periods.validate_period_key("2024-03") == "2024-03"
        for bad in ("2024-3", "2024-00", "2024-13", "24-03", None):
            with pytest.raises(LedgerValidationError):
                periods.validate_period_key(bad)


@pytest.mark.django_db
class TestOpenClose:

    def test_open_creates_period(self):
        result = open_period(None, "2024-03")
        assert result.success
        assert result.data.status == AccountingPeriod.Status.OPEN
        assert result.data.opened_at is not None

    def test_open_is_idempotent(self):
        first = open_period(None, "2024-03").data
        second = open_period(None, "2024-03").data
        assert first.id == second.id
        assert AccountingPeriod.objects.count() == 1

    def test_close_is_idempotent(self, user):
        first = close_period(user, "2024-03").data
        second = close_period(user, "2024-03").data
        assert first.id == second.id
        assert second.status == AccountingPeriod.Status.CLOSED
        assert second.closed_by == user

    def test_reopen_clears_close_stamp(self, user):
        close_period(user, "2024-03")
        period = open_period(user, "2024-03").data
        assert period.status == AccountingPeriod.Status.OPEN
        assert period.closed_at is None
        assert period.closed_by is None

    def test_invalid_key_rejected(self):
        result = close_period(None, "March")
        assert not result.success
        assert result.code == "validation_error"


@pytest.mark.django_db
class TestPeriodGate:

    def test_undefined_period_is_open_by_default(self):
        assert periods.is_open(date(2030, 1, 15)) is True
        assert periods.ensure_open(date(2030, 1, 15)) == "2030-01"

    def test_closed_period(self):
        close_period(None, "2024-03")
        assert periods.is_open(date(2024, 3, 10)) is False
        with pytest.raises(PeriodClosed) as exc_info:
            periods.ensure_open(date(2024, 3, 10))
        assert exc_info.value.details == {"period": "2024-03", "date": "2024-03-10"}

    def test_neighbouring_period_unaffected(self):
        close_period(None, "2024-03")
        assert periods.is_open(date(2024, 4, 1)) is True
        assert periods.is_open(date(2024, 2, 29)) is True

    def test_strict_mode_rejects_undefined_period(self, settings):
        settings.LEDGER_REQUIRE_DEFINED_PERIOD = True
        assert periods.is_open(date(2030, 1, 15)) is False
        open_period(None, "2030-01")
        assert periods.is_open(date(2030, 1, 15)) is True


@pytest.mark.django_db
class TestPostingIntoPeriods:

    def test_posting_into_closed_period_fails_without_rows(self, chart, cash_sale):
        close_period(None, "2024-03")

        result = post_entry(None, cash_sale)

        assert not result.success
        assert result.code == "period_closed"
        assert JournalEntry.objects.count() == 0
        assert JournalPosting.objects.count() == 0
        assert not LedgerSequence.objects.filter(next_value__gt=1).exists()

    def test_posting_succeeds_after_reopen(self, chart, cash_sale):
        close_period(None, "2024-03")
        assert post_entry(None, cash_sale).code == "period_closed"

        open_period(None, "2024-03")
        result = post_entry(None, cash_sale)

        assert result.success
        assert result.data.period == "2024-03"

    def test_closing_keeps_existing_entries(self, chart, cash_sale):
        entry = post_entry(None, cash_sale).data
        close_period(None, "2024-03")

        entry.refresh_from_db()
        assert entry.status == JournalEntry.Status.POSTED
        assert entry.postings.count() == 3
