# accounting/periods.py
"""
Period gate.

Answers whether a date may receive new postings. Periods are calendar
months keyed "YYYY-MM". Open/close transitions live in accounting.commands.
"""

import re
from datetime import date, datetime

from django.conf import settings

from accounting.exceptions import LedgerValidationError, PeriodClosed
from accounting.models import AccountingPeriod
from accounting.policies import can_post_to_period


PERIOD_KEY_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def _require_defined() -> bool:
    return bool(getattr(settings, "LEDGER_REQUIRE_DEFINED_PERIOD", False))


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise LedgerValidationError(f"Invalid date '{value}'.")
    raise LedgerValidationError(f"Invalid date {value!r}.")


def period_key(value) -> str:
    """Period key for a date, e.g. date(2024, 3, 1) -> '2024-03'."""
    return AccountingPeriod.key_for(_as_date(value))


def validate_period_key(key: str) -> str:
    if not isinstance(key, str) or not PERIOD_KEY_RE.match(key):
        raise LedgerValidationError(
            f"Invalid period key {key!r}. Expected YYYY-MM.",
            details={"period": key},
        )
    return key


def get_period(key: str, lock: bool = False):
    """AccountingPeriod row for a key, or None."""
    queryset = AccountingPeriod.objects.filter(period=key)
    if lock:
        queryset = queryset.select_for_update()
    return queryset.first()


def is_open(value) -> bool:
    allowed, _ = can_post_to_period(get_period(period_key(value)), _require_defined())
    return allowed


def ensure_open(value, lock: bool = False) -> str:
    """
    Raise PeriodClosed unless the period containing value accepts postings.

    With lock=True (inside a transaction) the period row is held until
    commit, so a concurrent close waits for in-flight postings.

    Returns the period key.
    """
    key = period_key(value)
    allowed, reason = can_post_to_period(get_period(key, lock=lock), _require_defined())
    if not allowed:
        raise PeriodClosed(reason, details={"period": key, "date": str(_as_date(value))})
    return key
