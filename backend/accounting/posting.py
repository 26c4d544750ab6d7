# accounting/posting.py
"""
Posting request contract between document modules and the ledger.

A posting request is a closed shape: a description, a date, an optional
branch, an optional reference back to the owning document, and an ordered
list of lines with exactly {account_code, debit, credit}.

Validation happens here, before the ledger touches storage:
1. Shape (DRF serializer): types, 2-decimal fixed-point amounts, known
   reference types. Failures raise LedgerValidationError.
2. Line rules: at least two lines, each line has exactly one non-zero side.
   Failures raise EmptyEntry.
3. Balance (posted entries only): debit and credit totals compared in
   integer cents with zero tolerance. Failures raise UnbalancedEntry.

Usage:
    from accounting.posting import PostingRequest, PostingLine

    request = PostingRequest(
        description="cash sale",
        date=date(2024, 3, 1),
        lines=[
            PostingLine("1111", debit=Decimal("115")),
            PostingLine("4111", credit=Decimal("100")),
            PostingLine("2141", credit=Decimal("15")),
        ],
    )
"""

from dataclasses import dataclass, field
from datetime import date as date_type
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from django.conf import settings
from rest_framework import serializers

from accounting.exceptions import EmptyEntry, LedgerValidationError, UnbalancedEntry


ZERO = Decimal("0.00")
CENT = Decimal("0.01")


@dataclass(frozen=True)
class PostingLine:
    """One debit-or-credit line of a posting request."""
    account_code: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "account_code": self.account_code,
            "debit": str(self.debit),
            "credit": str(self.credit),
        }

    def swapped(self) -> "PostingLine":
        """Mirror-image line: debit and credit exchanged."""
        return PostingLine(self.account_code, debit=self.credit, credit=self.debit)


@dataclass(frozen=True)
class DocumentReference:
    """Owning document of an entry: reference type plus row id."""
    type: str
    id: int

    def to_dict(self) -> dict:
        return {"type": self.type, "id": self.id}


@dataclass
class PostingRequest:
    description: str
    date: date_type
    lines: List[PostingLine] = field(default_factory=list)
    branch: str = ""
    reference: Optional[DocumentReference] = None

    def to_dict(self) -> dict:
        return {
            "description": self.description,
            "date": self.date,
            "branch": self.branch,
            "reference": self.reference.to_dict() if self.reference else None,
            "lines": [line.to_dict() for line in self.lines],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PostingRequest":
        """Build a request from an untyped payload, validating its shape."""
        return _from_validated(_validate_shape(data))

    @property
    def account_codes(self) -> List[str]:
        return [line.account_code for line in self.lines]


# =============================================================================
# Shape validation
# =============================================================================

class AmountField(serializers.DecimalField):
    """
    Two-place amount. Zeros below the cent (115.000, qty * price) are
    dropped; any non-zero digit below the cent is still a shape error.
    """

    def validate_precision(self, value):
        try:
            cents = value.quantize(CENT)
        except InvalidOperation:
            return super().validate_precision(value)
        if cents == value:
            value = cents
        return super().validate_precision(value)


class PostingLineSerializer(serializers.Serializer):
    account_code = serializers.CharField(max_length=20)
    debit = AmountField(
        max_digits=18, decimal_places=2, min_value=ZERO, required=False, default=ZERO,
    )
    credit = AmountField(
        max_digits=18, decimal_places=2, min_value=ZERO, required=False, default=ZERO,
    )


class DocumentReferenceSerializer(serializers.Serializer):
    type = serializers.CharField(max_length=50)
    id = serializers.IntegerField(min_value=1)

    def validate_type(self, value):
        known = getattr(settings, "LEDGER_REFERENCE_MODELS", {})
        if value not in known:
            raise serializers.ValidationError(
                f"Unknown reference type '{value}'. Expected one of: {', '.join(sorted(known))}."
            )
        return value


class PostingRequestSerializer(serializers.Serializer):
    """
    Serializer for posting request input.

    Amounts must be exact fixed-point values with at most two decimal
    places; anything else is a shape error, not an amount to round.
    """
    description = serializers.CharField(required=False, allow_blank=True, default="")
    date = serializers.DateField()
    branch = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    reference = DocumentReferenceSerializer(required=False, allow_null=True, default=None)
    lines = PostingLineSerializer(many=True, allow_empty=True)


def _validate_shape(data: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise LedgerValidationError("Posting request must be a mapping.")
    serializer = PostingRequestSerializer(data=data)
    if not serializer.is_valid():
        raise LedgerValidationError(
            "Malformed posting request.",
            details={"errors": serializer.errors},
        )
    return serializer.validated_data


def _from_validated(data: Dict[str, Any]) -> PostingRequest:
    reference = data.get("reference")
    return PostingRequest(
        description=data.get("description", ""),
        date=data["date"],
        branch=data.get("branch", ""),
        reference=DocumentReference(reference["type"], reference["id"]) if reference else None,
        lines=[
            PostingLine(
                account_code=line["account_code"],
                debit=line["debit"],
                credit=line["credit"],
            )
            for line in data["lines"]
        ],
    )


# =============================================================================
# Line rules and balance
# =============================================================================

def to_cents(amount: Decimal) -> int:
    """Exact integer cents for a 2-decimal amount."""
    return int((Decimal(amount) * 100).to_integral_value())


def check_lines(lines: List[PostingLine]) -> None:
    """Raise EmptyEntry unless every line is one-sided and non-zero."""
    if len(lines) < 2:
        raise EmptyEntry(
            "A journal entry needs at least two lines.",
            details={"line_count": len(lines)},
        )
    for index, line in enumerate(lines, start=1):
        if line.debit > 0 and line.credit > 0:
            raise EmptyEntry(
                f"Line {index} has both a debit and a credit.",
                details={"line_no": index, "account_code": line.account_code},
            )
        if line.debit == 0 and line.credit == 0:
            raise EmptyEntry(
                f"Line {index} has neither a debit nor a credit.",
                details={"line_no": index, "account_code": line.account_code},
            )


def line_totals(lines: List[PostingLine]) -> tuple[int, int]:
    """(debit_cents, credit_cents)"""
    debit = sum(to_cents(line.debit) for line in lines)
    credit = sum(to_cents(line.credit) for line in lines)
    return debit, credit


def check_balanced(lines: List[PostingLine]) -> None:
    debit, credit = line_totals(lines)
    if debit != credit:
        raise UnbalancedEntry(
            f"Entry is not balanced. Debit={Decimal(debit) / 100:.2f} Credit={Decimal(credit) / 100:.2f}",
            details={
                "debit": f"{Decimal(debit) / 100:.2f}",
                "credit": f"{Decimal(credit) / 100:.2f}",
                "delta": f"{Decimal(debit - credit) / 100:.2f}",
            },
        )


def validate_request(request, require_balance: bool = True) -> PostingRequest:
    """
    Run every pre-I/O check on a request and return a normalized copy.

    Accepts a PostingRequest or a plain dict payload.
    """
    payload = request.to_dict() if isinstance(request, PostingRequest) else request
    normalized = _from_validated(_validate_shape(payload))
    check_lines(normalized.lines)
    if require_balance:
        check_balanced(normalized.lines)
    return normalized
