# tests/conftest.py
"""
Pytest fixtures for ledger tests.

Accounts, periods and documents are created through the command layer
wherever one exists, the same way production code does.
"""

from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from accounting.commands import create_account, open_period
from accounting.models import Account
from accounting.posting import PostingLine, PostingRequest
from documents.models import Expense, Invoice, PayrollRun, SupplierInvoice


User = get_user_model()


# =============================================================================
# Actor Fixtures
# =============================================================================

@pytest.fixture
def user(db):
    """The acting user stamped on ledger rows."""
    return User.objects.create_user(
        username="accountant",
        email="accountant@test.com",
        password="testpass123",
    )


# =============================================================================
# Chart of Accounts Fixtures
# =============================================================================

# (code, name, type, parent_code, is_contra)
TEST_CHART = [
    ("1", "Assets", Account.AccountType.ASSET, None, False),
    ("1111", "Main Cash", Account.AccountType.ASSET, "1", False),
    ("1141", "Customers", Account.AccountType.ASSET, "1", False),
    ("1220", "Accumulated Depreciation", Account.AccountType.ASSET, "1", True),
    ("2", "Liabilities", Account.AccountType.LIABILITY, None, False),
    ("2111", "Suppliers", Account.AccountType.LIABILITY, "2", False),
    ("2141", "VAT", Account.AccountType.LIABILITY, "2", False),
    ("2430", "Accrued Payroll", Account.AccountType.LIABILITY, "2", False),
    ("2431", "Payroll Deductions Payable", Account.AccountType.LIABILITY, "2", False),
    ("3", "Equity", Account.AccountType.EQUITY, None, False),
    ("3100", "Capital", Account.AccountType.EQUITY, "3", False),
    ("4", "Revenue", Account.AccountType.REVENUE, None, False),
    ("4111", "Cash Sales", Account.AccountType.REVENUE, "4", False),
    ("5", "Expenses", Account.AccountType.EXPENSE, None, False),
    ("5120", "Electricity Expense", Account.AccountType.EXPENSE, "5", False),
    ("5201", "Purchases", Account.AccountType.EXPENSE, "5", False),
    ("5210", "Salaries and Wages", Account.AccountType.EXPENSE, "5", False),
    ("5250", "Depreciation Expense", Account.AccountType.EXPENSE, "5", False),
]


@pytest.fixture
def chart(db):
    """A small chart covering every document posting account."""
    accounts = {}
    for code, name, account_type, parent_code, is_contra in TEST_CHART:
        result = create_account(
            None,
            code=code,
            name=name,
            account_type=account_type,
            parent_code=parent_code,
            is_contra=is_contra,
        )
        assert result.success, result.error
        accounts[code] = result.data
    return accounts


@pytest.fixture
def march_2024(db):
    """Open period 2024-03."""
    result = open_period(None, "2024-03")
    assert result.success, result.error
    return result.data


# =============================================================================
# Posting Request Fixtures
# =============================================================================

@pytest.fixture
def cash_sale():
    """The cash sale: 115 cash against 100 sales and 15 VAT."""
    return PostingRequest(
        description="cash sale",
        date=date(2024, 3, 1),
        lines=[
            PostingLine("1111", debit=Decimal("115")),
            PostingLine("4111", credit=Decimal("100")),
            PostingLine("2141", credit=Decimal("15")),
        ],
    )


@pytest.fixture
def cash_sale_payload():
    """The cash sale as an untyped payload."""
    return {
        "description": "cash sale",
        "date": "2024-03-01",
        "lines": [
            {"account_code": "1111", "debit": "115", "credit": "0"},
            {"account_code": "4111", "debit": "0", "credit": "100"},
            {"account_code": "2141", "debit": "0", "credit": "15"},
        ],
    }


# =============================================================================
# Document Fixtures
# =============================================================================

@pytest.fixture
def invoice(db):
    """Draft cash invoice: 200 - 20 discount + 27 VAT = 207."""
    return Invoice.objects.create(
        number="INV-0001",
        date=date(2024, 3, 5),
        customer_name="Walk-in",
        payment_method=Invoice.PaymentMethod.CASH,
        subtotal=Decimal("200.00"),
        discount=Decimal("20.00"),
        tax=Decimal("27.00"),
        total=Decimal("207.00"),
    )


@pytest.fixture
def credit_invoice(db):
    """Draft credit invoice without VAT."""
    return Invoice.objects.create(
        number="INV-0002",
        date=date(2024, 3, 6),
        customer_name="Acme",
        payment_method=Invoice.PaymentMethod.CREDIT,
        subtotal=Decimal("500.00"),
        total=Decimal("500.00"),
    )


@pytest.fixture
def supplier_invoice(db):
    """Draft credit supplier invoice: 1000 + 150 VAT."""
    return SupplierInvoice.objects.create(
        number="SUP-0001",
        date=date(2024, 3, 7),
        supplier_name="Wholesaler",
        payment_method=SupplierInvoice.PaymentMethod.CREDIT,
        subtotal=Decimal("1000.00"),
        tax=Decimal("150.00"),
        total=Decimal("1150.00"),
    )


@pytest.fixture
def expense(db):
    """Draft electricity expense paid in cash."""
    return Expense.objects.create(
        number="EXP-0001",
        date=date(2024, 3, 8),
        description="Electricity bill",
        expense_account_code="5120",
        total=Decimal("320.50"),
    )


@pytest.fixture
def payroll_run(db):
    """Draft payroll run: 10000 gross, 900 deductions, 9100 net."""
    return PayrollRun.objects.create(
        date=date(2024, 3, 31),
        period="2024-03",
        gross_total=Decimal("10000.00"),
        deductions_total=Decimal("900.00"),
        net_total=Decimal("9100.00"),
    )
