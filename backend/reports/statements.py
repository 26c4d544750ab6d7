# reports/statements.py
"""
Balance sheet and income statement rollups.

Both group account balances by type from reports.queries, so they read
effective posted entries only. Within a type, an account whose nature is
the type's usual side adds to the total and a contra account subtracts.

The balance sheet carries current earnings (revenue - expense up to the
as-of date) so that, for a chart whose opening balances balance:

    total_assets == total_liabilities + total_equity + current_earnings
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from accounting.models import Account
from reports.queries import ZERO, check_range, movement_by_account, signed


@dataclass
class StatementLine:
    code: str
    name: str
    name_ar: str
    balance: Decimal
    is_contra: bool = False

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "name": self.name,
            "name_ar": self.name_ar or self.name,
            "balance": str(self.balance),
            "is_contra": self.is_contra,
        }


@dataclass
class StatementSection:
    title: str
    title_ar: str
    lines: List[StatementLine] = field(default_factory=list)
    total: Decimal = ZERO

    def add(self, account: Account, balance: Decimal) -> None:
        self.lines.append(StatementLine(
            code=account.code,
            name=account.name,
            name_ar=account.name_ar,
            balance=balance,
            is_contra=account.is_contra,
        ))
        self.total += -balance if account.is_contra else balance

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "title_ar": self.title_ar,
            "accounts": [line.to_dict() for line in self.lines],
            "total": str(self.total),
        }


def _balances(date_from=None, date_to=None, branch=None, with_opening: bool = True):
    """(account, balance) for every account with a non-zero balance."""
    movement = movement_by_account(date_from, date_to, branch)
    for account in Account.objects.order_by("code"):
        debit, credit = movement.get(account.id, (ZERO, ZERO))
        balance = signed(account, debit, credit)
        if with_opening:
            balance += account.opening_balance
        if balance != 0:
            yield account, balance


# =============================================================================
# Balance sheet
# =============================================================================

@dataclass
class BalanceSheet:
    as_of: Optional[date]
    assets: StatementSection
    liabilities: StatementSection
    equity: StatementSection
    current_earnings: Decimal = ZERO

    @property
    def total_liabilities_and_equity(self) -> Decimal:
        return self.liabilities.total + self.equity.total + self.current_earnings

    @property
    def is_balanced(self) -> bool:
        return self.assets.total == self.total_liabilities_and_equity

    def to_dict(self) -> dict:
        return {
            "as_of": self.as_of.isoformat() if self.as_of else None,
            "assets": self.assets.to_dict(),
            "liabilities": self.liabilities.to_dict(),
            "equity": self.equity.to_dict(),
            "current_earnings": str(self.current_earnings),
            "total_assets": str(self.assets.total),
            "total_liabilities": str(self.liabilities.total),
            "total_equity": str(self.equity.total),
            "total_liabilities_and_equity": str(self.total_liabilities_and_equity),
            "is_balanced": self.is_balanced,
        }


def balance_sheet(as_of: Optional[date] = None, branch: Optional[str] = None) -> BalanceSheet:
    """Assets, liabilities and equity as of a date (inclusive)."""
    sheet = BalanceSheet(
        as_of=as_of,
        assets=StatementSection("Total Assets", "إجمالي الأصول"),
        liabilities=StatementSection("Total Liabilities", "إجمالي الالتزامات"),
        equity=StatementSection("Total Equity", "إجمالي حقوق الملكية"),
    )
    sections = {
        Account.AccountType.ASSET: sheet.assets,
        Account.AccountType.LIABILITY: sheet.liabilities,
        Account.AccountType.EQUITY: sheet.equity,
    }

    revenue = ZERO
    expenses = ZERO
    for account, balance in _balances(date_to=as_of, branch=branch):
        if account.account_type in sections:
            sections[account.account_type].add(account, balance)
        elif account.account_type == Account.AccountType.REVENUE:
            revenue += -balance if account.is_contra else balance
        elif account.account_type == Account.AccountType.EXPENSE:
            expenses += -balance if account.is_contra else balance

    sheet.current_earnings = revenue - expenses
    return sheet


# =============================================================================
# Income statement
# =============================================================================

@dataclass
class IncomeStatement:
    date_from: Optional[date]
    date_to: Optional[date]
    revenue: StatementSection
    expenses: StatementSection

    @property
    def net_income(self) -> Decimal:
        return self.revenue.total - self.expenses.total

    def to_dict(self) -> dict:
        return {
            "date_from": self.date_from.isoformat() if self.date_from else None,
            "date_to": self.date_to.isoformat() if self.date_to else None,
            "revenue": self.revenue.to_dict(),
            "expenses": self.expenses.to_dict(),
            "total_revenue": str(self.revenue.total),
            "total_expenses": str(self.expenses.total),
            "net_income": str(self.net_income),
        }


def income_statement(date_from=None, date_to=None, branch=None) -> IncomeStatement:
    """
    Revenue and expense movement over a date range.

    With no date_from the accounts' opening balances are included; with a
    range only movement inside it counts.
    """
    check_range(date_from, date_to)
    statement = IncomeStatement(
        date_from=date_from,
        date_to=date_to,
        revenue=StatementSection("Total Revenue", "إجمالي الإيرادات"),
        expenses=StatementSection("Total Expenses", "إجمالي المصروفات"),
    )
    sections = {
        Account.AccountType.REVENUE: statement.revenue,
        Account.AccountType.EXPENSE: statement.expenses,
    }
    for account, balance in _balances(date_from, date_to, branch, with_opening=date_from is None):
        if account.account_type in sections:
            sections[account.account_type].add(account, balance)
    return statement
