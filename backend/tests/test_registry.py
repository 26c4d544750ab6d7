# tests/test_registry.py
"""
Tests for the account registry.

Tests cover:
- Code resolution
- Account creation, auto-assigned codes and nature rules
- Updates, reparenting and reclassification guards
- Deletion guard and child reparenting
- Forest assembly with dangling parents and cycles
- Chart seeding
"""

from decimal import Decimal

import pytest
from django.core.management import call_command

from accounting import registry
from accounting.chart import DEFAULT_CHART
from accounting.commands import (
    create_account,
    delete_account,
    ensure_account,
    post_entry,
    update_account,
)
from accounting.exceptions import AccountNotFound
from accounting.models import Account


# =============================================================================
# Resolution
# =============================================================================

@pytest.mark.django_db
class TestResolve:

    def test_resolve_known_code(self, chart):
        assert registry.resolve("1111") == chart["1111"].id

    def test_resolve_unknown_code_raises_not_found(self, chart):
        with pytest.raises(AccountNotFound) as exc_info:
            registry.resolve("9999")
        assert exc_info.value.code == "not_found"

    def test_resolve_many_lists_every_missing_code(self, chart):
        with pytest.raises(AccountNotFound) as exc_info:
            registry.resolve_many(["1111", "8888", "9999"])
        assert exc_info.value.details["codes"] == ["8888", "9999"]

    def test_resolve_many_returns_accounts_by_code(self, chart):
        found = registry.resolve_many(["1111", "4111"])
        assert set(found) == {"1111", "4111"}
        assert found["4111"].name == "Cash Sales"


# =============================================================================
# Creation
# =============================================================================

@pytest.mark.django_db
class TestCreateAccount:

    def test_nature_derived_from_type(self, chart):
        assert chart["1111"].nature == Account.Nature.DEBIT
        assert chart["2141"].nature == Account.Nature.CREDIT
        assert chart["3100"].nature == Account.Nature.CREDIT
        assert chart["4111"].nature == Account.Nature.CREDIT
        assert chart["5120"].nature == Account.Nature.DEBIT

    def test_contra_account_takes_opposite_nature(self, chart):
        assert chart["1220"].is_contra is True
        assert chart["1220"].nature == Account.Nature.CREDIT

    def test_mismatched_nature_rejected(self, chart):
        result = create_account(
            None, code="1300", name="Odd", account_type="asset", nature="credit",
        )
        assert not result.success
        assert result.code == "validation_error"
        assert not Account.objects.filter(code="1300").exists()

    def test_unknown_type_rejected(self, chart):
        result = create_account(None, code="7000", name="Memo", account_type="memo")
        assert not result.success
        assert result.code == "validation_error"

    def test_duplicate_code_is_conflict(self, chart):
        result = create_account(None, code="1111", name="Again", account_type="asset")
        assert not result.success
        assert result.code == "conflict"

    def test_unknown_parent_is_not_found(self, chart):
        result = create_account(None, code="6001", name="Stray", account_type="expense", parent_code="6")
        assert not result.success
        assert result.code == "not_found"

    def test_auto_code_increments_highest_sibling(self, chart):
        result = create_account(None, name="Other Receivables", account_type="asset", parent_code="1")
        assert result.success
        # Children of "1": 1111, 1141, 1220
        assert result.data.code == "1221"
        assert result.data.parent_id == chart["1"].id

    def test_auto_code_falls_back_to_parent_plus_01(self, chart):
        result = create_account(None, name="Petty Cash", account_type="asset", parent_code="1111")
        assert result.success
        assert result.data.code == "111101"

    def test_auto_code_top_level(self, chart):
        result = create_account(None, name="Memo Block", account_type="expense")
        assert result.success
        assert result.data.code == "6"

    def test_auto_code_keeps_sibling_width(self, db):
        create_account(None, code="0001", name="Assets", account_type="asset")
        result = create_account(None, name="Liabilities", account_type="liability")
        assert result.data.code == "0002"

    def test_ensure_account_is_idempotent(self, chart):
        result = ensure_account(None, code="1111", name="Renamed?", account_type="asset")
        assert result.success
        assert result.data.id == chart["1111"].id
        assert result.data.name == "Main Cash"


# =============================================================================
# Update
# =============================================================================

@pytest.mark.django_db
class TestUpdateAccount:

    def test_rename(self, chart):
        result = update_account(None, "1111", name="Head Office Cash", name_ar="صندوق المركز")
        assert result.success
        account = Account.objects.get(code="1111")
        assert account.name == "Head Office Cash"
        assert account.get_localized_name("ar") == "صندوق المركز"

    def test_reparent(self, chart):
        result = update_account(None, "1141", parent_code="1111")
        assert result.success
        assert Account.objects.get(code="1141").parent_id == chart["1111"].id

    def test_reparent_under_descendant_rejected(self, chart):
        result = update_account(None, "1", parent_code="1111")
        assert not result.success
        assert result.code == "validation_error"
        assert Account.objects.get(code="1").parent_id is None

    def test_reparent_to_self_rejected(self, chart):
        result = update_account(None, "1111", parent_code="1111")
        assert not result.success

    def test_unknown_field_rejected(self, chart):
        result = update_account(None, "1111", code="1112")
        assert not result.success
        assert result.code == "validation_error"
        assert result.details["fields"] == ["code"]
        assert Account.objects.filter(code="1111").exists()
        assert not Account.objects.filter(code="1112").exists()

    def test_reclassify_without_postings(self, chart):
        result = update_account(None, "5250", account_type="asset", is_contra=True)
        assert result.success
        account = Account.objects.get(code="5250")
        assert account.account_type == Account.AccountType.ASSET
        assert account.nature == Account.Nature.CREDIT

    def test_reclassify_with_postings_refused(self, chart, cash_sale):
        assert post_entry(None, cash_sale).success
        result = update_account(None, "4111", account_type="expense")
        assert not result.success
        assert result.code == "has_postings"
        assert Account.objects.get(code="4111").account_type == Account.AccountType.REVENUE

    def test_opening_balance_update(self, chart):
        result = update_account(None, "3100", opening_balance=Decimal("5000.00"))
        assert result.success
        assert Account.objects.get(code="3100").opening_balance == Decimal("5000.00")


# =============================================================================
# Delete
# =============================================================================

@pytest.mark.django_db
class TestDeleteAccount:

    def test_delete_unused_account(self, chart):
        result = delete_account(None, "5250")
        assert result.success
        assert not Account.objects.filter(code="5250").exists()

    def test_delete_with_postings_refused(self, chart, cash_sale):
        assert post_entry(None, cash_sale).success
        result = delete_account(None, "1111")
        assert not result.success
        assert result.code == "has_postings"
        assert Account.objects.filter(code="1111").exists()

    def test_delete_moves_children_to_grandparent(self, chart):
        create_account(None, code="111101", name="Petty Cash", account_type="asset", parent_code="1111")
        result = delete_account(None, "1111")
        assert result.success
        assert result.data["reparented"] == 1
        assert Account.objects.get(code="111101").parent_id == chart["1"].id

    def test_delete_unknown_account(self, chart):
        result = delete_account(None, "9999")
        assert result.code == "not_found"


# =============================================================================
# Tree assembly
# =============================================================================

@pytest.mark.django_db
class TestTree:

    def test_tree_nests_children(self, chart):
        forest = registry.tree()
        roots = [node.account.code for node in forest.roots]
        assert roots == ["1", "2", "3", "4", "5"]

        assets = forest.roots[0]
        assert [child.account.code for child in assets.children] == ["1111", "1141", "1220"]
        assert forest.dangling == []
        assert forest.cycles == []

    def test_dangling_parent_promoted_to_root(self, chart):
        Account.objects.filter(code="1141").update(parent_id=987654)
        forest = registry.tree()
        assert "1141" in [node.account.code for node in forest.roots]
        assert forest.dangling == ["1141"]

    def test_cycle_reported_and_broken(self, chart):
        # 1111 -> 1141 -> 1111
        Account.objects.filter(code="1111").update(parent_id=chart["1141"].id)
        Account.objects.filter(code="1141").update(parent_id=chart["1111"].id)

        forest = registry.tree()
        assert forest.cycles == [["1111", "1141"]]

        codes = [node.account.code for node, _ in forest.walk()]
        assert sorted(codes) == sorted(Account.objects.values_list("code", flat=True))

    def test_walk_reports_depth(self, chart):
        depths = {node.account.code: depth for node, depth in registry.tree().walk()}
        assert depths["1"] == 0
        assert depths["1111"] == 1

    def test_to_dict(self, chart):
        data = registry.tree().roots[0].to_dict()
        assert data["code"] == "1"
        assert data["children"][0]["code"] == "1111"


# =============================================================================
# Seeding
# =============================================================================

@pytest.mark.django_db
class TestSeedChart:

    def test_seed_creates_default_chart(self):
        call_command("seed_chart_of_accounts")
        assert Account.objects.count() == len(DEFAULT_CHART)
        vat = Account.objects.get(code="2141")
        assert vat.parent.code == "2140"
        assert Account.objects.get(code="1221").nature == Account.Nature.CREDIT

    def test_seed_is_idempotent(self):
        call_command("seed_chart_of_accounts")
        call_command("seed_chart_of_accounts")
        assert Account.objects.count() == len(DEFAULT_CHART)

    def test_seed_opens_current_period(self):
        from accounting.models import AccountingPeriod

        call_command("seed_chart_of_accounts", "--open-current-period")
        assert AccountingPeriod.objects.filter(status=AccountingPeriod.Status.OPEN).count() == 1
