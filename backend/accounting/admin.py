"""
Django admin configuration for ledger models.

The admin is view-only. Posted and reversed entries are immutable and
every mutation goes through the command layer (accounting/commands.py),
so there is no raw update path on ledger rows.
"""

from django.contrib import admin
from django.utils.html import format_html

from .models import (
    Account,
    AccountingPeriod,
    JournalEntry,
    JournalPosting,
    LedgerSequence,
)


class ReadOnlyModelAdmin(admin.ModelAdmin):
    """
    Base admin class for ledger tables.

    To modify ledger data, use the command layer (accounting/commands.py).
    """

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class ReadOnlyInline(admin.TabularInline):
    """Base inline class for ledger tables."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class JournalPostingInline(ReadOnlyInline):
    """Inline display of postings within a journal entry."""
    model = JournalPosting
    extra = 0
    readonly_fields = ["line_no", "account", "debit", "credit"]
    fields = ["line_no", "account", "debit", "credit"]


@admin.register(Account)
class AccountAdmin(ReadOnlyModelAdmin):
    list_display = [
        "code", "name", "account_type", "nature", "is_contra",
        "parent", "opening_balance", "allow_manual_entry",
    ]
    list_filter = ["account_type", "nature", "is_contra", "allow_manual_entry"]
    search_fields = ["code", "name", "name_ar"]
    ordering = ["code"]
    readonly_fields = [
        "code", "name", "name_ar", "account_type", "nature", "is_contra",
        "parent", "opening_balance", "allow_manual_entry",
        "created_at", "updated_at",
    ]


@admin.register(AccountingPeriod)
class AccountingPeriodAdmin(ReadOnlyModelAdmin):
    list_display = ["period", "status", "opened_at", "closed_at", "closed_by"]
    list_filter = ["status"]
    ordering = ["-period"]
    readonly_fields = ["period", "status", "opened_at", "closed_at", "closed_by", "updated_at"]


@admin.register(JournalEntry)
class JournalEntryAdmin(ReadOnlyModelAdmin):
    """Admin interface for Journal Entries (read-only)."""

    list_display = [
        "id", "entry_number", "date", "period", "description_truncated",
        "status_colored", "reference_type", "reference_id", "branch",
    ]
    list_filter = ["status", "period", "reference_type", "branch"]
    search_fields = ["entry_number", "description"]
    date_hierarchy = "date"
    list_select_related = ["posted_by", "created_by"]
    ordering = ["-date", "-id"]

    fieldsets = (
        (None, {
            "fields": ("entry_number", "date", "period", "description", "branch"),
        }),
        ("Status & Workflow", {
            "fields": ("status", "posted_at", "posted_by", "reversed_at", "reversed_by", "reverses_entry"),
        }),
        ("Source", {
            "fields": ("reference_type", "reference_id"),
        }),
        ("Audit", {
            "fields": ("created_at", "created_by", "updated_at"),
            "classes": ("collapse",),
        }),
    )

    readonly_fields = [
        "entry_number", "date", "period", "description", "branch",
        "status", "posted_at", "posted_by", "reversed_at", "reversed_by",
        "reverses_entry", "reference_type", "reference_id",
        "created_at", "created_by", "updated_at",
    ]
    inlines = [JournalPostingInline]

    def description_truncated(self, obj):
        """Truncate description for list display."""
        if len(obj.description) > 50:
            return f"{obj.description[:50]}..."
        return obj.description
    description_truncated.short_description = "Description"

    def status_colored(self, obj):
        """Show status with color coding."""
        colors = {
            JournalEntry.Status.DRAFT: "#007bff",
            JournalEntry.Status.POSTED: "#28a745",
            JournalEntry.Status.REVERSED: "#dc3545",
        }
        color = colors.get(obj.status, "#000")
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            color,
            obj.get_status_display(),
        )
    status_colored.short_description = "Status"
    status_colored.admin_order_field = "status"


@admin.register(JournalPosting)
class JournalPostingAdmin(ReadOnlyModelAdmin):
    list_display = ["entry", "line_no", "account", "debit", "credit", "entry_status"]
    list_filter = ["entry__status", "account__account_type"]
    search_fields = ["account__code", "account__name"]
    list_select_related = ["entry", "account"]
    ordering = ["entry", "line_no"]
    readonly_fields = ["entry", "line_no", "account", "debit", "credit"]

    def entry_status(self, obj):
        return obj.entry.status
    entry_status.short_description = "Entry Status"
    entry_status.admin_order_field = "entry__status"


@admin.register(LedgerSequence)
class LedgerSequenceAdmin(ReadOnlyModelAdmin):
    list_display = ["name", "next_value", "updated_at"]
    readonly_fields = ["name", "next_value", "updated_at"]
