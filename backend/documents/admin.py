"""
Django admin for documents.

Document amounts are editable while the document is a draft. The status
and the journal_entry link are written only by documents.posting, so they
are always read-only here.
"""

from django.contrib import admin

from .models import Expense, Invoice, PayrollRun, SupplierInvoice


class DocumentAdmin(admin.ModelAdmin):
    list_filter = ["status", "branch"]
    date_hierarchy = "date"
    ordering = ["-date", "-id"]
    ledger_fields = ["status", "journal_entry", "created_at", "updated_at"]

    def get_readonly_fields(self, request, obj=None):
        if obj is not None and obj.status != obj.Status.DRAFT:
            return [field.name for field in obj._meta.fields]
        return self.ledger_fields

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.journal_entry_id is not None:
            return False
        return super().has_delete_permission(request, obj)


@admin.register(Invoice)
class InvoiceAdmin(DocumentAdmin):
    list_display = ["number", "date", "customer_name", "payment_method", "total", "status", "journal_entry"]
    search_fields = ["number", "customer_name"]


@admin.register(SupplierInvoice)
class SupplierInvoiceAdmin(DocumentAdmin):
    list_display = ["number", "date", "supplier_name", "payment_method", "total", "status", "journal_entry"]
    search_fields = ["number", "supplier_name"]


@admin.register(Expense)
class ExpenseAdmin(DocumentAdmin):
    list_display = ["number", "date", "description", "expense_account_code", "total", "status", "journal_entry"]
    search_fields = ["number", "description", "expense_account_code"]


@admin.register(PayrollRun)
class PayrollRunAdmin(DocumentAdmin):
    list_display = ["period", "date", "gross_total", "net_total", "status", "journal_entry"]
    search_fields = ["period"]
