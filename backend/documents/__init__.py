"""
Documents app - business documents that post to the ledger.

Invoice, SupplierInvoice, Expense and PayrollRun each carry a nullable
journal_entry link written by the ledger inside the posting transaction.
"""
