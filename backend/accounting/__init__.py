"""
Accounting app - double-entry ledger core.

This app provides:
- Account: Chart of Accounts with hierarchy
- AccountingPeriod: month buckets gating postings
- JournalEntry / JournalPosting: balanced entries and their lines
- LedgerSequence: race-safe entry numbering

Commands (accounting.commands) handle all mutations.
"""
