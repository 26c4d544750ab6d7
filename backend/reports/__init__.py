"""
Reports app - read-only ledger queries.

Balances, account ledgers, trial balance and financial statements, all
computed from posted journal entries only.
"""
