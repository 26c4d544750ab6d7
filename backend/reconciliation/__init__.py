"""
Reconciliation app - read-only sweeps that re-verify ledger invariants.
"""
