"""Ledgerbook: double-entry bookkeeping service and ledger engine."""

__version__ = "0.1.0"
