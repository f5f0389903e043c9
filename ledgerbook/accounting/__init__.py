"""Core double-entry ledger logic for Ledgerbook."""

from .balances import compute_balance, signed_effect, validate_entry_type
from .closing import ClosingPlan, ClosingStep, close_period
from .engine import AccountingEngine
from .errors import (
    InconsistentLedgerState,
    InvalidEntryType,
    LedgerError,
    MissingRequiredAccount,
    NotFoundError,
    UnbalancedEntryError,
    ValidationError,
)
from .models import Account, AccountType, EntryKind, JournalEntry, Period, Transaction
from .repository import InMemoryRepository, JsonFileRepository, LedgerRepository, LedgerSnapshot
from .statements import (
    build_balance_sheet,
    build_general_ledger,
    build_income_statement,
    build_trial_balance,
)

__all__ = [
    "Account",
    "AccountType",
    "AccountingEngine",
    "ClosingPlan",
    "ClosingStep",
    "EntryKind",
    "InMemoryRepository",
    "InconsistentLedgerState",
    "InvalidEntryType",
    "JournalEntry",
    "JsonFileRepository",
    "LedgerError",
    "LedgerRepository",
    "LedgerSnapshot",
    "MissingRequiredAccount",
    "NotFoundError",
    "Period",
    "Transaction",
    "UnbalancedEntryError",
    "ValidationError",
    "build_balance_sheet",
    "build_general_ledger",
    "build_income_statement",
    "build_trial_balance",
    "close_period",
    "compute_balance",
    "signed_effect",
    "validate_entry_type",
]
