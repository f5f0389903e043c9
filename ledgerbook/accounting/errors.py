"""Exceptions raised by the ledger engine.

All engine errors derive from :class:`LedgerError`, which carries a stable
``error_code`` and a ``details`` mapping so the API layer can render a
consistent payload without knowing the concrete failure.

Hierarchy::

    LedgerError
    ├── ValidationError
    │   └── UnbalancedEntryError
    ├── NotFoundError
    ├── InvalidEntryType
    ├── MissingRequiredAccount
    └── InconsistentLedgerState
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, Optional


class LedgerError(Exception):
    """Base class for every error raised by the ledger engine."""

    default_error_code: str = "LEDGER_ERROR"

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details: Dict[str, Any] = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(LedgerError):
    """Malformed or missing input; the caller can correct and resubmit."""

    default_error_code = "VALIDATION_ERROR"


class UnbalancedEntryError(ValidationError):
    """A journal entry whose debit and credit totals differ."""

    default_error_code = "UNBALANCED_ENTRY"


class NotFoundError(LedgerError):
    """Referenced account or transaction does not exist for the caller."""

    default_error_code = "NOT_FOUND"


class InvalidEntryType(LedgerError):
    """A transaction kind that is not the natural side of its account type."""

    default_error_code = "INVALID_ENTRY_TYPE"

    def __init__(self, account_type: str, kind: str) -> None:
        self.account_type = account_type
        self.kind = kind
        super().__init__(
            f"Invalid transaction type '{kind}' for {account_type} account",
            details={"account_type": account_type, "kind": kind},
        )


class MissingRequiredAccount(LedgerError):
    """Closing was requested without the clearing accounts it needs."""

    default_error_code = "MISSING_REQUIRED_ACCOUNT"

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            "Closing requires the following accounts: " + ", ".join(self.missing),
            details={"missing": self.missing},
        )


class InconsistentLedgerState(LedgerError):
    """The ledger cannot reverse a prior effect it is asked to undo."""

    default_error_code = "INCONSISTENT_LEDGER_STATE"


__all__ = [
    "LedgerError",
    "ValidationError",
    "UnbalancedEntryError",
    "NotFoundError",
    "InvalidEntryType",
    "MissingRequiredAccount",
    "InconsistentLedgerState",
]
