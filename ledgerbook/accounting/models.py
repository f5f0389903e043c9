"""Domain records for accounts, transaction lines and journal entries."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import List, Optional, Tuple, Union
from uuid import uuid4

from .errors import UnbalancedEntryError, ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0")

AmountLike = Union[Decimal, float, int, str]


class AccountType(str, Enum):
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class EntryKind(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


def to_amount(value: AmountLike) -> Decimal:
    """Convert ``value`` to a Decimal rounded half-up to the cent."""
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def new_id() -> str:
    return str(uuid4())


@dataclass(frozen=True)
class Account:
    """A ledger account. ``type`` is fixed for the lifetime of the account."""

    id: str
    number: str
    name: str
    type: AccountType
    description: str = ""
    opening_balance: Decimal = ZERO

    def __post_init__(self) -> None:
        if not str(self.number).strip():
            raise ValidationError("Account number is required")
        if not str(self.name).strip():
            raise ValidationError("Account name is required")
        try:
            object.__setattr__(self, "type", AccountType(self.type))
        except ValueError as exc:
            raise ValidationError(f"Invalid account type: {self.type!r}") from exc
        object.__setattr__(self, "opening_balance", to_amount(self.opening_balance))


@dataclass(frozen=True)
class Transaction:
    """A single dated debit or credit line against one account."""

    id: str
    date: date
    description: str
    account_id: str
    amount: Decimal
    kind: EntryKind
    entry_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.date, date):
            raise ValidationError(f"Invalid transaction date: {self.date!r}")
        if not str(self.description).strip():
            raise ValidationError("Description is required")
        if not self.account_id:
            raise ValidationError("Account ID is required")
        try:
            object.__setattr__(self, "kind", EntryKind(self.kind))
        except ValueError as exc:
            raise ValidationError(f"Invalid transaction type: {self.kind!r}") from exc
        amount = to_amount(self.amount)
        if amount <= ZERO:
            raise ValidationError("Amount must be a positive number")
        object.__setattr__(self, "amount", amount)


@dataclass(frozen=True)
class JournalEntry:
    """A group of lines recorded together whose debits equal their credits."""

    id: str
    date: date
    description: str
    lines: Tuple[Transaction, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        lines = tuple(self.lines)
        if len(lines) < 2:
            raise ValidationError("Journal entry requires at least two lines")
        debit_total, credit_total = totals_by_kind(lines)
        if debit_total != credit_total:
            raise UnbalancedEntryError(
                "Journal entry debits and credits must balance: "
                f"debits={debit_total} credits={credit_total}",
                details={"debits": str(debit_total), "credits": str(credit_total)},
            )
        object.__setattr__(self, "lines", lines)

    @property
    def total(self) -> Decimal:
        return totals_by_kind(self.lines)[0]


@dataclass(frozen=True)
class Period:
    """Inclusive date window; ``None`` leaves that side open."""

    start: Optional[date] = None
    end: Optional[date] = None

    def __post_init__(self) -> None:
        if self.start and self.end and self.start > self.end:
            raise ValidationError(
                f"Period start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    def contains(self, day: date) -> bool:
        if self.start and day < self.start:
            return False
        if self.end and day > self.end:
            return False
        return True

    def label(self) -> str:
        start = self.start.isoformat() if self.start else "beginning"
        end = self.end.isoformat() if self.end else "today"
        return f"{start} to {end}"


ALL_TIME = Period()


def totals_by_kind(lines: List[Transaction] | Tuple[Transaction, ...]) -> Tuple[Decimal, Decimal]:
    debit_total = sum((line.amount for line in lines if line.kind is EntryKind.DEBIT), ZERO)
    credit_total = sum((line.amount for line in lines if line.kind is EntryKind.CREDIT), ZERO)
    return debit_total, credit_total


__all__ = [
    "ALL_TIME",
    "Account",
    "AccountType",
    "AmountLike",
    "CENT",
    "EntryKind",
    "JournalEntry",
    "Period",
    "Transaction",
    "ZERO",
    "new_id",
    "to_amount",
    "totals_by_kind",
]
