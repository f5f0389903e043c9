"""Sign rules and the period balance calculator."""
from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from .errors import InvalidEntryType
from .models import (
    ALL_TIME,
    ZERO,
    Account,
    AccountType,
    EntryKind,
    Period,
    Transaction,
)

# The kind that increases an account of each type.
NORMAL_SIDE: Mapping[AccountType, EntryKind] = {
    AccountType.ASSET: EntryKind.DEBIT,
    AccountType.EXPENSE: EntryKind.DEBIT,
    AccountType.LIABILITY: EntryKind.CREDIT,
    AccountType.EQUITY: EntryKind.CREDIT,
    AccountType.REVENUE: EntryKind.CREDIT,
}

TEMPORARY_TYPES = frozenset({AccountType.REVENUE, AccountType.EXPENSE})


def normal_side(account_type: AccountType | str) -> EntryKind:
    return NORMAL_SIDE[AccountType(account_type)]


def signed_effect(account_type: AccountType | str, kind: EntryKind | str, amount: Decimal) -> Decimal:
    """Return how much a line of ``kind`` and ``amount`` moves the balance."""
    if EntryKind(kind) is normal_side(account_type):
        return amount
    return -amount


def is_natural_entry(account_type: AccountType | str, kind: EntryKind | str) -> bool:
    return EntryKind(kind) is normal_side(account_type)


def validate_entry_type(account_type: AccountType | str, kind: EntryKind | str) -> None:
    """Raise :class:`InvalidEntryType` unless ``kind`` increases ``account_type``."""
    if not is_natural_entry(account_type, kind):
        raise InvalidEntryType(AccountType(account_type).value, EntryKind(kind).value)


def lines_for(
    account_id: str, transactions: Iterable[Transaction], period: Period = ALL_TIME
) -> Iterator[Transaction]:
    for line in transactions:
        if line.account_id == account_id and period.contains(line.date):
            yield line


def compute_balance(
    account: Account,
    transactions: Iterable[Transaction],
    period: Optional[Period] = None,
) -> Decimal:
    """Opening balance plus the signed effect of every in-period line.

    Lines for other accounts are ignored, so the full ledger can be passed.
    """
    period = period or ALL_TIME
    balance = account.opening_balance
    for line in lines_for(account.id, transactions, period):
        balance += signed_effect(account.type, line.kind, line.amount)
    return balance


def compute_balances(
    accounts: Iterable[Account],
    transactions: Iterable[Transaction],
    period: Optional[Period] = None,
) -> Dict[str, Decimal]:
    """Balances for every account keyed by id, in a single pass over the ledger."""
    period = period or ALL_TIME
    accounts = list(accounts)
    by_id = {account.id: account for account in accounts}
    balances = {account.id: account.opening_balance for account in accounts}
    for line in transactions:
        account = by_id.get(line.account_id)
        if account is None or not period.contains(line.date):
            continue
        balances[account.id] += signed_effect(account.type, line.kind, line.amount)
    return balances


def debit_side_balance(account: Account, balance: Decimal) -> Decimal:
    """Express ``balance`` as debits minus credits regardless of account type."""
    if normal_side(account.type) is EntryKind.DEBIT:
        return balance
    return -balance


def filter_by_type(accounts: Iterable[Account], *types: AccountType) -> List[Account]:
    return [account for account in accounts if account.type in types]


__all__ = [
    "NORMAL_SIDE",
    "TEMPORARY_TYPES",
    "compute_balance",
    "compute_balances",
    "debit_side_balance",
    "filter_by_type",
    "is_natural_entry",
    "lines_for",
    "normal_side",
    "signed_effect",
    "validate_entry_type",
]
