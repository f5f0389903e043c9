"""Stateful account registry and transaction ledger.

:class:`AccountingEngine` owns the accounts, the transaction lines and the
journal entries that group them, and keeps a running balance per account.
Mutations run as units of work that restore the previous state on failure.
Lines that belong to a journal entry are only changed through the entry,
so every stored entry stays balanced.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional

from .balances import (
    compute_balance,
    is_natural_entry,
    signed_effect,
    validate_entry_type,
)
from .closing import ClosingPlan, close_period
from .errors import InconsistentLedgerState, NotFoundError, ValidationError
from .models import (
    ALL_TIME,
    ZERO,
    Account,
    AccountType,
    AmountLike,
    EntryKind,
    JournalEntry,
    Period,
    Transaction,
    new_id,
    to_amount,
)
from .repository import LedgerSnapshot
from .statements import (
    DEFAULT_EPSILON,
    AccountLedger,
    BalanceSheet,
    IncomeStatement,
    TrialBalance,
    build_balance_sheet,
    build_general_ledger,
    build_income_statement,
    build_trial_balance,
)

LOGGER = logging.getLogger(__name__)


class AccountingEngine:
    """In-memory registry and ledger used by the API and the CLI.

    Besides the accounts and transaction lines the engine keeps a running
    balance per account: the opening balance plus every line applied so far.
    Every mutation runs as a unit of work and restores the previous state if
    any step fails.
    """

    def __init__(
        self,
        *,
        strict_entry_types: bool = False,
        epsilon: Decimal = DEFAULT_EPSILON,
        seed_demo_data: bool = False,
    ) -> None:
        self.strict_entry_types = strict_entry_types
        self.epsilon = epsilon
        self._accounts: Dict[str, Account] = {}
        self._transactions: Dict[str, Transaction] = {}
        self._entries: Dict[str, JournalEntry] = {}
        self._balances: Dict[str, Decimal] = {}
        if seed_demo_data:
            self._seed_demo_ledger()

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    @classmethod
    def from_snapshot(cls, snapshot: LedgerSnapshot, **kwargs) -> "AccountingEngine":
        engine = cls(**kwargs)
        for account in snapshot.accounts:
            engine._accounts[account.id] = account
            engine._balances[account.id] = account.opening_balance
        for entry in snapshot.entries:
            engine._entries[entry.id] = entry
        for line in snapshot.transactions:
            if line.account_id not in engine._accounts:
                raise InconsistentLedgerState(
                    f"Transaction '{line.id}' references unknown account '{line.account_id}'"
                )
            engine._transactions[line.id] = line
            engine._apply(line)
        return engine

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            accounts=list(self._accounts.values()),
            transactions=list(self._transactions.values()),
            entries=list(self._entries.values()),
        )

    # ------------------------------------------------------------------
    # Account management
    # ------------------------------------------------------------------
    def list_accounts(self) -> List[Account]:
        return list(self._accounts.values())

    def get_account(self, account_id: str) -> Account:
        try:
            return self._accounts[account_id]
        except KeyError as exc:
            raise NotFoundError(
                f"Account '{account_id}' not found", details={"account_id": account_id}
            ) from exc

    def add_account(
        self,
        *,
        number: str,
        name: str,
        type: AccountType | str,
        description: str = "",
        opening_balance: AmountLike = ZERO,
        account_id: Optional[str] = None,
    ) -> Account:
        account_id = account_id or new_id()
        if account_id in self._accounts:
            raise ValidationError(f"Account '{account_id}' already exists")
        account = Account(
            id=account_id,
            number=number,
            name=name,
            type=type,
            description=description,
            opening_balance=opening_balance,
        )
        self._accounts[account.id] = account
        self._balances[account.id] = account.opening_balance
        LOGGER.info("Added %s account %s %s", account.type.value, account.number, account.name)
        return account

    def update_account(
        self,
        account_id: str,
        *,
        number: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
        type: Optional[AccountType | str] = None,
    ) -> Account:
        account = self.get_account(account_id)
        if type is not None and AccountType(type) is not account.type:
            raise ValidationError("Account type cannot be changed after creation")
        updated = replace(
            account,
            number=account.number if number is None else number,
            name=account.name if name is None else name,
            description=account.description if description is None else description,
        )
        self._accounts[account_id] = updated
        return updated

    def remove_account(self, account_id: str) -> None:
        account = self.get_account(account_id)
        in_use = sum(1 for line in self._transactions.values() if line.account_id == account_id)
        if in_use:
            raise ValidationError(
                f"Account '{account.name}' has {in_use} transaction(s) and cannot be removed",
                details={"account_id": account_id, "transactions": in_use},
            )
        del self._accounts[account_id]
        del self._balances[account_id]
        LOGGER.info("Removed account %s %s", account.number, account.name)

    def adjust_opening_balance(self, account_id: str, amount: AmountLike) -> Account:
        """Move the opening balance by ``amount`` (signed, in the account's sign)."""
        account = self.get_account(account_id)
        delta = to_amount(amount)
        with self._unit_of_work():
            updated = replace(account, opening_balance=account.opening_balance + delta)
            self._accounts[account_id] = updated
            self._shift(account_id, delta)
        return updated

    def running_balance(self, account_id: str) -> Decimal:
        self.get_account(account_id)
        return self._balances[account_id]

    # ------------------------------------------------------------------
    # Transaction management
    # ------------------------------------------------------------------
    def list_transactions(self, account_id: Optional[str] = None) -> List[Transaction]:
        if account_id is not None:
            self.get_account(account_id)
        return [
            line
            for line in self._transactions.values()
            if account_id is None or line.account_id == account_id
        ]

    def get_transaction(self, transaction_id: str) -> Transaction:
        try:
            return self._transactions[transaction_id]
        except KeyError as exc:
            raise NotFoundError(
                f"Transaction '{transaction_id}' not found",
                details={"transaction_id": transaction_id},
            ) from exc

    def add_transaction(
        self,
        *,
        date: date,
        description: str,
        account_id: str,
        amount: AmountLike,
        kind: EntryKind | str,
    ) -> Transaction:
        account = self.get_account(account_id)
        line = Transaction(
            id=new_id(),
            date=date,
            description=description,
            account_id=account_id,
            amount=amount,
            kind=kind,
        )
        self._check_entry_type(account, line.kind)
        with self._unit_of_work():
            self._insert(line)
        LOGGER.info(
            "Recorded %s of %s on %s", line.kind.value, line.amount, account.name
        )
        return line

    def update_transaction(
        self,
        transaction_id: str,
        *,
        date: Optional[date] = None,
        description: Optional[str] = None,
        amount: Optional[AmountLike] = None,
        kind: Optional[EntryKind | str] = None,
    ) -> Transaction:
        """Replace a line's date, description, amount or kind.

        The old effect is reversed before the new one is applied.
        """
        previous = self.get_transaction(transaction_id)
        self._ensure_standalone(previous)
        account = self.get_account(previous.account_id)
        updated = replace(
            previous,
            date=previous.date if date is None else date,
            description=previous.description if description is None else description,
            amount=previous.amount if amount is None else amount,
            kind=previous.kind if kind is None else kind,
        )
        self._check_entry_type(account, updated.kind)
        with self._unit_of_work():
            self._revert(previous)
            self._transactions[transaction_id] = updated
            self._apply(updated)
        LOGGER.info("Updated transaction %s on %s", transaction_id, account.name)
        return updated

    def remove_transaction(self, transaction_id: str) -> None:
        previous = self.get_transaction(transaction_id)
        self._ensure_standalone(previous)
        with self._unit_of_work():
            self._revert(previous)
            del self._transactions[transaction_id]
        LOGGER.info("Removed transaction %s", transaction_id)

    # ------------------------------------------------------------------
    # Journal management
    # ------------------------------------------------------------------
    def list_entries(self) -> List[JournalEntry]:
        return list(self._entries.values())

    def get_entry(self, entry_id: str) -> JournalEntry:
        try:
            return self._entries[entry_id]
        except KeyError as exc:
            raise NotFoundError(
                f"Journal entry '{entry_id}' not found", details={"entry_id": entry_id}
            ) from exc

    def remove_entry(self, entry_id: str) -> None:
        """Delete a journal entry together with all of its lines."""
        entry = self.get_entry(entry_id)
        with self._unit_of_work():
            for line in entry.lines:
                self._revert(line)
                del self._transactions[line.id]
            del self._entries[entry_id]
        LOGGER.info("Removed journal entry '%s' and %d lines", entry.description, len(entry.lines))

    def reverse_entry(self, entry_id: str, *, entry_date: Optional[date] = None) -> JournalEntry:
        """Record a new entry that swaps every debit and credit of ``entry_id``."""
        entry = self.get_entry(entry_id)
        return self.record_entry(
            description=f"Reversal of {entry.description}",
            entry_date=entry_date or entry.date,
            lines=[
                (
                    line.account_id,
                    EntryKind.CREDIT if line.kind is EntryKind.DEBIT else EntryKind.DEBIT,
                    line.amount,
                )
                for line in entry.lines
            ],
        )

    def record_entry(
        self,
        *,
        description: str,
        entry_date: date,
        lines: Iterable[tuple],
    ) -> JournalEntry:
        """Record a balanced group of ``(account_id, kind, amount)`` lines."""
        entry_id = new_id()
        built: List[Transaction] = []
        for account_id, kind, amount in lines:
            self.get_account(account_id)
            built.append(
                Transaction(
                    id=new_id(),
                    date=entry_date,
                    description=description,
                    account_id=account_id,
                    amount=amount,
                    kind=kind,
                    entry_id=entry_id,
                )
            )
        entry = JournalEntry(id=entry_id, date=entry_date, description=description, lines=tuple(built))
        self._commit_entries([entry])
        LOGGER.info("Recorded journal entry '%s' for %s", description, entry.total)
        return entry

    def _commit_entries(self, entries: List[JournalEntry]) -> None:
        with self._unit_of_work():
            for entry in entries:
                self._entries[entry.id] = entry
                for line in entry.lines:
                    self._insert(line)

    # ------------------------------------------------------------------
    # Reporting helpers
    # ------------------------------------------------------------------
    def account_balance(self, account_id: str, period: Optional[Period] = None) -> Decimal:
        account = self.get_account(account_id)
        return compute_balance(account, self._transactions.values(), period)

    def trial_balance(self, period: Optional[Period] = None) -> TrialBalance:
        return build_trial_balance(
            self.list_accounts(), self._transactions.values(), period, epsilon=self.epsilon
        )

    def income_statement(self, period: Optional[Period] = None) -> IncomeStatement:
        return build_income_statement(self.list_accounts(), self._transactions.values(), period)

    def balance_sheet(self, period: Optional[Period] = None) -> BalanceSheet:
        return build_balance_sheet(
            self.list_accounts(), self._transactions.values(), period, epsilon=self.epsilon
        )

    def general_ledger(
        self,
        period: Optional[Period] = None,
        *,
        account_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[AccountLedger]:
        if account_id is not None:
            self.get_account(account_id)
        return build_general_ledger(
            self.list_accounts(),
            self._transactions.values(),
            period,
            account_id=account_id,
            search=search,
        )

    def dashboard_metrics(self, period: Optional[Period] = None) -> Dict[str, Decimal]:
        sheet = self.balance_sheet(period)
        statement = self.income_statement(period)
        return {
            "total_assets": sheet.total_assets,
            "total_liabilities": sheet.total_liabilities,
            "total_equity": sheet.total_equity,
            "total_revenue": statement.total_revenue,
            "total_expenses": statement.total_expenses,
            "net_income": statement.net_income,
        }

    def recent_transactions(self, limit: int = 5) -> List[Transaction]:
        return sorted(self._transactions.values(), key=lambda line: line.date, reverse=True)[:limit]

    # ------------------------------------------------------------------
    # Period closing
    # ------------------------------------------------------------------
    def plan_closing(self, period: Optional[Period] = None, *, closing_date: Optional[date] = None) -> ClosingPlan:
        return close_period(
            self.list_accounts(), self._transactions.values(), period, closing_date=closing_date
        )

    def close_period(self, period: Optional[Period] = None, *, closing_date: Optional[date] = None) -> ClosingPlan:
        """Compute the closing entries for ``period`` and record all of them.

        Each non-empty step is stored as its own journal entry; the steps are
        committed together or not at all.
        """
        plan = self.plan_closing(period, closing_date=closing_date)
        entries: List[JournalEntry] = []
        for step in plan.steps:
            if not step.lines:
                continue
            entry_id = new_id()
            step.lines = [replace(line, entry_id=entry_id) for line in step.lines]
            entries.append(
                JournalEntry(
                    id=entry_id,
                    date=plan.closing_date,
                    description=step.description,
                    lines=tuple(step.lines),
                )
            )
        self._commit_entries(entries)
        LOGGER.info(
            "Closed period %s: net income %s, %d closing lines",
            (period or ALL_TIME).label(),
            plan.net_income,
            len(plan.lines),
        )
        return plan

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @contextmanager
    def _unit_of_work(self) -> Iterator[None]:
        saved = (
            dict(self._accounts),
            dict(self._transactions),
            dict(self._entries),
            dict(self._balances),
        )
        try:
            yield
        except Exception:
            self._accounts, self._transactions, self._entries, self._balances = saved
            LOGGER.debug("Rolled back ledger mutation")
            raise

    def _check_entry_type(self, account: Account, kind: EntryKind) -> None:
        if self.strict_entry_types:
            validate_entry_type(account.type, kind)
        elif not is_natural_entry(account.type, kind):
            LOGGER.warning(
                "Recording %s on %s account '%s' decreases its balance",
                kind.value,
                account.type.value,
                account.name,
            )

    def _ensure_standalone(self, line: Transaction) -> None:
        if line.entry_id is not None:
            raise ValidationError(
                f"Transaction '{line.id}' belongs to journal entry '{line.entry_id}'; "
                "remove or reverse the entry instead",
                details={"transaction_id": line.id, "entry_id": line.entry_id},
            )

    def _insert(self, line: Transaction) -> None:
        if line.id in self._transactions:
            raise ValidationError(f"Transaction '{line.id}' already exists")
        self._transactions[line.id] = line
        self._apply(line)

    def _apply(self, line: Transaction) -> None:
        account = self.get_account(line.account_id)
        self._shift(account.id, signed_effect(account.type, line.kind, line.amount))

    def _revert(self, line: Transaction) -> None:
        account = self._accounts.get(line.account_id)
        if account is None or line.account_id not in self._balances:
            raise InconsistentLedgerState(
                f"Cannot reverse transaction '{line.id}': account '{line.account_id}' has no balance",
                details={"transaction_id": line.id, "account_id": line.account_id},
            )
        self._shift(account.id, -signed_effect(account.type, line.kind, line.amount))

    def _shift(self, account_id: str, delta: Decimal) -> None:
        self._balances[account_id] = self._balances[account_id] + delta

    def _seed_demo_ledger(self) -> None:
        """Populate the ledger with a sample chart of accounts and a month of activity."""

        today = date.today()
        first_of_month = date(today.year, today.month, 1)

        cash = self.add_account(
            number="1000", name="Cash", type="asset",
            description="Cash on hand and in bank accounts", opening_balance=Decimal("10000"),
        )
        self.add_account(
            number="2000", name="Accounts Payable", type="liability",
            description="Amounts owed to suppliers", opening_balance=Decimal("5000"),
        )
        self.add_account(
            number="3000", name="Common Stock", type="equity",
            description="Shareholders' equity", opening_balance=Decimal("5000"),
        )
        self.add_account(
            number="3100", name="Retained Earnings", type="equity",
            description="Accumulated earnings",
        )
        self.add_account(
            number="3200", name="Income Summary", type="equity",
            description="Temporary account used for closing entries",
        )
        sales = self.add_account(
            number="4000", name="Sales Revenue", type="revenue", description="Revenue from sales",
        )
        self.add_account(
            number="5000", name="Cost of Goods Sold", type="expense", description="Cost of items sold",
        )
        rent = self.add_account(
            number="5100", name="Rent Expense", type="expense", description="Rent for office space",
        )
        utilities = self.add_account(
            number="5200", name="Utilities Expense", type="expense",
            description="Utilities for office space",
        )

        self.record_entry(
            description="Initial sale to customer",
            entry_date=first_of_month,
            lines=[(cash.id, "debit", "1000"), (sales.id, "credit", "1000")],
        )
        self.record_entry(
            description="Rent payment for office",
            entry_date=first_of_month,
            lines=[(rent.id, "debit", "800"), (cash.id, "credit", "800")],
        )
        self.record_entry(
            description="Utility bill payment",
            entry_date=first_of_month,
            lines=[(utilities.id, "debit", "200"), (cash.id, "credit", "200")],
        )


__all__ = ["AccountingEngine"]
