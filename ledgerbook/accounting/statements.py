"""Trial balance, financial statements and the general ledger view."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional

from .balances import compute_balances, filter_by_type, normal_side, signed_effect
from .models import (
    ALL_TIME,
    ZERO,
    Account,
    AccountType,
    EntryKind,
    Period,
    Transaction,
    to_amount,
)

DEFAULT_EPSILON = Decimal("0.01")


@dataclass(frozen=True)
class TrialBalanceRow:
    account: Account
    balance: Decimal
    debit: Decimal
    credit: Decimal


@dataclass(frozen=True)
class TrialBalance:
    period: Period
    rows: List[TrialBalanceRow]
    total_debit: Decimal
    total_credit: Decimal
    is_balanced: bool

    @property
    def difference(self) -> Decimal:
        return self.total_debit - self.total_credit


@dataclass(frozen=True)
class StatementLine:
    account: Account
    amount: Decimal


@dataclass(frozen=True)
class IncomeStatement:
    period: Period
    revenues: List[StatementLine]
    expenses: List[StatementLine]
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal


@dataclass(frozen=True)
class BalanceSheet:
    """Balance sheet for a period.

    ``total_equity`` includes the period's net income as retained earnings
    that have not been closed yet. ``is_balanced`` reports the accounting
    equation without enforcing it.
    """

    period: Period
    assets: List[StatementLine]
    liabilities: List[StatementLine]
    equity: List[StatementLine]
    total_assets: Decimal
    total_liabilities: Decimal
    net_income: Decimal
    total_equity: Decimal
    is_balanced: bool


@dataclass(frozen=True)
class LedgerRow:
    transaction: Transaction
    debit: Decimal
    credit: Decimal
    balance: Decimal


@dataclass
class AccountLedger:
    account: Account
    opening_balance: Decimal
    rows: List[LedgerRow] = field(default_factory=list)

    @property
    def closing_balance(self) -> Decimal:
        return self.rows[-1].balance if self.rows else self.opening_balance


def _split_columns(account: Account, balance: Decimal) -> tuple[Decimal, Decimal]:
    """Place ``balance`` in exactly one of the (debit, credit) columns."""
    if balance == ZERO:
        return ZERO, ZERO
    natural_debit = normal_side(account.type) is EntryKind.DEBIT
    if (balance > ZERO) == natural_debit:
        return abs(balance), ZERO
    return ZERO, abs(balance)


def build_trial_balance(
    accounts: Iterable[Account],
    transactions: Iterable[Transaction],
    period: Optional[Period] = None,
    *,
    epsilon: Decimal = DEFAULT_EPSILON,
) -> TrialBalance:
    period = period or ALL_TIME
    accounts = list(accounts)
    balances = compute_balances(accounts, transactions, period)
    rows: List[TrialBalanceRow] = []
    for account in accounts:
        balance = balances[account.id]
        debit, credit = _split_columns(account, balance)
        rows.append(TrialBalanceRow(account=account, balance=balance, debit=debit, credit=credit))
    total_debit = sum((row.debit for row in rows), ZERO)
    total_credit = sum((row.credit for row in rows), ZERO)
    return TrialBalance(
        period=period,
        rows=rows,
        total_debit=total_debit,
        total_credit=total_credit,
        is_balanced=abs(total_debit - total_credit) < epsilon,
    )


def build_income_statement(
    accounts: Iterable[Account],
    transactions: Iterable[Transaction],
    period: Optional[Period] = None,
) -> IncomeStatement:
    period = period or ALL_TIME
    accounts = list(accounts)
    balances = compute_balances(accounts, transactions, period)
    revenues = [
        StatementLine(account, balances[account.id])
        for account in filter_by_type(accounts, AccountType.REVENUE)
    ]
    expenses = [
        StatementLine(account, balances[account.id])
        for account in filter_by_type(accounts, AccountType.EXPENSE)
    ]
    total_revenue = sum((line.amount for line in revenues), ZERO)
    total_expenses = sum((line.amount for line in expenses), ZERO)
    return IncomeStatement(
        period=period,
        revenues=revenues,
        expenses=expenses,
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        net_income=total_revenue - total_expenses,
    )


def build_balance_sheet(
    accounts: Iterable[Account],
    transactions: Iterable[Transaction],
    period: Optional[Period] = None,
    *,
    epsilon: Decimal = DEFAULT_EPSILON,
) -> BalanceSheet:
    period = period or ALL_TIME
    accounts = list(accounts)
    transactions = list(transactions)
    balances = compute_balances(accounts, transactions, period)

    def section(account_type: AccountType) -> List[StatementLine]:
        return [
            StatementLine(account, balances[account.id])
            for account in filter_by_type(accounts, account_type)
        ]

    assets = section(AccountType.ASSET)
    liabilities = section(AccountType.LIABILITY)
    equity = section(AccountType.EQUITY)
    net_income = build_income_statement(accounts, transactions, period).net_income
    total_assets = sum((line.amount for line in assets), ZERO)
    total_liabilities = sum((line.amount for line in liabilities), ZERO)
    total_equity = sum((line.amount for line in equity), ZERO) + net_income
    return BalanceSheet(
        period=period,
        assets=assets,
        liabilities=liabilities,
        equity=equity,
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        net_income=net_income,
        total_equity=total_equity,
        is_balanced=abs(total_assets - (total_liabilities + total_equity)) < epsilon,
    )


def build_general_ledger(
    accounts: Iterable[Account],
    transactions: Iterable[Transaction],
    period: Optional[Period] = None,
    *,
    account_id: Optional[str] = None,
    search: Optional[str] = None,
) -> List[AccountLedger]:
    """Group in-period lines per account with a running balance after each.

    Lines are ordered by date, then account id. Running balances start from
    the account's opening balance, the same base the period balances use.
    Accounts without matching lines are left out.
    """
    period = period or ALL_TIME
    by_id = {account.id: account for account in accounts}
    needle = (search or "").strip().lower()
    selected = sorted(
        (
            line
            for line in transactions
            if period.contains(line.date)
            and line.account_id in by_id
            and (account_id is None or line.account_id == account_id)
            and (not needle or needle in line.description.lower())
        ),
        key=lambda line: (line.date, line.account_id),
    )
    ledgers: dict[str, AccountLedger] = {}
    for line in selected:
        account = by_id[line.account_id]
        ledger = ledgers.get(account.id)
        if ledger is None:
            ledger = ledgers[account.id] = AccountLedger(account, account.opening_balance)
        balance = ledger.closing_balance + signed_effect(account.type, line.kind, line.amount)
        is_debit = line.kind is EntryKind.DEBIT
        ledger.rows.append(
            LedgerRow(
                transaction=line,
                debit=line.amount if is_debit else ZERO,
                credit=ZERO if is_debit else line.amount,
                balance=to_amount(balance),
            )
        )
    return list(ledgers.values())


__all__ = [
    "AccountLedger",
    "BalanceSheet",
    "DEFAULT_EPSILON",
    "IncomeStatement",
    "LedgerRow",
    "StatementLine",
    "TrialBalance",
    "TrialBalanceRow",
    "build_balance_sheet",
    "build_general_ledger",
    "build_income_statement",
    "build_trial_balance",
]
