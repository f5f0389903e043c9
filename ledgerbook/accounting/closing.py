"""Period closing: zero revenue and expense accounts into retained earnings.

Closing is computed as a plan first and committed separately, so a failure
while building the plan never leaves half of the closing entries behind.
The plan has four ordered steps:

1. revenue accounts are debited to zero, Income Summary credited with the total;
2. expense accounts are credited to zero, Income Summary debited with the total;
3. Income Summary is closed into Retained Earnings by the net income;
4. a dividends account with a debit balance is closed into Retained Earnings.

Each step is balanced on its own. Running the plan twice records the
entries twice; there is no idempotency key.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from .balances import compute_balances, debit_side_balance
from .errors import MissingRequiredAccount
from .models import (
    ALL_TIME,
    ZERO,
    Account,
    AccountType,
    EntryKind,
    Period,
    Transaction,
    new_id,
)

LOGGER = logging.getLogger(__name__)

INCOME_SUMMARY = "income summary"
RETAINED_EARNINGS = "retained earnings"
DIVIDENDS = "dividend"

STEP_DESCRIPTIONS = (
    "Close revenue accounts to Income Summary",
    "Close expense accounts to Income Summary",
    "Close Income Summary to Retained Earnings",
    "Close Dividends to Retained Earnings",
)


@dataclass
class ClosingStep:
    number: int
    description: str
    lines: List[Transaction] = field(default_factory=list)


@dataclass
class ClosingPlan:
    period: Period
    closing_date: date
    income_summary: Account
    retained_earnings: Account
    total_revenue: Decimal
    total_expenses: Decimal
    dividends: Decimal
    steps: List[ClosingStep]

    @property
    def net_income(self) -> Decimal:
        return self.total_revenue - self.total_expenses

    @property
    def lines(self) -> List[Transaction]:
        return [line for step in self.steps for line in step.lines]


def find_account(accounts: Iterable[Account], fragment: str) -> Optional[Account]:
    """First account whose name contains ``fragment``, ignoring case."""
    fragment = fragment.lower()
    return next((account for account in accounts if fragment in account.name.lower()), None)


def _line(
    account: Account, kind: EntryKind, amount: Decimal, description: str, on: date
) -> Transaction:
    return Transaction(
        id=new_id(),
        date=on,
        description=description,
        account_id=account.id,
        amount=amount,
        kind=kind,
    )


def _opposite(kind: EntryKind) -> EntryKind:
    return EntryKind.CREDIT if kind is EntryKind.DEBIT else EntryKind.DEBIT


def _close_temporary(
    accounts: Sequence[Account],
    balances: dict,
    zeroing_kind: EntryKind,
    summary: Account,
    total_description: str,
    on: date,
) -> List[Transaction]:
    """Zero every account in ``accounts`` and book the total against ``summary``.

    A positive balance is cleared with ``zeroing_kind``; a negative one with
    the opposite kind, so every emitted amount is positive.
    """
    lines: List[Transaction] = []
    total = ZERO
    for account in accounts:
        balance = balances[account.id]
        if balance == ZERO:
            continue
        kind = zeroing_kind if balance > ZERO else _opposite(zeroing_kind)
        lines.append(
            _line(account, kind, abs(balance), f"Closing entry: {account.name} to Income Summary", on)
        )
        total += balance
    if total != ZERO:
        kind = _opposite(zeroing_kind) if total > ZERO else zeroing_kind
        lines.append(_line(summary, kind, abs(total), total_description, on))
    return lines


def close_period(
    accounts: Iterable[Account],
    transactions: Iterable[Transaction],
    period: Optional[Period] = None,
    *,
    closing_date: Optional[date] = None,
) -> ClosingPlan:
    """Build the closing entries for ``period`` without recording them.

    Raises :class:`MissingRequiredAccount` before anything is computed when
    the Income Summary or Retained Earnings account is absent.
    """
    period = period or ALL_TIME
    accounts = list(accounts)
    income_summary = find_account(accounts, INCOME_SUMMARY)
    retained_earnings = find_account(accounts, RETAINED_EARNINGS)
    missing = []
    if income_summary is None:
        missing.append("Income Summary")
    if retained_earnings is None:
        missing.append("Retained Earnings")
    if missing:
        raise MissingRequiredAccount(missing)

    on = closing_date or period.end or date.today()
    balances = compute_balances(accounts, transactions, period)
    revenues = [account for account in accounts if account.type is AccountType.REVENUE]
    expenses = [account for account in accounts if account.type is AccountType.EXPENSE]
    total_revenue = sum((balances[account.id] for account in revenues), ZERO)
    total_expenses = sum((balances[account.id] for account in expenses), ZERO)
    net_income = total_revenue - total_expenses

    steps = [ClosingStep(number, text) for number, text in enumerate(STEP_DESCRIPTIONS, start=1)]
    steps[0].lines = _close_temporary(
        revenues,
        balances,
        EntryKind.DEBIT,
        income_summary,
        "Closing entry: Revenue accounts to Income Summary",
        on,
    )
    steps[1].lines = _close_temporary(
        expenses,
        balances,
        EntryKind.CREDIT,
        income_summary,
        "Closing entry: Expense accounts to Income Summary",
        on,
    )

    if net_income != ZERO:
        description = "Closing entry: Income Summary to Retained Earnings"
        profit = net_income > ZERO
        steps[2].lines = [
            _line(income_summary, EntryKind.DEBIT if profit else EntryKind.CREDIT, abs(net_income), description, on),
            _line(retained_earnings, EntryKind.CREDIT if profit else EntryKind.DEBIT, abs(net_income), description, on),
        ]

    dividends = ZERO
    permanent = [account for account in accounts if account.type not in (AccountType.REVENUE, AccountType.EXPENSE)]
    dividends_account = find_account(permanent, DIVIDENDS)
    if dividends_account is not None:
        dividends = debit_side_balance(dividends_account, balances[dividends_account.id])
        if dividends > ZERO:
            description = "Closing entry: Dividends to Retained Earnings"
            steps[3].lines = [
                _line(dividends_account, EntryKind.CREDIT, dividends, description, on),
                _line(retained_earnings, EntryKind.DEBIT, dividends, description, on),
            ]
        else:
            dividends = ZERO

    plan = ClosingPlan(
        period=period,
        closing_date=on,
        income_summary=income_summary,
        retained_earnings=retained_earnings,
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        dividends=dividends,
        steps=steps,
    )
    LOGGER.debug(
        "Closing plan for %s: revenue=%s expenses=%s net_income=%s lines=%d",
        period.label(),
        total_revenue,
        total_expenses,
        net_income,
        len(plan.lines),
    )
    return plan


__all__ = [
    "ClosingPlan",
    "ClosingStep",
    "DIVIDENDS",
    "INCOME_SUMMARY",
    "RETAINED_EARNINGS",
    "STEP_DESCRIPTIONS",
    "close_period",
    "find_account",
]
