from datetime import date
from decimal import Decimal
from typing import Dict, List

import pytest

from ledgerbook.accounting import Account, AccountingEngine, Period, Transaction

JANUARY = Period(start=date(2025, 1, 1), end=date(2025, 1, 31))


def make_accounts() -> List[Account]:
    return [
        Account(id="cash", number="1000", name="Cash", type="asset", opening_balance=Decimal("10000")),
        Account(id="ap", number="2000", name="Accounts Payable", type="liability", opening_balance=Decimal("5000")),
        Account(id="stock", number="3000", name="Common Stock", type="equity", opening_balance=Decimal("5000")),
        Account(id="sales", number="4000", name="Sales Revenue", type="revenue"),
        Account(id="rent", number="5100", name="Rent Expense", type="expense"),
    ]


def line(line_id: str, day: int, account_id: str, kind: str, amount: str, description: str = "Entry") -> Transaction:
    return Transaction(
        id=line_id,
        date=date(2025, 1, day),
        description=description,
        account_id=account_id,
        amount=Decimal(amount),
        kind=kind,
    )


@pytest.fixture()
def accounts() -> List[Account]:
    return make_accounts()


@pytest.fixture()
def closing_accounts() -> List[Account]:
    return make_accounts() + [
        Account(id="re", number="3100", name="Retained Earnings", type="equity"),
        Account(id="is", number="3200", name="Income Summary", type="equity"),
    ]


@pytest.fixture()
def transactions() -> List[Transaction]:
    return [
        line("t1", 15, "cash", "debit", "1000", "Initial sale to customer"),
        line("t2", 15, "sales", "credit", "1000", "Initial sale to customer"),
        line("t3", 20, "rent", "debit", "800", "Rent payment for office"),
        line("t4", 20, "cash", "credit", "800", "Rent payment for office"),
    ]


@pytest.fixture()
def engine() -> AccountingEngine:
    """Engine holding the closing chart of accounts and the January scenario."""
    engine = AccountingEngine()
    for account in make_accounts() + [
        Account(id="re", number="3100", name="Retained Earnings", type="equity"),
        Account(id="is", number="3200", name="Income Summary", type="equity"),
    ]:
        engine.add_account(
            account_id=account.id,
            number=account.number,
            name=account.name,
            type=account.type,
            opening_balance=account.opening_balance,
        )
    engine.record_entry(
        description="Initial sale to customer",
        entry_date=date(2025, 1, 15),
        lines=[("cash", "debit", "1000"), ("sales", "credit", "1000")],
    )
    engine.record_entry(
        description="Rent payment for office",
        entry_date=date(2025, 1, 20),
        lines=[("rent", "debit", "800"), ("cash", "credit", "800")],
    )
    return engine


def balances_of(engine: AccountingEngine, period: Period = JANUARY) -> Dict[str, Decimal]:
    return {account.id: engine.account_balance(account.id, period) for account in engine.list_accounts()}
