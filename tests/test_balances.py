from datetime import date
from decimal import Decimal

import pytest

from conftest import JANUARY, line
from ledgerbook.accounting import (
    Account,
    InvalidEntryType,
    Period,
    Transaction,
    ValidationError,
    compute_balance,
    signed_effect,
    validate_entry_type,
)
from ledgerbook.accounting.balances import compute_balances


@pytest.mark.parametrize("account_type", ["asset", "expense"])
def test_debit_normal_accounts(account_type: str) -> None:
    account = Account(id="a", number="1", name="Debit normal", type=account_type, opening_balance="100")
    debit = [Transaction(id="d", date=date(2025, 1, 2), description="In", account_id="a", amount="25", kind="debit")]
    credit = [Transaction(id="c", date=date(2025, 1, 2), description="Out", account_id="a", amount="25", kind="credit")]

    assert compute_balance(account, debit) == Decimal("125.00")
    assert compute_balance(account, credit) == Decimal("75.00")


@pytest.mark.parametrize("account_type", ["liability", "equity", "revenue"])
def test_credit_normal_accounts(account_type: str) -> None:
    account = Account(id="a", number="1", name="Credit normal", type=account_type, opening_balance="100")
    debit = [Transaction(id="d", date=date(2025, 1, 2), description="Out", account_id="a", amount="25", kind="debit")]
    credit = [Transaction(id="c", date=date(2025, 1, 2), description="In", account_id="a", amount="25", kind="credit")]

    assert compute_balance(account, debit) == Decimal("75.00")
    assert compute_balance(account, credit) == Decimal("125.00")


def test_signed_effect_table() -> None:
    amount = Decimal("10")
    assert signed_effect("asset", "debit", amount) == amount
    assert signed_effect("expense", "credit", amount) == -amount
    assert signed_effect("revenue", "credit", amount) == amount
    assert signed_effect("liability", "debit", amount) == -amount


def test_balance_ignores_other_accounts(accounts, transactions) -> None:
    cash = accounts[0]
    assert compute_balance(cash, transactions, JANUARY) == Decimal("10200.00")


def test_period_end_is_inclusive(accounts) -> None:
    cash = accounts[0]
    on_end = line("t1", 31, "cash", "debit", "50")
    after_end = Transaction(
        id="t2", date=date(2025, 2, 1), description="Late", account_id="cash", amount="70", kind="debit"
    )

    assert compute_balance(cash, [on_end, after_end], JANUARY) == Decimal("10050.00")


def test_period_start_is_inclusive(accounts) -> None:
    cash = accounts[0]
    on_start = line("t1", 1, "cash", "debit", "50")
    before_start = Transaction(
        id="t2", date=date(2024, 12, 31), description="Early", account_id="cash", amount="70", kind="debit"
    )

    assert compute_balance(cash, [on_start, before_start], JANUARY) == Decimal("10050.00")


def test_open_period_includes_everything(accounts, transactions) -> None:
    cash = accounts[0]
    assert compute_balance(cash, transactions) == compute_balance(cash, transactions, Period())


def test_amounts_are_exact_to_the_cent(accounts) -> None:
    cash = accounts[0]
    lines = [line(f"t{i}", 2, "cash", "debit", "0.10") for i in range(3)]

    assert compute_balance(cash, lines) == Decimal("10000.30")


def test_order_does_not_matter(accounts, transactions) -> None:
    cash = accounts[0]
    assert compute_balance(cash, transactions) == compute_balance(cash, list(reversed(transactions)))


def test_compute_balances_matches_single_account(accounts, transactions) -> None:
    balances = compute_balances(accounts, transactions, JANUARY)
    for account in accounts:
        assert balances[account.id] == compute_balance(account, transactions, JANUARY)


def test_validate_entry_type_accepts_natural_side() -> None:
    validate_entry_type("asset", "debit")
    validate_entry_type("expense", "debit")
    validate_entry_type("liability", "credit")
    validate_entry_type("equity", "credit")
    validate_entry_type("revenue", "credit")


def test_validate_entry_type_names_offender() -> None:
    with pytest.raises(InvalidEntryType) as excinfo:
        validate_entry_type("revenue", "debit")

    assert excinfo.value.account_type == "revenue"
    assert excinfo.value.kind == "debit"
    assert "revenue" in str(excinfo.value)


@pytest.mark.parametrize("amount", ["0", "-5", "abc"])
def test_transaction_rejects_non_positive_amounts(amount: str) -> None:
    with pytest.raises(ValidationError):
        Transaction(id="t", date=date(2025, 1, 1), description="Bad", account_id="a", amount=amount, kind="debit")


def test_transaction_rejects_unknown_kind() -> None:
    with pytest.raises(ValidationError):
        Transaction(id="t", date=date(2025, 1, 1), description="Bad", account_id="a", amount="1", kind="both")


def test_account_rejects_unknown_type() -> None:
    with pytest.raises(ValidationError):
        Account(id="a", number="1", name="Odd", type="dividend")


def test_period_rejects_reversed_bounds() -> None:
    with pytest.raises(ValidationError):
        Period(start=date(2025, 2, 1), end=date(2025, 1, 1))
