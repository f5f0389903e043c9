from datetime import timedelta
from decimal import Decimal

import jwt
import pytest
from fastapi.testclient import TestClient

from ledgerbook.auth import create_token
from ledgerbook.config import AppSettings, get_settings
from ledgerbook.main import app

SECRET = "ledgerbook-test-signing-key-0123456789"


def _bearer(user_id: str, **kwargs) -> dict:
    return {"Authorization": f"Bearer {create_token(user_id, AppSettings(jwt_secret=SECRET), **kwargs)}"}


ALICE = _bearer("alice")
BOB = _bearer("bob")


@pytest.fixture()
def client(tmp_path):
    settings = AppSettings(jwt_secret=SECRET, store_path=tmp_path)
    app.dependency_overrides[get_settings] = lambda: settings
    app.state.store = None
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    app.state.store = None


def _create_account(client, name, type, number, opening_balance="0", headers=ALICE) -> str:
    response = client.post(
        "/api/accounts",
        json={"number": number, "name": name, "type": type, "opening_balance": opening_balance},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


@pytest.fixture()
def chart(client):
    ids = {
        "cash": _create_account(client, "Cash", "asset", "1000", "10000"),
        "ap": _create_account(client, "Accounts Payable", "liability", "2000", "5000"),
        "stock": _create_account(client, "Common Stock", "equity", "3000", "5000"),
        "re": _create_account(client, "Retained Earnings", "equity", "3100"),
        "is": _create_account(client, "Income Summary", "equity", "3200"),
        "sales": _create_account(client, "Sales Revenue", "revenue", "4000"),
        "rent": _create_account(client, "Rent Expense", "expense", "5100"),
    }
    for description, day, debit, credit, amount in (
        ("Initial sale to customer", "2025-01-15", "cash", "sales", "1000"),
        ("Rent payment for office", "2025-01-20", "rent", "cash", "800"),
    ):
        response = client.post(
            "/api/journal",
            json={
                "description": description,
                "entry_date": day,
                "lines": [
                    {"account_id": ids[debit], "kind": "debit", "amount": amount},
                    {"account_id": ids[credit], "kind": "credit", "amount": amount},
                ],
            },
            headers=ALICE,
        )
        assert response.status_code == 201, response.text
    return ids


def test_health_needs_no_token(client) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}


def test_missing_token_is_rejected(client) -> None:
    response = client.get("/api/accounts")
    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication required"


def test_unknown_token_is_rejected(client) -> None:
    response = client.get("/api/accounts", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"


def test_account_balance_reflects_entries(client, chart) -> None:
    response = client.get(f"/api/accounts/{chart['cash']}", headers=ALICE)

    assert response.status_code == 200
    assert Decimal(response.json()["balance"]) == Decimal("10200")


def test_trial_balance_report(client, chart) -> None:
    response = client.get(
        "/api/reports/trial-balance", params={"start": "2025-01-01", "end": "2025-01-31"}, headers=ALICE
    )
    body = response.json()

    assert response.status_code == 200
    assert Decimal(body["total_debit"]) == Decimal("11000")
    assert Decimal(body["total_credit"]) == Decimal("11000")
    assert body["is_balanced"] is True


def test_balance_sheet_report(client, chart) -> None:
    body = client.get("/api/reports/balance-sheet", headers=ALICE).json()

    assert Decimal(body["assets"]["total"]) == Decimal("10200")
    assert Decimal(body["total_liabilities_and_equity"]) == Decimal("10200")
    assert Decimal(body["net_income"]) == Decimal("200")
    assert body["is_balanced"] is True


def test_reversed_period_is_rejected(client, chart) -> None:
    response = client.get(
        "/api/reports/income-statement", params={"start": "2025-02-01", "end": "2025-01-01"}, headers=ALICE
    )
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


def test_users_cannot_see_each_others_ledgers(client, chart) -> None:
    assert client.get(f"/api/accounts/{chart['cash']}", headers=BOB).status_code == 404
    assert client.get("/api/accounts", headers=BOB).json() == []
    assert client.get("/api/transactions", headers=BOB).json() == []


def test_unbalanced_journal_entry_is_rejected(client, chart) -> None:
    response = client.post(
        "/api/journal",
        json={
            "description": "Lopsided",
            "entry_date": "2025-01-21",
            "lines": [
                {"account_id": chart["cash"], "kind": "debit", "amount": "100"},
                {"account_id": chart["ap"], "kind": "credit", "amount": "90"},
            ],
        },
        headers=ALICE,
    )
    assert response.status_code == 400
    assert len(client.get("/api/journal", headers=ALICE).json()) == 2


def test_non_positive_amount_fails_validation(client, chart) -> None:
    response = client.post(
        "/api/transactions",
        json={
            "date": "2025-01-21",
            "description": "Nothing",
            "account_id": chart["cash"],
            "amount": "-5",
            "kind": "debit",
        },
        headers=ALICE,
    )
    assert response.status_code == 422


def test_transaction_update_and_delete(client, chart) -> None:
    created = client.post(
        "/api/transactions",
        json={
            "date": "2025-01-21",
            "description": "Supplies",
            "account_id": chart["cash"],
            "amount": "40",
            "kind": "credit",
        },
        headers=ALICE,
    )
    assert created.status_code == 201
    line_id = created.json()["id"]

    updated = client.put(f"/api/transactions/{line_id}", json={"amount": "60"}, headers=ALICE)
    assert updated.status_code == 200
    cash = client.get(f"/api/accounts/{chart['cash']}", headers=ALICE).json()
    assert Decimal(cash["balance"]) == Decimal("10140")

    assert client.delete(f"/api/transactions/{line_id}", headers=ALICE).status_code == 204
    assert client.get(f"/api/transactions/{line_id}", headers=ALICE).status_code == 404
    cash = client.get(f"/api/accounts/{chart['cash']}", headers=ALICE).json()
    assert Decimal(cash["balance"]) == Decimal("10200")


def test_account_in_use_cannot_be_deleted(client, chart) -> None:
    assert client.delete(f"/api/accounts/{chart['cash']}", headers=ALICE).status_code == 400


def test_account_type_change_is_rejected(client, chart) -> None:
    response = client.put(f"/api/accounts/{chart['cash']}", json={"type": "liability"}, headers=ALICE)
    assert response.status_code == 400


def test_closing_requires_accounts(client) -> None:
    _create_account(client, "Sales Revenue", "revenue", "4000")
    response = client.post("/api/closing", json={"start": "2025-01-01", "end": "2025-01-31"}, headers=ALICE)

    assert response.status_code == 409
    assert response.json()["error"] == "MISSING_REQUIRED_ACCOUNT"


def test_closing_books_net_income(client, chart) -> None:
    response = client.post("/api/closing", json={"start": "2025-01-01", "end": "2025-01-31"}, headers=ALICE)
    body = response.json()

    assert response.status_code == 201
    assert Decimal(body["net_income"]) == Decimal("200")
    assert [len(step["lines"]) for step in body["steps"]] == [2, 2, 2, 0]
    statement = client.get(
        "/api/reports/income-statement", params={"start": "2025-01-01", "end": "2025-01-31"}, headers=ALICE
    ).json()
    assert Decimal(statement["net_income"]) == Decimal("0")


def test_ledger_is_persisted_per_user(client, chart, tmp_path) -> None:
    assert (tmp_path / "alice.json").exists()
    assert not (tmp_path / "bob.json").exists()


def test_trial_balance_as_csv(client, chart) -> None:
    response = client.get("/api/reports/trial-balance", params={"format": "csv"}, headers=ALICE)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.strip().splitlines()
    assert lines[0] == '"Account Number","Account Name","Debit","Credit"'
    assert lines[-1] == '"","Totals","11000.00","11000.00"'


def test_dashboard(client, chart) -> None:
    body = client.get("/api/dashboard", headers=ALICE).json()

    assert Decimal(body["net_income"]) == Decimal("200")
    assert len(body["recent_transactions"]) == 4


def test_token_signed_with_other_key_is_rejected(client) -> None:
    forged = jwt.encode({"userId": "alice"}, "some-other-signing-key-0123456789", algorithm="HS256")
    response = client.get("/api/accounts", headers={"Authorization": f"Bearer {forged}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"


def test_expired_token_is_rejected(client) -> None:
    response = client.get("/api/accounts", headers=_bearer("alice", expires_in=timedelta(seconds=-30)))
    assert response.status_code == 401


def test_token_without_user_claim_is_rejected(client) -> None:
    token = jwt.encode({"sub": "alice"}, SECRET, algorithm="HS256")
    response = client.get("/api/accounts", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_journal_line_cannot_be_edited_alone(client, chart) -> None:
    entry = client.get("/api/journal", headers=ALICE).json()[0]
    line_id = entry["lines"][0]["id"]

    assert client.put(f"/api/transactions/{line_id}", json={"amount": "1200"}, headers=ALICE).status_code == 400
    assert client.delete(f"/api/transactions/{line_id}", headers=ALICE).status_code == 400
    assert client.get(f"/api/journal/{entry['id']}", headers=ALICE).json() == entry


def test_deleted_journal_entry_survives_reload(client, chart) -> None:
    rent = next(
        entry for entry in client.get("/api/journal", headers=ALICE).json()
        if entry["description"].startswith("Rent")
    )

    assert client.delete(f"/api/journal/{rent['id']}", headers=ALICE).status_code == 204
    app.state.store = None

    entries = client.get("/api/journal", headers=ALICE).json()
    assert [entry["description"] for entry in entries] == ["Initial sale to customer"]
    cash = client.get(f"/api/accounts/{chart['cash']}", headers=ALICE).json()
    assert Decimal(cash["balance"]) == Decimal("11000")
    assert client.get(f"/api/journal/{rent['id']}", headers=ALICE).status_code == 404


def test_reversed_journal_entry_survives_reload(client, chart) -> None:
    sale = client.get("/api/journal", headers=ALICE).json()[0]

    response = client.post(f"/api/journal/{sale['id']}/reverse", json={"entry_date": "2025-01-25"}, headers=ALICE)
    assert response.status_code == 201
    assert response.json()["description"] == "Reversal of Initial sale to customer"
    app.state.store = None

    assert len(client.get("/api/journal", headers=ALICE).json()) == 3
    sales = client.get(f"/api/accounts/{chart['sales']}", headers=ALICE).json()
    assert Decimal(sales["balance"]) == Decimal("0")


def test_closing_entries_can_be_removed(client, chart) -> None:
    closing = client.post("/api/closing", json={"start": "2025-01-01", "end": "2025-01-31"}, headers=ALICE).json()
    entry_ids = {line["entry_id"] for step in closing["steps"] for line in step["lines"]}

    for entry_id in entry_ids:
        assert client.delete(f"/api/journal/{entry_id}", headers=ALICE).status_code == 204
    app.state.store = None

    statement = client.get(
        "/api/reports/income-statement", params={"start": "2025-01-01", "end": "2025-01-31"}, headers=ALICE
    ).json()
    assert Decimal(statement["net_income"]) == Decimal("200")
