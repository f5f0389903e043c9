"""FastAPI application exposing the bookkeeping ledger."""
from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ledgerbook.accounting import (
    Account,
    AccountingEngine,
    InconsistentLedgerState,
    InvalidEntryType,
    JournalEntry,
    LedgerError,
    MissingRequiredAccount,
    NotFoundError,
    Period,
    Transaction,
    ValidationError,
)
from ledgerbook.auth import AuthenticationError, decode_token
from ledgerbook.config import AppSettings, get_settings
from ledgerbook.rendering.report import build_report, report_rows, to_csv
from ledgerbook.schemas import (
    AccountCreate,
    AccountLedgerModel,
    AccountResponse,
    AccountUpdate,
    BalanceSheetResponse,
    ClosingRequest,
    ClosingResponse,
    ClosingStepModel,
    DashboardMetrics,
    IncomeStatementResponse,
    JournalEntryCreate,
    JournalEntryReverse,
    JournalEntryResponse,
    LedgerRowModel,
    StatementLineModel,
    StatementSection,
    TransactionCreate,
    TransactionResponse,
    TransactionUpdate,
    TrialBalanceResponse,
    TrialBalanceRowModel,
)
from ledgerbook.store import LedgerStore

LOGGER = logging.getLogger(__name__)

_settings = get_settings()
logging.basicConfig(level=_settings.log_level)

app = FastAPI(title=_settings.app_name, version="0.1.0")
bearer_scheme = HTTPBearer(auto_error=False)

STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (ValidationError, 400),
    (InvalidEntryType, 400),
    (MissingRequiredAccount, 409),
    (InconsistentLedgerState, 409),
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = next((code for cls, code in STATUS_BY_ERROR if isinstance(exc, cls)), 400)
    LOGGER.info("%s %s failed with %s: %s", request.method, request.url.path, exc.error_code, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def get_store(settings: AppSettings = Depends(get_settings)) -> LedgerStore:
    store = getattr(app.state, "store", None)
    if store is None:
        store = LedgerStore(settings)
        app.state.store = store
    return store


def current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: AppSettings = Depends(get_settings),
) -> str:
    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return decode_token(credentials.credentials, settings)
    except AuthenticationError as exc:
        LOGGER.info("Rejected bearer token: %s", exc)
        raise HTTPException(
            status_code=401, detail="Invalid token", headers={"WWW-Authenticate": "Bearer"}
        ) from exc


def period_query(
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
) -> Period:
    return Period(start=start, end=end)


# ----------------------------------------------------------------------
# Health
# ----------------------------------------------------------------------
@app.get("/api/health")
def health() -> dict:
    return {"status": "ok"}


# ----------------------------------------------------------------------
# Accounts
# ----------------------------------------------------------------------
@app.get("/api/accounts", response_model=List[AccountResponse])
def list_accounts(
    user_id: str = Depends(current_user), store: LedgerStore = Depends(get_store)
) -> List[AccountResponse]:
    with store.session(user_id) as engine:
        return [_account_response(engine, account) for account in engine.list_accounts()]


@app.post("/api/accounts", response_model=AccountResponse, status_code=201)
def create_account(
    payload: AccountCreate,
    user_id: str = Depends(current_user),
    store: LedgerStore = Depends(get_store),
) -> AccountResponse:
    with store.session(user_id, write=True) as engine:
        account = engine.add_account(
            number=payload.number,
            name=payload.name,
            type=payload.type,
            description=payload.description,
            opening_balance=payload.opening_balance,
        )
        return _account_response(engine, account)


@app.get("/api/accounts/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: str, user_id: str = Depends(current_user), store: LedgerStore = Depends(get_store)
) -> AccountResponse:
    with store.session(user_id) as engine:
        return _account_response(engine, engine.get_account(account_id))


@app.put("/api/accounts/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: str,
    payload: AccountUpdate,
    user_id: str = Depends(current_user),
    store: LedgerStore = Depends(get_store),
) -> AccountResponse:
    with store.session(user_id, write=True) as engine:
        account = engine.update_account(account_id, **payload.model_dump(exclude_unset=True))
        return _account_response(engine, account)


@app.delete("/api/accounts/{account_id}", status_code=204)
def delete_account(
    account_id: str, user_id: str = Depends(current_user), store: LedgerStore = Depends(get_store)
) -> Response:
    with store.session(user_id, write=True) as engine:
        engine.remove_account(account_id)
    return Response(status_code=204)


@app.get("/api/accounts/{account_id}/transactions", response_model=List[TransactionResponse])
def list_account_transactions(
    account_id: str, user_id: str = Depends(current_user), store: LedgerStore = Depends(get_store)
) -> List[TransactionResponse]:
    with store.session(user_id) as engine:
        return [_transaction_response(line) for line in engine.list_transactions(account_id)]


# ----------------------------------------------------------------------
# Transactions
# ----------------------------------------------------------------------
@app.get("/api/transactions", response_model=List[TransactionResponse])
def list_transactions(
    user_id: str = Depends(current_user),
    store: LedgerStore = Depends(get_store),
    settings: AppSettings = Depends(get_settings),
) -> List[TransactionResponse]:
    with store.session(user_id) as engine:
        lines = engine.list_transactions()
    if len(lines) > settings.max_transactions_returned:
        lines = lines[-settings.max_transactions_returned :]
    return [_transaction_response(line) for line in lines]


@app.post("/api/transactions", response_model=TransactionResponse, status_code=201)
def create_transaction(
    payload: TransactionCreate,
    user_id: str = Depends(current_user),
    store: LedgerStore = Depends(get_store),
) -> TransactionResponse:
    with store.session(user_id, write=True) as engine:
        line = engine.add_transaction(
            date=payload.date,
            description=payload.description,
            account_id=payload.account_id,
            amount=payload.amount,
            kind=payload.kind,
        )
    return _transaction_response(line)


@app.get("/api/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: str, user_id: str = Depends(current_user), store: LedgerStore = Depends(get_store)
) -> TransactionResponse:
    with store.session(user_id) as engine:
        return _transaction_response(engine.get_transaction(transaction_id))


@app.put("/api/transactions/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: str,
    payload: TransactionUpdate,
    user_id: str = Depends(current_user),
    store: LedgerStore = Depends(get_store),
) -> TransactionResponse:
    with store.session(user_id, write=True) as engine:
        line = engine.update_transaction(transaction_id, **payload.model_dump(exclude_unset=True))
    return _transaction_response(line)


@app.delete("/api/transactions/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: str, user_id: str = Depends(current_user), store: LedgerStore = Depends(get_store)
) -> Response:
    with store.session(user_id, write=True) as engine:
        engine.remove_transaction(transaction_id)
    return Response(status_code=204)


# ----------------------------------------------------------------------
# Journal entries
# ----------------------------------------------------------------------
@app.get("/api/journal", response_model=List[JournalEntryResponse])
def list_journal_entries(
    user_id: str = Depends(current_user), store: LedgerStore = Depends(get_store)
) -> List[JournalEntryResponse]:
    with store.session(user_id) as engine:
        entries = engine.list_entries()
    return [_entry_response(entry) for entry in entries]


@app.post("/api/journal", response_model=JournalEntryResponse, status_code=201)
def create_journal_entry(
    payload: JournalEntryCreate,
    user_id: str = Depends(current_user),
    store: LedgerStore = Depends(get_store),
) -> JournalEntryResponse:
    with store.session(user_id, write=True) as engine:
        entry = engine.record_entry(
            description=payload.description,
            entry_date=payload.entry_date,
            lines=[(line.account_id, line.kind, line.amount) for line in payload.lines],
        )
    return _entry_response(entry)


@app.get("/api/journal/{entry_id}", response_model=JournalEntryResponse)
def get_journal_entry(
    entry_id: str, user_id: str = Depends(current_user), store: LedgerStore = Depends(get_store)
) -> JournalEntryResponse:
    with store.session(user_id) as engine:
        return _entry_response(engine.get_entry(entry_id))


@app.delete("/api/journal/{entry_id}", status_code=204)
def delete_journal_entry(
    entry_id: str, user_id: str = Depends(current_user), store: LedgerStore = Depends(get_store)
) -> Response:
    with store.session(user_id, write=True) as engine:
        engine.remove_entry(entry_id)
    return Response(status_code=204)


@app.post("/api/journal/{entry_id}/reverse", response_model=JournalEntryResponse, status_code=201)
def reverse_journal_entry(
    entry_id: str,
    payload: Optional[JournalEntryReverse] = None,
    user_id: str = Depends(current_user),
    store: LedgerStore = Depends(get_store),
) -> JournalEntryResponse:
    with store.session(user_id, write=True) as engine:
        entry = engine.reverse_entry(entry_id, entry_date=payload.entry_date if payload else None)
    return _entry_response(entry)


# ----------------------------------------------------------------------
# Reports
# ----------------------------------------------------------------------
@app.get("/api/reports/trial-balance", response_model=TrialBalanceResponse)
def trial_balance(
    format: str = Query(default="json", pattern="^(json|csv)$"),
    period: Period = Depends(period_query),
    user_id: str = Depends(current_user),
    store: LedgerStore = Depends(get_store),
):
    with store.session(user_id) as engine:
        report = engine.trial_balance(period)
    if format == "csv":
        return _csv_response("trial-balance", report)
    return TrialBalanceResponse(
        start=period.start,
        end=period.end,
        rows=[
            TrialBalanceRowModel(
                account_id=row.account.id,
                account_number=row.account.number,
                account_name=row.account.name,
                type=row.account.type,
                debit=row.debit,
                credit=row.credit,
            )
            for row in report.rows
        ],
        total_debit=report.total_debit,
        total_credit=report.total_credit,
        is_balanced=report.is_balanced,
    )


@app.get("/api/reports/income-statement", response_model=IncomeStatementResponse)
def income_statement(
    format: str = Query(default="json", pattern="^(json|csv)$"),
    period: Period = Depends(period_query),
    user_id: str = Depends(current_user),
    store: LedgerStore = Depends(get_store),
):
    with store.session(user_id) as engine:
        statement = engine.income_statement(period)
    if format == "csv":
        return _csv_response("income-statement", statement)
    return IncomeStatementResponse(
        start=period.start,
        end=period.end,
        revenues=_section(statement.revenues, statement.total_revenue),
        expenses=_section(statement.expenses, statement.total_expenses),
        net_income=statement.net_income,
    )


@app.get("/api/reports/balance-sheet", response_model=BalanceSheetResponse)
def balance_sheet(
    format: str = Query(default="json", pattern="^(json|csv)$"),
    period: Period = Depends(period_query),
    user_id: str = Depends(current_user),
    store: LedgerStore = Depends(get_store),
):
    with store.session(user_id) as engine:
        sheet = engine.balance_sheet(period)
    if format == "csv":
        return _csv_response("balance-sheet", sheet)
    return BalanceSheetResponse(
        start=period.start,
        end=period.end,
        assets=_section(sheet.assets, sheet.total_assets),
        liabilities=_section(sheet.liabilities, sheet.total_liabilities),
        equity=_section(sheet.equity, sheet.total_equity),
        net_income=sheet.net_income,
        total_liabilities_and_equity=sheet.total_liabilities + sheet.total_equity,
        is_balanced=sheet.is_balanced,
    )


@app.get("/api/reports/general-ledger", response_model=List[AccountLedgerModel])
def general_ledger(
    format: str = Query(default="json", pattern="^(json|csv)$"),
    account_id: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    period: Period = Depends(period_query),
    user_id: str = Depends(current_user),
    store: LedgerStore = Depends(get_store),
):
    with store.session(user_id) as engine:
        ledgers = engine.general_ledger(period, account_id=account_id, search=search)
    if format == "csv":
        return _csv_response("general-ledger", ledgers)
    return [
        AccountLedgerModel(
            account_id=ledger.account.id,
            account_number=ledger.account.number,
            account_name=ledger.account.name,
            opening_balance=ledger.opening_balance,
            closing_balance=ledger.closing_balance,
            rows=[
                LedgerRowModel(
                    transaction_id=row.transaction.id,
                    date=row.transaction.date,
                    description=row.transaction.description,
                    debit=row.debit,
                    credit=row.credit,
                    balance=row.balance,
                )
                for row in ledger.rows
            ],
        )
        for ledger in ledgers
    ]


@app.get("/api/reports/transactions")
def transaction_list(
    period: Period = Depends(period_query),
    user_id: str = Depends(current_user),
    store: LedgerStore = Depends(get_store),
) -> Response:
    with store.session(user_id) as engine:
        report = build_report(engine, "transactions", period)
    return _csv_response("transactions", report)


@app.get("/api/dashboard", response_model=DashboardMetrics)
def dashboard(
    period: Period = Depends(period_query),
    user_id: str = Depends(current_user),
    store: LedgerStore = Depends(get_store),
) -> DashboardMetrics:
    with store.session(user_id) as engine:
        metrics = engine.dashboard_metrics(period)
        recent = engine.recent_transactions()
    return DashboardMetrics(
        recent_transactions=[_transaction_response(line) for line in recent],
        **metrics,
    )


# ----------------------------------------------------------------------
# Closing
# ----------------------------------------------------------------------
@app.post("/api/closing", response_model=ClosingResponse, status_code=201)
def close_period(
    payload: ClosingRequest,
    user_id: str = Depends(current_user),
    store: LedgerStore = Depends(get_store),
) -> ClosingResponse:
    period = Period(start=payload.start, end=payload.end)
    with store.session(user_id, write=True) as engine:
        plan = engine.close_period(period, closing_date=payload.closing_date)
    return ClosingResponse(
        closing_date=plan.closing_date,
        total_revenue=plan.total_revenue,
        total_expenses=plan.total_expenses,
        net_income=plan.net_income,
        dividends=plan.dividends,
        steps=[
            ClosingStepModel(
                number=step.number,
                description=step.description,
                lines=[_transaction_response(line) for line in step.lines],
            )
            for step in plan.steps
        ],
    )


def _account_response(engine: AccountingEngine, account: Account) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        number=account.number,
        name=account.name,
        description=account.description,
        type=account.type,
        opening_balance=account.opening_balance,
        balance=engine.running_balance(account.id),
    )


def _transaction_response(line: Transaction) -> TransactionResponse:
    return TransactionResponse.model_validate(line)


def _entry_response(entry: JournalEntry) -> JournalEntryResponse:
    return JournalEntryResponse(
        id=entry.id,
        description=entry.description,
        entry_date=entry.date,
        lines=[_transaction_response(line) for line in entry.lines],
    )


def _section(lines, total) -> StatementSection:
    return StatementSection(
        accounts=[
            StatementLineModel(account_id=line.account.id, account_name=line.account.name, amount=line.amount)
            for line in lines
        ],
        total=total,
    )


def _csv_response(name: str, report) -> Response:
    return Response(
        content=to_csv(report_rows(name, report)),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{name}.csv"'},
    )


__all__ = ["app"]
