"""Pydantic schemas for the bookkeeping API."""
from __future__ import annotations

import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ledgerbook.accounting import AccountType, EntryKind


class AccountBase(BaseModel):
    number: str = Field(..., min_length=1, description="Display code, e.g. 1000")
    name: str = Field(..., min_length=1)
    description: str = ""

    @field_validator("number", "name", "description")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()


class AccountCreate(AccountBase):
    type: AccountType
    opening_balance: Decimal = Decimal("0")


class AccountUpdate(BaseModel):
    number: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[AccountType] = None


class AccountResponse(AccountBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: AccountType
    opening_balance: Decimal
    balance: Decimal


class TransactionBase(BaseModel):
    date: datetime.date
    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    kind: EntryKind


class TransactionCreate(TransactionBase):
    account_id: str = Field(..., min_length=1)


class TransactionUpdate(BaseModel):
    date: Optional[datetime.date] = None
    description: Optional[str] = None
    amount: Optional[Decimal] = Field(default=None, gt=0)
    kind: Optional[EntryKind] = None


class TransactionResponse(TransactionBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    account_id: str
    entry_id: Optional[str] = None


class JournalLineModel(BaseModel):
    account_id: str
    kind: EntryKind
    amount: Decimal = Field(..., gt=0)


class JournalEntryCreate(BaseModel):
    description: str = Field(..., min_length=1)
    entry_date: datetime.date
    lines: List[JournalLineModel] = Field(..., min_length=2)


class JournalEntryReverse(BaseModel):
    entry_date: Optional[datetime.date] = None


class JournalEntryResponse(BaseModel):
    id: str
    description: str
    entry_date: datetime.date
    lines: List[TransactionResponse]


class PeriodQuery(BaseModel):
    start: Optional[datetime.date] = None
    end: Optional[datetime.date] = None

    @model_validator(mode="after")
    def _ordered(self) -> "PeriodQuery":
        if self.start and self.end and self.start > self.end:
            raise ValueError("start must not be after end")
        return self


class TrialBalanceRowModel(BaseModel):
    account_id: str
    account_number: str
    account_name: str
    type: AccountType
    debit: Decimal
    credit: Decimal


class TrialBalanceResponse(BaseModel):
    start: Optional[datetime.date]
    end: Optional[datetime.date]
    rows: List[TrialBalanceRowModel]
    total_debit: Decimal
    total_credit: Decimal
    is_balanced: bool


class StatementLineModel(BaseModel):
    account_id: str
    account_name: str
    amount: Decimal


class StatementSection(BaseModel):
    accounts: List[StatementLineModel]
    total: Decimal


class IncomeStatementResponse(BaseModel):
    start: Optional[datetime.date]
    end: Optional[datetime.date]
    revenues: StatementSection
    expenses: StatementSection
    net_income: Decimal


class BalanceSheetResponse(BaseModel):
    start: Optional[datetime.date]
    end: Optional[datetime.date]
    assets: StatementSection
    liabilities: StatementSection
    equity: StatementSection
    net_income: Decimal
    total_liabilities_and_equity: Decimal
    is_balanced: bool


class LedgerRowModel(BaseModel):
    transaction_id: str
    date: datetime.date
    description: str
    debit: Decimal
    credit: Decimal
    balance: Decimal


class AccountLedgerModel(BaseModel):
    account_id: str
    account_number: str
    account_name: str
    opening_balance: Decimal
    closing_balance: Decimal
    rows: List[LedgerRowModel]


class DashboardMetrics(BaseModel):
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal
    recent_transactions: List[TransactionResponse]


class ClosingRequest(PeriodQuery):
    closing_date: Optional[datetime.date] = None


class ClosingStepModel(BaseModel):
    number: int
    description: str
    lines: List[TransactionResponse]


class ClosingResponse(BaseModel):
    closing_date: datetime.date
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal
    dividends: Decimal
    steps: List[ClosingStepModel]
