"""Persistence boundary for ledger snapshots.

The engine never talks to storage. Callers ``load()`` a snapshot, hand it to
:meth:`AccountingEngine.from_snapshot`, and ``save()`` the engine's
``snapshot()`` once a mutation has succeeded.
"""
from __future__ import annotations

import datetime
import logging
import os
import tempfile
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Protocol

from pydantic import BaseModel, Field
from pydantic import ValidationError as SchemaError

from .errors import InconsistentLedgerState
from .models import Account, AccountType, EntryKind, JournalEntry, Transaction

LOGGER = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


@dataclass
class LedgerSnapshot:
    accounts: List[Account] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)
    entries: List[JournalEntry] = field(default_factory=list)


class LedgerRepository(Protocol):
    def load(self) -> LedgerSnapshot:
        ...

    def save(self, snapshot: LedgerSnapshot) -> None:
        ...


class InMemoryRepository:
    """Keeps the last saved snapshot in memory."""

    def __init__(self, snapshot: Optional[LedgerSnapshot] = None) -> None:
        self._snapshot = snapshot or LedgerSnapshot()

    def load(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            accounts=list(self._snapshot.accounts),
            transactions=list(self._snapshot.transactions),
            entries=list(self._snapshot.entries),
        )

    def save(self, snapshot: LedgerSnapshot) -> None:
        self._snapshot = LedgerSnapshot(
            accounts=list(snapshot.accounts),
            transactions=list(snapshot.transactions),
            entries=list(snapshot.entries),
        )


class AccountRecord(BaseModel):
    id: str
    number: str
    name: str
    type: AccountType
    description: str = ""
    opening_balance: Decimal = Decimal("0")


class TransactionRecord(BaseModel):
    id: str
    date: datetime.date
    description: str
    account_id: str
    amount: Decimal
    kind: EntryKind
    entry_id: Optional[str] = None


class JournalEntryRecord(BaseModel):
    id: str
    date: datetime.date
    description: str
    line_ids: List[str]


class SnapshotDocument(BaseModel):
    version: int = SNAPSHOT_VERSION
    accounts: List[AccountRecord] = Field(default_factory=list)
    transactions: List[TransactionRecord] = Field(default_factory=list)
    entries: List[JournalEntryRecord] = Field(default_factory=list)

    @classmethod
    def from_snapshot(cls, snapshot: LedgerSnapshot) -> "SnapshotDocument":
        return cls(
            accounts=[AccountRecord(**account.__dict__) for account in snapshot.accounts],
            transactions=[TransactionRecord(**line.__dict__) for line in snapshot.transactions],
            entries=[
                JournalEntryRecord(
                    id=entry.id,
                    date=entry.date,
                    description=entry.description,
                    line_ids=[line.id for line in entry.lines],
                )
                for entry in snapshot.entries
            ],
        )

    def to_snapshot(self) -> LedgerSnapshot:
        accounts = [Account(**record.model_dump()) for record in self.accounts]
        transactions = [Transaction(**record.model_dump()) for record in self.transactions]
        by_id = {line.id: line for line in transactions}
        entries: List[JournalEntry] = []
        for record in self.entries:
            missing = [line_id for line_id in record.line_ids if line_id not in by_id]
            if missing:
                raise InconsistentLedgerState(
                    f"Journal entry '{record.id}' references unknown lines",
                    details={"entry_id": record.id, "missing": missing},
                )
            entries.append(
                JournalEntry(
                    id=record.id,
                    date=record.date,
                    description=record.description,
                    lines=tuple(by_id[line_id] for line_id in record.line_ids),
                )
            )
        return LedgerSnapshot(accounts=accounts, transactions=transactions, entries=entries)


class JsonFileRepository:
    """Stores the ledger as a single JSON document.

    A missing file loads as an empty ledger. Saves go through a temporary
    file in the same directory and replace the target in one step.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> LedgerSnapshot:
        if not self.path.exists():
            LOGGER.debug("No ledger file at %s; starting empty", self.path)
            return LedgerSnapshot()
        try:
            document = SnapshotDocument.model_validate_json(self.path.read_text(encoding="utf-8"))
        except SchemaError as exc:
            raise InconsistentLedgerState(f"Ledger file {self.path} is not valid: {exc}") from exc
        snapshot = document.to_snapshot()
        LOGGER.debug(
            "Loaded %d accounts and %d transactions from %s",
            len(snapshot.accounts),
            len(snapshot.transactions),
            self.path,
        )
        return snapshot

    def save(self, snapshot: LedgerSnapshot) -> None:
        payload = SnapshotDocument.from_snapshot(snapshot).model_dump_json(indent=2)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        LOGGER.debug("Saved ledger to %s", self.path)


__all__ = [
    "InMemoryRepository",
    "JsonFileRepository",
    "LedgerRepository",
    "LedgerSnapshot",
    "SnapshotDocument",
]
