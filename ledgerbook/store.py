"""Per-user ledgers backed by a repository."""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from ledgerbook.accounting import (
    AccountingEngine,
    InMemoryRepository,
    JsonFileRepository,
    LedgerRepository,
)
from ledgerbook.config import AppSettings

LOGGER = logging.getLogger(__name__)


class LedgerStore:
    """Hands out one engine per user and persists it after each write.

    Writes to the same user's ledger are serialized with a lock. When saving
    fails the cached engine is dropped, so the next request reloads the last
    saved snapshot instead of the unsaved state.
    """

    def __init__(self, settings: AppSettings) -> None:
        self.settings = settings
        self._engines: Dict[str, AccountingEngine] = {}
        self._repositories: Dict[str, LedgerRepository] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def repository_for(self, user_id: str) -> LedgerRepository:
        repository = self._repositories.get(user_id)
        if repository is None:
            if self.settings.store_path is not None:
                repository = JsonFileRepository(self.settings.store_path / f"{user_id}.json")
            else:
                repository = InMemoryRepository()
            self._repositories[user_id] = repository
        return repository

    def _load(self, user_id: str) -> AccountingEngine:
        snapshot = self.repository_for(user_id).load()
        options = dict(
            strict_entry_types=self.settings.strict_entry_types,
            epsilon=self.settings.balance_epsilon,
        )
        if not snapshot.accounts and self.settings.seed_demo_data:
            LOGGER.info("Seeding demo ledger for user %s", user_id)
            engine = AccountingEngine(seed_demo_data=True, **options)
            self.repository_for(user_id).save(engine.snapshot())
            return engine
        return AccountingEngine.from_snapshot(snapshot, **options)

    @contextmanager
    def session(self, user_id: str, *, write: bool = False) -> Iterator[AccountingEngine]:
        with self._guard:
            lock = self._locks.setdefault(user_id, threading.Lock())
        with lock:
            engine = self._engines.get(user_id)
            if engine is None:
                engine = self._engines[user_id] = self._load(user_id)
            yield engine
            if write:
                try:
                    self.repository_for(user_id).save(engine.snapshot())
                except Exception:
                    LOGGER.exception("Saving ledger for user %s failed; discarding changes", user_id)
                    self._engines.pop(user_id, None)
                    raise


__all__ = ["LedgerStore"]
