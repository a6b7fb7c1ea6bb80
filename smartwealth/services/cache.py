"""
Read-Through Ledger Cache

Holds the UI's local copies of accounts, transactions and stocks.
The copies are only ever replaced wholesale by storage pushes; nothing
in the UI edits them directly. Mutations go through LedgerService,
storage applies them, and the resulting push refreshes the cache.

Derived figures are not cached: callers run the aggregator over a
snapshot each time they render.
"""

import threading
from collections.abc import Callable
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from smartwealth.ledger.aggregator import sort_transactions
from smartwealth.models.ledger import (
    Account,
    EntityKind,
    StockPosition,
    Transaction,
)
from smartwealth.services.storage import (
    LedgerRecord,
    LedgerStorageInterface,
    Unsubscribe,
)

logger = structlog.get_logger(__name__)

ChangeListener = Callable[[EntityKind], None]


class LedgerSnapshot(BaseModel):
    """A consistent view of all three collections."""

    accounts: list[Account] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    stocks: list[StockPosition] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.accounts or self.transactions or self.stocks)


class LedgerCache:
    """
    Local mirror of one user's ledger, fed by storage subscriptions.

    Pushes may arrive from another thread, so record sets are swapped
    under a lock and snapshots copy the lists.
    """

    def __init__(self, storage: LedgerStorageInterface):
        self._storage = storage
        self._lock = threading.Lock()
        self._records: dict[EntityKind, list[LedgerRecord]] = {
            kind: [] for kind in EntityKind
        }
        self._loaded: set[EntityKind] = set()
        self._unsubscribers: list[Unsubscribe] = []
        self._listeners: list[ChangeListener] = []

    async def start(self) -> None:
        """Subscribe to every entity kind. Idempotent."""
        if self._unsubscribers:
            return
        for kind in EntityKind:
            unsubscribe = await self._storage.subscribe(kind, self._receiver(kind))
            self._unsubscribers.append(unsubscribe)

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    @property
    def is_loaded(self) -> bool:
        """True once every kind has received its first push."""
        return len(self._loaded) == len(EntityKind)

    def add_listener(self, listener: ChangeListener) -> Callable[[], None]:
        """Be told which kind changed after each push."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _receiver(self, kind: EntityKind) -> Callable[[list[LedgerRecord]], None]:
        def receive(records: list[LedgerRecord]) -> None:
            if kind is EntityKind.TRANSACTIONS:
                records = sort_transactions(records)
            with self._lock:
                self._records[kind] = list(records)
                self._loaded.add(kind)
            logger.debug("cache_updated", kind=kind.value, count=len(records))
            for listener in list(self._listeners):
                listener(kind)

        return receive

    def snapshot(self) -> LedgerSnapshot:
        with self._lock:
            return LedgerSnapshot(
                accounts=list(self._records[EntityKind.ACCOUNTS]),
                transactions=list(self._records[EntityKind.TRANSACTIONS]),
                stocks=list(self._records[EntityKind.STOCKS]),
            )

    @property
    def accounts(self) -> list[Account]:
        return self.snapshot().accounts

    @property
    def transactions(self) -> list[Transaction]:
        return self.snapshot().transactions

    @property
    def stocks(self) -> list[StockPosition]:
        return self.snapshot().stocks

    def find_account(self, account_id: str) -> Optional[Account]:
        for account in self.accounts:
            if account.id == account_id:
                return account
        return None
