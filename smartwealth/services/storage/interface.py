"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing and offline use
3. Drive the UI cache from change pushes, whatever the backend
4. Keep ledger logic decoupled from storage implementation

Every storage instance is scoped to one user. The aggregator never sees
identity; it only ever receives records that were already scoped.

Records are stored flat, one per entity, with the id kept both as the
storage key and as the record's `id` field.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Optional, Union
from uuid import UUID

import structlog

from smartwealth.models.audit import AuditEvent
from smartwealth.models.ledger import (
    Account,
    EntityKind,
    StockPosition,
    Transaction,
)

LedgerRecord = Union[Account, Transaction, StockPosition]
Subscriber = Callable[[list[LedgerRecord]], None]
Unsubscribe = Callable[[], None]

logger = structlog.get_logger(__name__)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger record storage.

    Any storage implementation (in-memory, Google Sheets, ...)
    must implement the record operations. Subscription bookkeeping is
    shared: implementations call `_publish(kind)` after each change.
    """

    def __init__(self, user_id: str):
        self.user_id = user_id
        self._subscribers: dict[EntityKind, list[Subscriber]] = {
            kind: [] for kind in EntityKind
        }

    @abstractmethod
    async def list_records(self, kind: EntityKind) -> list[LedgerRecord]:
        """
        List every record of a kind, in storage order.

        Args:
            kind: Which collection to read

        Returns:
            All records of that kind for this user
        """
        pass

    @abstractmethod
    async def get_record(self, kind: EntityKind, record_id: str) -> Optional[LedgerRecord]:
        """
        Retrieve one record by id.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def create_record(self, kind: EntityKind, record: LedgerRecord) -> str:
        """
        Store a new record.

        The record's provisional id is discarded; storage assigns the
        durable id and writes it into the stored record.

        Returns:
            The assigned id

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def replace_record(self, kind: EntityKind, record_id: str, record: LedgerRecord) -> None:
        """
        Replace a stored record in full.

        Raises:
            NotFoundError: If no record has that id
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_record(self, kind: EntityKind, record_id: str) -> bool:
        """
        Delete a record by id.

        Returns:
            True if a record was deleted, False if none had that id
        """
        pass

    async def subscribe(self, kind: EntityKind, callback: Subscriber) -> Unsubscribe:
        """
        Register for the full record set of a kind.

        The callback receives the current records immediately and again
        after every change. Call the returned function to stop.
        """
        self._subscribers[kind].append(callback)
        self._deliver(callback, kind, await self.list_records(kind))

        def unsubscribe() -> None:
            if callback in self._subscribers[kind]:
                self._subscribers[kind].remove(callback)

        return unsubscribe

    async def _publish(self, kind: EntityKind) -> None:
        """Push the current record set of a kind to every subscriber."""
        if not self._subscribers[kind]:
            return
        records = await self.list_records(kind)
        for callback in list(self._subscribers[kind]):
            self._deliver(callback, kind, records)

    def _deliver(self, callback: Subscriber, kind: EntityKind, records: list[LedgerRecord]) -> None:
        # A failing subscriber must not fail the write that triggered it
        try:
            callback(list(records))
        except Exception as e:
            logger.error(
                "subscriber_failed",
                kind=kind.value,
                user_id=self.user_id,
                error=str(e),
            )


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one recorded transaction).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
