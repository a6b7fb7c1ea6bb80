"""
In-Memory Storage Implementation

Keeps records in process memory. Used by the test suite and when no
cloud backend is configured. Records are copied on the way in and out,
so callers can never mutate what is stored.
"""

from typing import Optional
from uuid import UUID, uuid4

from smartwealth.models.audit import AuditEvent
from smartwealth.models.ledger import EntityKind
from smartwealth.services.storage.interface import (
    AuditStorageInterface,
    LedgerRecord,
    LedgerStorageInterface,
    NotFoundError,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Ledger storage backed by ordered dicts, one per entity kind."""

    def __init__(self, user_id: str = "local"):
        super().__init__(user_id)
        self._records: dict[EntityKind, dict[str, LedgerRecord]] = {
            kind: {} for kind in EntityKind
        }

    async def list_records(self, kind: EntityKind) -> list[LedgerRecord]:
        return [r.model_copy(deep=True) for r in self._records[kind].values()]

    async def get_record(self, kind: EntityKind, record_id: str) -> Optional[LedgerRecord]:
        record = self._records[kind].get(record_id)
        return record.model_copy(deep=True) if record else None

    async def create_record(self, kind: EntityKind, record: LedgerRecord) -> str:
        record_id = uuid4().hex
        self._records[kind][record_id] = record.model_copy(update={"id": record_id}, deep=True)
        await self._publish(kind)
        return record_id

    async def replace_record(self, kind: EntityKind, record_id: str, record: LedgerRecord) -> None:
        if record_id not in self._records[kind]:
            raise NotFoundError(f"{kind.value} record not found: {record_id}")
        self._records[kind][record_id] = record.model_copy(update={"id": record_id}, deep=True)
        await self._publish(kind)

    async def delete_record(self, kind: EntityKind, record_id: str) -> bool:
        if self._records[kind].pop(record_id, None) is None:
            return False
        await self._publish(kind)
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        # Append order is time order
        return list(reversed(self._events))[:limit]
