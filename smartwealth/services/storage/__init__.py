"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the cloud backend; the in-memory backend serves tests
and offline use.
"""

from smartwealth.services.storage.interface import (
    AuditStorageInterface,
    LedgerRecord,
    LedgerStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    Subscriber,
    Unsubscribe,
)
from smartwealth.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
)
from smartwealth.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerRecord",
    "LedgerStorageInterface",
    "Subscriber",
    "Unsubscribe",
    # Exceptions
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
]
