"""Services package."""

from smartwealth.services.cache import LedgerCache, LedgerSnapshot
from smartwealth.services.identity import (
    IdentityProvider,
    SettingsIdentityProvider,
    UserIdentity,
)
from smartwealth.services.storage import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Cache
    "LedgerCache",
    "LedgerSnapshot",
    # Identity
    "IdentityProvider",
    "SettingsIdentityProvider",
    "UserIdentity",
    # Storage services
    "AuditStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
]
