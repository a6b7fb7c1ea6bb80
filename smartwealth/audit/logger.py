"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Traceability of every balance change
2. Debugging capability
3. A history the user can inspect
4. A record of AI fallbacks

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from smartwealth.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from smartwealth.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
        user_id: Optional[str] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
            user_id: Stamped on every event that doesn't carry one.
        """
        self._storage = storage
        self._user_id = user_id
        self._logger = structlog.get_logger("smartwealth.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        if event.user_id is None and self._user_id is not None:
            event = event.model_copy(update={"user_id": self._user_id})

        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def recent_events(self, limit: int = 20) -> list[AuditEvent]:
        """
        Most recent persisted events, newest first.

        Empty when logging is local only.

        Raises:
            StorageError: If the audit backend cannot be read
        """
        if not self._storage:
            return []
        return await self._storage.get_recent_events(limit=limit)

    async def log_account_created(
        self,
        account_id: str,
        name: str,
        balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.account_created(
            account_id=account_id,
            name=name,
            balance=balance,
            correlation_id=correlation_id,
        ))

    async def log_account_updated(
        self,
        account_id: str,
        balance_before: str,
        balance_after: str,
        correlation_id: Optional[UUID] = None,
        is_user_action: bool = True,
    ) -> None:
        await self.log(AuditEventBuilder.account_updated(
            account_id=account_id,
            balance_before=balance_before,
            balance_after=balance_after,
            correlation_id=correlation_id,
            is_user_action=is_user_action,
        ))

    async def log_account_deleted(
        self,
        account_id: str,
        orphaned_transactions: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.account_deleted(
            account_id=account_id,
            orphaned_transactions=orphaned_transactions,
            correlation_id=correlation_id,
        ))

    async def log_transaction_recorded(
        self,
        transaction_id: str,
        account_id: str,
        transaction_type: str,
        amount: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_recorded(
            transaction_id=transaction_id,
            account_id=account_id,
            transaction_type=transaction_type,
            amount=amount,
            category=category,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        transaction_id: str,
        balance_reversed: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            balance_reversed=balance_reversed,
            correlation_id=correlation_id,
        ))

    async def log_orphaned_transaction(
        self,
        transaction_id: str,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.orphaned_transaction(
            transaction_id=transaction_id,
            account_id=account_id,
            correlation_id=correlation_id,
        ))

    async def log_stock_changed(
        self,
        event_type: AuditEventType,
        stock_id: str,
        symbol: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.stock_changed(
            event_type=event_type,
            stock_id=stock_id,
            symbol=symbol,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_prices_refreshed(
        self,
        updated_symbols: list[str],
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.prices_refreshed(
            updated_symbols=updated_symbols,
            source=source,
            correlation_id=correlation_id,
        ))

    async def log_advice_generated(
        self,
        source: str,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.advice_generated(
            source=source,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        ))

    async def log_entry_rejected(
        self,
        entity_type: str,
        entity_id: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entry_rejected(
            entity_type=entity_type,
            entity_id=entity_id,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_seed_data_written(self, counts: dict[str, int]) -> None:
        await self.log(AuditEventBuilder.seed_data_written(counts=counts))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., recording a transaction).
    Pass it through all subsequent operations.
    """
    return uuid4()
