"""
Audit Models for SmartWealth

Every change to the ledger is logged for audit purposes.
This provides:
1. Traceability of balance changes back to the operation that made them
2. Debugging information when things go wrong
3. A record of AI fallbacks and external service failures

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"

    # Transactions
    TRANSACTION_RECORDED = "transaction_recorded"
    TRANSACTION_DELETED = "transaction_deleted"
    ORPHANED_TRANSACTION = "orphaned_transaction"

    # Stocks
    STOCK_ADDED = "stock_added"
    STOCK_UPDATED = "stock_updated"
    STOCK_DELETED = "stock_deleted"
    PRICES_REFRESHED = "prices_refreshed"

    # AI
    ADVICE_GENERATED = "advice_generated"

    # Forms
    ENTRY_REJECTED = "entry_rejected"

    # Lifecycle
    SEED_DATA_WRITTEN = "seed_data_written"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'accounts', 'transactions', 'stocks')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Which user's ledger this happened in
    user_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., a transaction and its balance update)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         user_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            self.user_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, ensure_ascii=False, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.account_created(account_id, name, balance, user_id)
        event = AuditEventBuilder.transaction_recorded(...)
    """

    @staticmethod
    def account_created(
        account_id: str,
        name: str,
        balance: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type="accounts",
            entity_id=account_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Account created: {name}",
            details={"name": name, "balance": balance},
            is_user_action=True,
        )

    @staticmethod
    def account_updated(
        account_id: str,
        balance_before: str,
        balance_after: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
        is_user_action: bool = True,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_UPDATED,
            entity_type="accounts",
            entity_id=account_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Account balance {balance_before} -> {balance_after}",
            details={"balance_before": balance_before, "balance_after": balance_after},
            is_user_action=is_user_action,
        )

    @staticmethod
    def account_deleted(
        account_id: str,
        orphaned_transactions: int,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETED,
            entity_type="accounts",
            entity_id=account_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Account deleted ({orphaned_transactions} transactions orphaned)",
            details={"orphaned_transactions": orphaned_transactions},
            is_user_action=True,
        )

    @staticmethod
    def transaction_recorded(
        transaction_id: str,
        account_id: str,
        transaction_type: str,
        amount: str,
        category: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            entity_type="transactions",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Transaction recorded: {transaction_type} {amount} ({category})",
            details={
                "account_id": account_id,
                "type": transaction_type,
                "amount": amount,
                "category": category,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        balance_reversed: bool,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transactions",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
            details={"balance_reversed": balance_reversed},
            is_user_action=True,
        )

    @staticmethod
    def orphaned_transaction(
        transaction_id: str,
        account_id: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ORPHANED_TRANSACTION,
            severity=AuditSeverity.WARNING,
            entity_type="transactions",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Account {account_id} not found; no balance was changed",
            details={"account_id": account_id},
        )

    @staticmethod
    def stock_changed(
        event_type: AuditEventType,
        stock_id: str,
        symbol: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        verb = {
            AuditEventType.STOCK_ADDED: "added",
            AuditEventType.STOCK_UPDATED: "updated",
            AuditEventType.STOCK_DELETED: "deleted",
        }.get(event_type, event_type.value)
        return AuditEvent(
            event_type=event_type,
            entity_type="stocks",
            entity_id=stock_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Stock position {verb}: {symbol}",
            details={"symbol": symbol, **(details or {})},
            is_user_action=True,
        )

    @staticmethod
    def prices_refreshed(
        updated_symbols: list[str],
        source: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PRICES_REFRESHED,
            entity_type="stocks",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Prices refreshed for {len(updated_symbols)} positions ({source})",
            details={"symbols": updated_symbols, "source": source},
            is_user_action=True,
        )

    @staticmethod
    def advice_generated(
        source: str,
        transaction_count: int,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_GENERATED,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Financial advice generated ({source})",
            details={"source": source, "transaction_count": transaction_count},
            is_user_action=True,
        )

    @staticmethod
    def entry_rejected(
        entity_type: str,
        entity_id: str,
        issues: list[dict],
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Entry rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def seed_data_written(
        counts: dict[str, int],
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEED_DATA_WRITTEN,
            user_id=user_id,
            description="Demo ledger written for first use",
            details=counts,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
