"""
Data Models Package

This package contains all Pydantic models used in SmartWealth.
All data flowing through the system must conform to these schemas.
"""

from smartwealth.models.ledger import (
    DEFAULT_CURRENCY,
    ENTITY_MODELS,
    SUGGESTED_CATEGORIES,
    UNKNOWN_ACCOUNT_NAME,
    Account,
    AccountType,
    CategoryTotal,
    DashboardSummary,
    EntityKind,
    MonthlyTotals,
    PortfolioSummary,
    PositionPerformance,
    StockPosition,
    Transaction,
    TransactionType,
    TrendBucket,
    ValidationIssue,
    ValidationResult,
)
from smartwealth.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_CURRENCY",
    "ENTITY_MODELS",
    "SUGGESTED_CATEGORIES",
    "UNKNOWN_ACCOUNT_NAME",
    "Account",
    "AccountType",
    "CategoryTotal",
    "DashboardSummary",
    "EntityKind",
    "MonthlyTotals",
    "PortfolioSummary",
    "PositionPerformance",
    "StockPosition",
    "Transaction",
    "TransactionType",
    "TrendBucket",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
