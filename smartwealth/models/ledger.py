"""
Core Data Models for SmartWealth

These models define the schemas for everything the ledger holds:
accounts, transactions and stock positions, plus the result shapes
the aggregator hands back to the UI.

DESIGN DECISION: Money is Decimal, never float.
Applying a transaction and then its inverse must restore a balance
exactly, which binary floats cannot promise.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
)


def new_provisional_id() -> str:
    """Client-side id; storage replaces it with the durable one on create."""
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountType(str, Enum):
    """Kinds of account a user can hold."""
    CHECKING = "Checking"
    SAVINGS = "Savings"
    CREDIT = "Credit"
    CASH = "Cash"
    INVESTMENT = "Investment"


class TransactionType(str, Enum):
    """Direction of a transaction relative to its account."""
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def opposite(self) -> "TransactionType":
        if self is TransactionType.INCOME:
            return TransactionType.EXPENSE
        return TransactionType.INCOME


class EntityKind(str, Enum):
    """
    Record collections kept per user.

    The value doubles as the collection name in storage.
    """
    ACCOUNTS = "accounts"
    TRANSACTIONS = "transactions"
    STOCKS = "stocks"


# Category strings are free-form; these are only suggestions for the forms.
SUGGESTED_CATEGORIES: dict[TransactionType, list[str]] = {
    TransactionType.INCOME: ["薪資", "獎金", "投資收益", "兼職", "其他"],
    TransactionType.EXPENSE: [
        "飲食", "交通", "居住", "娛樂", "購物",
        "醫療", "教育", "保險", "稅務", "其他",
    ],
}

UNKNOWN_ACCOUNT_NAME = "Unknown"
DEFAULT_CURRENCY = "TWD"


# =============================================================================
# LEDGER ENTITIES
# =============================================================================

class Account(BaseModel):
    """
    A named store of money.

    The balance is the source of truth. It is nudged by transactions
    applied through the ledger and can also be edited directly, in which
    case it no longer equals opening balance plus transaction history.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_provisional_id,
        min_length=1,
        description="Account id (provisional until stored)"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name"
    )
    type: AccountType = Field(
        default=AccountType.SAVINGS,
        description="Account kind"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Signed current balance"
    )
    currency: str = Field(
        default=DEFAULT_CURRENCY,
        min_length=1,
        max_length=10,
        description="Currency code"
    )


class Transaction(BaseModel):
    """
    A dated income or expense event against one account.

    Transactions are never edited in place; they are created or deleted.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_provisional_id,
        min_length=1,
    )
    account_id: str = Field(
        ...,
        min_length=1,
        description="Account this transaction belongs to"
    )
    date: date
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Always positive; direction comes from type"
    )
    type: TransactionType
    category: str = Field(
        ...,
        max_length=100,
        description="Free-form category"
    )
    description: str = Field(
        default="",
        max_length=500,
    )

    @property
    def signed_amount(self) -> Decimal:
        """Amount as it affects the account balance."""
        if self.type is TransactionType.INCOME:
            return self.amount
        return -self.amount


class StockPosition(BaseModel):
    """
    A held quantity of one ticker.

    average_cost and current_price are per-share prices, not totals.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_provisional_id,
        min_length=1,
    )
    symbol: str = Field(
        ...,
        min_length=1,
        max_length=20,
        description="Ticker symbol, e.g. 2330.TW"
    )
    name: str = Field(
        default="",
        max_length=200,
    )
    shares: Decimal = Field(
        ...,
        ge=0,
    )
    average_cost: Decimal = Field(
        ...,
        ge=0,
        description="Average cost per share"
    )
    current_price: Decimal = Field(
        ...,
        ge=0,
        description="Latest known price per share"
    )
    currency: str = Field(
        default=DEFAULT_CURRENCY,
        min_length=1,
        max_length=10,
    )


ENTITY_MODELS: dict[EntityKind, type[BaseModel]] = {
    EntityKind.ACCOUNTS: Account,
    EntityKind.TRANSACTIONS: Transaction,
    EntityKind.STOCKS: StockPosition,
}


# =============================================================================
# AGGREGATE RESULTS
# =============================================================================

class PortfolioSummary(BaseModel):
    """Unrealized profit and loss across all positions."""

    value: Decimal = Field(description="Market value")
    cost: Decimal = Field(description="Cost basis")
    gain: Decimal = Field(description="value - cost")

    @computed_field
    @property
    def gain_percent(self) -> Optional[Decimal]:
        """Gain over cost in percent; None when there is no cost basis."""
        if self.cost == 0:
            return None
        return self.gain / self.cost * 100


class PositionPerformance(BaseModel):
    """Per-position figures shown in the holdings table."""

    symbol: str
    market_value: Decimal
    cost_basis: Decimal
    gain: Decimal
    gain_percent: Optional[Decimal] = Field(
        default=None,
        description="None means the percentage is undefined (zero average cost)"
    )

    @property
    def percent_defined(self) -> bool:
        return self.gain_percent is not None

    @property
    def is_profit(self) -> bool:
        return self.gain >= 0


class MonthlyTotals(BaseModel):
    """Income and expense within one calendar month."""

    year: int
    month: int = Field(ge=1, le=12)
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class CategoryTotal(BaseModel):
    """One slice of the category breakdown."""

    category: str
    total: Decimal


class TrendBucket(BaseModel):
    """Income and expense for one year-month bucket."""

    period: str = Field(description='Label in "YYYY/M" form')
    year: int
    month: int = Field(ge=1, le=12)
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")


class DashboardSummary(BaseModel):
    """The figures on the dashboard cards."""

    net_worth: Decimal
    cash_total: Decimal
    monthly: MonthlyTotals
    portfolio: PortfolioSummary


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_account')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Result of validating one submitted form."""

    entity_kind: EntityKind
    entity_id: str

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]
