"""
Entry Validation

DESIGN DECISION: Forms are validated in two layers.

LAYER 1 - SCHEMA (pydantic):
- Types, required fields, positive amounts, non-negative shares
- Enforced when the model is constructed; malformed input never
  becomes an Account, Transaction or StockPosition

LAYER 2 - LEDGER RULES (this module):
- The referenced account exists at creation time
- Suspicious values (future dates, absurd amounts)
- Values the aggregator cannot fully handle (zero average cost)

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the user can decide.
"""

from collections.abc import Sequence
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from smartwealth.config import get_settings
from smartwealth.models.ledger import (
    SUGGESTED_CATEGORIES,
    Account,
    EntityKind,
    StockPosition,
    Transaction,
    ValidationIssue,
    ValidationResult,
)


class LedgerValidator:
    """Validates user-submitted ledger entries against ledger rules."""

    def __init__(
        self,
        max_amount: Optional[Decimal] = None,
        future_date_tolerance_days: Optional[int] = None,
    ):
        """
        Initialize validator.

        Args:
            max_amount: Largest plausible amount; defaults to AppSettings.
            future_date_tolerance_days: Days a transaction may be dated ahead;
                defaults to AppSettings.
        """
        if max_amount is None or future_date_tolerance_days is None:
            app = get_settings().app
            if max_amount is None:
                max_amount = Decimal(str(app.max_amount))
            if future_date_tolerance_days is None:
                future_date_tolerance_days = app.future_date_tolerance_days
        self._max_amount = max_amount
        self._future_days = future_date_tolerance_days

    def validate_transaction(
        self,
        transaction: Transaction,
        accounts: Sequence[Account],
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Check a new transaction before it is recorded.

        The account must exist now. If it is deleted later the transaction
        becomes an orphan, which is allowed.
        """
        issues = []
        today = today or date.today()

        if not any(a.id == transaction.account_id for a in accounts):
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="unknown_account",
                message="The selected account does not exist",
                severity="error",
                suggested_fix="Create an account first, then record the transaction",
            ))

        if not transaction.category:
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Category is required",
                severity="error",
            ))
        elif transaction.category not in SUGGESTED_CATEGORIES[transaction.type]:
            issues.append(ValidationIssue(
                field="category",
                issue_type="custom_category",
                message=f"'{transaction.category}' is not one of the suggested categories",
                severity="info",
            ))

        if transaction.date > today + timedelta(days=self._future_days):
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({transaction.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        if transaction.amount > self._max_amount:
            issues.append(self._suspicious_amount("amount", transaction.amount))

        return ValidationResult(
            entity_kind=EntityKind.TRANSACTIONS,
            entity_id=transaction.id,
            issues=issues,
        )

    def validate_account(self, account: Account) -> ValidationResult:
        issues = []

        if abs(account.balance) > self._max_amount:
            issues.append(self._suspicious_amount("balance", account.balance))

        return ValidationResult(
            entity_kind=EntityKind.ACCOUNTS,
            entity_id=account.id,
            issues=issues,
        )

    def validate_stock(self, stock: StockPosition) -> ValidationResult:
        issues = []

        if stock.average_cost == 0:
            issues.append(ValidationIssue(
                field="average_cost",
                issue_type="zero_cost",
                message="Average cost is zero; gain percentage will be undefined",
                severity="warning",
                suggested_fix="Enter the price you paid per share",
            ))

        if stock.shares == 0:
            issues.append(ValidationIssue(
                field="shares",
                issue_type="empty_position",
                message="Position holds no shares",
                severity="info",
            ))

        for field in ("average_cost", "current_price"):
            value = getattr(stock, field)
            if value > self._max_amount:
                issues.append(self._suspicious_amount(field, value))

        return ValidationResult(
            entity_kind=EntityKind.STOCKS,
            entity_id=stock.id,
            issues=issues,
        )

    def _suspicious_amount(self, field: str, value: Decimal) -> ValidationIssue:
        return ValidationIssue(
            field=field,
            issue_type="suspicious_value",
            message=f"Amount ({value:,.2f}) seems unusually high",
            severity="warning",
            suggested_fix="Please verify this amount is correct",
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Summary shown next to the form."""
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ This entry cannot be saved:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines).strip()
