"""Tests for ledger entry validation."""

from datetime import date
from decimal import Decimal

import pytest

from smartwealth.models.ledger import StockPosition, Transaction, TransactionType, Account
from smartwealth.validation import LedgerValidator

TODAY = date(2023, 10, 15)


@pytest.fixture
def validator():
    return LedgerValidator(max_amount=Decimal("1000000"), future_date_tolerance_days=7)


def transaction(**overrides):
    fields = dict(
        account_id="acc-1",
        date=date(2023, 10, 1),
        amount=Decimal("120"),
        type=TransactionType.EXPENSE,
        category="飲食",
    )
    fields.update(overrides)
    return Transaction(**fields)


def issue_types(result):
    return [i.issue_type for i in result.issues]


class TestTransactionValidation:

    def test_valid_transaction(self, validator, checking):
        """Test a normal expense passes with no issues."""
        result = validator.validate_transaction(transaction(), [checking], today=TODAY)
        assert result.is_valid
        assert result.issues == []

    def test_unknown_account_is_error(self, validator, checking):
        """Test a transaction must reference an existing account when recorded."""
        result = validator.validate_transaction(transaction(account_id="nope"), [checking], today=TODAY)
        assert result.has_errors
        assert "unknown_account" in issue_types(result)

    def test_missing_category_is_error(self, validator, checking):
        result = validator.validate_transaction(transaction(category="  "), [checking], today=TODAY)
        assert result.has_errors
        assert "missing" in issue_types(result)

    def test_custom_category_is_info_only(self, validator, checking):
        """Test categories outside the suggestions are allowed."""
        result = validator.validate_transaction(transaction(category="寵物"), [checking], today=TODAY)
        assert result.is_valid
        assert issue_types(result) == ["custom_category"]

    def test_income_category_checked_against_income_list(self, validator, checking):
        result = validator.validate_transaction(
            transaction(type=TransactionType.INCOME, category="薪資"), [checking], today=TODAY
        )
        assert result.issues == []

    def test_future_date_beyond_tolerance_warns(self, validator, checking):
        result = validator.validate_transaction(
            transaction(date=date(2023, 11, 1)), [checking], today=TODAY
        )
        assert result.is_valid
        assert "future_date" in issue_types(result)

    def test_future_date_within_tolerance_is_fine(self, validator, checking):
        result = validator.validate_transaction(
            transaction(date=date(2023, 10, 20)), [checking], today=TODAY
        )
        assert "future_date" not in issue_types(result)

    def test_large_amount_warns(self, validator, checking):
        result = validator.validate_transaction(
            transaction(amount=Decimal("5000000")), [checking], today=TODAY
        )
        assert result.is_valid
        assert "suspicious_value" in issue_types(result)


class TestAccountAndStockValidation:

    def test_huge_balance_warns(self, validator):
        result = validator.validate_account(Account(name="Big", balance=Decimal("-9000000")))
        assert result.is_valid
        assert issue_types(result) == ["suspicious_value"]

    def test_zero_average_cost_warns(self, validator):
        """Test a zero cost basis is flagged because its percentage is undefined."""
        stock = StockPosition(symbol="GIFT", shares=Decimal("1"),
                              average_cost=Decimal("0"), current_price=Decimal("10"))
        result = validator.validate_stock(stock)
        assert result.is_valid
        assert "zero_cost" in issue_types(result)

    def test_empty_position_is_info(self, validator):
        stock = StockPosition(symbol="A", shares=Decimal("0"),
                              average_cost=Decimal("10"), current_price=Decimal("10"))
        assert issue_types(validator.validate_stock(stock)) == ["empty_position"]

    def test_oversized_current_price_names_its_field(self, validator):
        """Test the warning points at the price that is actually too large."""
        stock = StockPosition(symbol="A", shares=Decimal("1"),
                              average_cost=Decimal("10"), current_price=Decimal("5000000"))
        (issue,) = validator.validate_stock(stock).issues
        assert issue.field == "current_price"
        assert "5,000,000.00" in issue.message

    def test_defaults_come_from_settings(self):
        """Test thresholds fall back to application settings."""
        validator = LedgerValidator()
        result = validator.validate_account(Account(name="A", balance=Decimal("100")))
        assert result.issues == []


class TestSummary:

    def test_clean_summary(self, validator, checking):
        result = validator.validate_transaction(transaction(), [checking], today=TODAY)
        assert validator.get_user_friendly_summary(result) == "✅ All checks passed."

    def test_error_summary_lists_fix(self, validator, checking):
        result = validator.validate_transaction(transaction(account_id="nope"), [checking], today=TODAY)
        summary = validator.get_user_friendly_summary(result)
        assert "cannot be saved" in summary
        assert "Create an account first" in summary
