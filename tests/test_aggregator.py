"""Tests for the ledger aggregator."""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from smartwealth.ledger import (
    account_name,
    apply_transaction,
    compute_category_breakdown,
    compute_monthly_totals,
    compute_net_worth,
    compute_trend_series,
    compute_unrealized_pl,
    filter_transactions,
    invert_transaction,
    position_performance,
    reconcile_stock_price_update,
    sort_transactions,
    summarize_dashboard,
)
from smartwealth.models.ledger import (
    Account,
    StockPosition,
    Transaction,
    TransactionType,
)

INCOME = TransactionType.INCOME
EXPENSE = TransactionType.EXPENSE


def tx(amount, type=EXPENSE, category="飲食", when=date(2023, 10, 1), account_id="acc-1"):
    return Transaction(
        account_id=account_id,
        date=when,
        amount=Decimal(amount),
        type=type,
        category=category,
    )


def stock(symbol, shares, average_cost, current_price):
    return StockPosition(
        symbol=symbol,
        shares=Decimal(shares),
        average_cost=Decimal(average_cost),
        current_price=Decimal(current_price),
    )


def balances(accounts):
    return {a.id: a.balance for a in accounts}


class TestNetWorth:

    def test_without_stocks_is_sum_of_balances(self, checking, cash):
        """Test net worth with no positions equals the balance total."""
        assert compute_net_worth([checking, cash], []) == Decimal("1200")

    def test_includes_market_value(self, checking):
        """Test positions count at shares x current price."""
        stocks = [stock("2330.TW", "1000", "550", "580")]
        assert compute_net_worth([checking], stocks) == Decimal("581000")

    def test_negative_balances_reduce_net_worth(self):
        """Test a credit balance is summed with its sign."""
        accounts = [Account(name="Card", balance=Decimal("-300")), Account(name="Cash", balance=Decimal("100"))]
        assert compute_net_worth(accounts, []) == Decimal("-200")

    def test_mixed_currencies_are_summed_nominally(self):
        """Test no conversion happens between currencies."""
        accounts = [
            Account(name="TWD", balance=Decimal("100"), currency="TWD"),
            Account(name="USD", balance=Decimal("100"), currency="USD"),
        ]
        assert compute_net_worth(accounts, []) == Decimal("200")

    def test_empty_ledger(self):
        assert compute_net_worth([], []) == Decimal("0")


class TestUnrealizedPL:

    def test_gain_is_value_minus_cost(self):
        """Test gain equals value minus cost for a mixed portfolio."""
        stocks = [
            stock("2330.TW", "1000", "550", "580"),
            stock("0050.TW", "2000", "120", "135"),
            stock("LOSS", "10", "100", "90"),
        ]
        summary = compute_unrealized_pl(stocks)
        assert summary.value == Decimal("580000") + Decimal("270000") + Decimal("900")
        assert summary.cost == Decimal("550000") + Decimal("240000") + Decimal("1000")
        assert summary.gain == summary.value - summary.cost

    def test_empty_portfolio(self):
        """Test an empty portfolio has zero figures and no percentage."""
        summary = compute_unrealized_pl([])
        assert summary.value == Decimal("0")
        assert summary.gain == Decimal("0")
        assert summary.gain_percent is None

    def test_position_performance(self):
        """Test per-position gain percent."""
        perf = position_performance(stock("2330.TW", "1000", "550", "605"))
        assert perf.market_value == Decimal("605000")
        assert perf.cost_basis == Decimal("550000")
        assert perf.gain == Decimal("55000")
        assert perf.gain_percent == Decimal("10")
        assert perf.is_profit

    def test_zero_average_cost_percent_is_undefined(self):
        """Test a zero average cost reports an undefined percentage, not infinity."""
        perf = position_performance(stock("GIFT", "10", "0", "50"))
        assert perf.gain_percent is None
        assert perf.percent_defined is False
        assert perf.gain == Decimal("500")

    def test_losing_position(self):
        perf = position_performance(stock("LOSS", "10", "100", "90"))
        assert perf.is_profit is False
        assert perf.gain_percent == Decimal("-10")


class TestMonthlyTotals:

    def test_selects_calendar_month(self):
        """Test only October 2023 entries are summed."""
        transactions = [
            tx("50000", INCOME, "薪資", date(2023, 10, 1)),
            tx("15000", EXPENSE, "居住", date(2023, 10, 5)),
            tx("1000", INCOME, "獎金", date(2023, 11, 1)),
        ]
        totals = compute_monthly_totals(transactions, 2023, 10)
        assert totals.income == Decimal("50000")
        assert totals.expense == Decimal("15000")
        assert totals.net == Decimal("35000")

    def test_same_month_other_year_excluded(self):
        """Test the year component is compared as well as the month."""
        transactions = [tx("10", when=date(2022, 10, 3))]
        totals = compute_monthly_totals(transactions, 2023, 10)
        assert totals.expense == Decimal("0")

    def test_month_boundaries(self):
        """Test the first and last day of the month are included."""
        transactions = [
            tx("1", when=date(2024, 2, 1)),
            tx("2", when=date(2024, 2, 29)),
            tx("4", when=date(2024, 3, 1)),
        ]
        assert compute_monthly_totals(transactions, 2024, 2).expense == Decimal("3")

    def test_orphaned_transactions_still_count(self):
        """Test transactions whose account is gone are still totalled."""
        transactions = [tx("75", account_id="deleted-account")]
        assert compute_monthly_totals(transactions, 2023, 10).expense == Decimal("75")


class TestCategoryBreakdown:

    def test_first_seen_order(self):
        """Test categories come back in order of first appearance."""
        transactions = [
            tx("120", category="飲食"),
            tx("3000", category="交通"),
            tx("80", category="飲食"),
        ]
        breakdown = compute_category_breakdown(transactions, EXPENSE)
        assert [(c.category, c.total) for c in breakdown] == [
            ("飲食", Decimal("200")),
            ("交通", Decimal("3000")),
        ]

    def test_filters_by_type(self):
        """Test income is excluded from the expense breakdown and vice versa."""
        transactions = [
            tx("50000", INCOME, "薪資"),
            tx("120", EXPENSE, "飲食"),
        ]
        assert [c.category for c in compute_category_breakdown(transactions)] == ["飲食"]
        assert [c.category for c in compute_category_breakdown(transactions, INCOME)] == ["薪資"]

    def test_custom_categories_are_kept(self):
        """Test categories outside the suggested list still group."""
        breakdown = compute_category_breakdown([tx("10", category="寵物")])
        assert breakdown[0].category == "寵物"

    def test_empty(self):
        assert compute_category_breakdown([]) == []


class TestTrendSeries:

    def test_orders_months_numerically(self):
        """Test 2023/10 follows 2023/9 and 2024/1 follows 2023/12."""
        transactions = [
            tx("1", when=date(2024, 1, 5)),
            tx("1", when=date(2023, 10, 5)),
            tx("1", when=date(2023, 9, 5)),
            tx("1", when=date(2023, 12, 5)),
        ]
        series = compute_trend_series(transactions, 6)
        assert [b.period for b in series] == ["2023/9", "2023/10", "2023/12", "2024/1"]

    def test_keeps_last_n_buckets(self):
        """Test only the most recent buckets survive truncation."""
        transactions = [tx("1", when=date(2023, m, 1)) for m in range(1, 13)]
        series = compute_trend_series(transactions, 3)
        assert [b.period for b in series] == ["2023/10", "2023/11", "2023/12"]

    def test_sums_income_and_expense_per_bucket(self):
        transactions = [
            tx("50000", INCOME, "薪資", date(2023, 10, 1)),
            tx("120", EXPENSE, "飲食", date(2023, 10, 2)),
            tx("15000", EXPENSE, "居住", date(2023, 10, 5)),
        ]
        (bucket,) = compute_trend_series(transactions)
        assert bucket.income == Decimal("50000")
        assert bucket.expense == Decimal("15120")

    def test_non_positive_bucket_count(self):
        """Test zero or negative bucket counts give an empty series."""
        transactions = [tx("1")]
        assert compute_trend_series(transactions, 0) == []
        assert compute_trend_series(transactions, -2) == []


class TestApplyTransaction:

    def test_income_adds_and_expense_subtracts(self, checking, cash):
        accounts = [checking, cash]
        after_income = apply_transaction(accounts, tx("500", INCOME))
        after_expense = apply_transaction(accounts, tx("300", EXPENSE))
        assert balances(after_income) == {"acc-1": Decimal("1500"), "acc-2": Decimal("200")}
        assert balances(after_expense) == {"acc-1": Decimal("700"), "acc-2": Decimal("200")}

    def test_does_not_modify_input(self, checking):
        """Test the input account objects are left untouched."""
        apply_transaction([checking], tx("500", INCOME))
        assert checking.balance == Decimal("1000")

    def test_unknown_account_is_no_op(self, checking, cash):
        """Test an orphaned transaction leaves every balance unchanged."""
        accounts = [checking, cash]
        result = apply_transaction(accounts, tx("999", account_id="missing"))
        assert balances(result) == balances(accounts)

    def test_order_independent(self, checking):
        """Test T1 then T2 gives the same balance as T2 then T1."""
        t1 = tx("123.45", INCOME)
        t2 = tx("67.89", EXPENSE)
        forward = apply_transaction(apply_transaction([checking], t1), t2)
        backward = apply_transaction(apply_transaction([checking], t2), t1)
        assert forward[0].balance == backward[0].balance == Decimal("1055.56")

    @pytest.mark.parametrize("amount,type", [
        ("0.01", INCOME),
        ("0.1", EXPENSE),
        ("99999999.99", INCOME),
        ("1000.5", EXPENSE),
    ])
    def test_inverse_restores_balances_exactly(self, checking, cash, amount, type):
        """Test applying a transaction then its inverse restores the original balances."""
        accounts = [checking, cash]
        t = tx(amount, type)
        restored = apply_transaction(apply_transaction(accounts, t), invert_transaction(t))
        assert balances(restored) == balances(accounts)

    def test_invert_keeps_everything_but_type(self):
        t = tx("10", INCOME, "薪資")
        inverse = invert_transaction(t)
        assert inverse.type is EXPENSE
        assert (inverse.id, inverse.amount, inverse.account_id) == (t.id, t.amount, t.account_id)


class TestReconcilePrices:

    def test_updates_matching_and_ignores_unknown(self):
        """Test matched symbols change and unknown symbols have no effect."""
        stocks = [stock("2330.TW", "1000", "550", "580")]
        result = reconcile_stock_price_update(stocks, {"2330.TW": Decimal("600"), "UNKNOWN": Decimal("999")})
        assert len(result) == 1
        assert result[0].current_price == Decimal("600")
        assert result[0].average_cost == Decimal("550")

    def test_positions_without_update_keep_price(self):
        stocks = [stock("A", "1", "1", "10"), stock("B", "1", "1", "20")]
        result = reconcile_stock_price_update(stocks, {"B": Decimal("25")})
        assert [s.current_price for s in result] == [Decimal("10"), Decimal("25")]

    def test_empty_updates(self):
        stocks = [stock("A", "1", "1", "10")]
        assert reconcile_stock_price_update(stocks, {}) == stocks

    def test_float_price_keeps_printed_value(self):
        stocks = [stock("A", "1", "1", "10")]
        (updated,) = reconcile_stock_price_update(stocks, {"A": 600.1})
        assert updated.current_price == Decimal("600.1")

    def test_negative_price_is_rejected(self):
        """Test a reconciled position still obeys the model constraints."""
        stocks = [stock("A", "1", "1", "10")]
        with pytest.raises(ValidationError):
            reconcile_stock_price_update(stocks, {"A": Decimal("-3")})


class TestViewHelpers:

    def test_account_name_for_orphan(self, checking):
        assert account_name([checking], "acc-1") == "Checking"
        assert account_name([checking], "gone") == "Unknown"

    def test_filter_transactions(self):
        transactions = [tx("1", INCOME, "薪資"), tx("2", EXPENSE)]
        assert filter_transactions(transactions) == transactions
        assert [t.type for t in filter_transactions(transactions, INCOME)] == [INCOME]

    def test_sort_newest_first(self):
        transactions = [tx("1", when=date(2023, 1, 1)), tx("2", when=date(2023, 3, 1))]
        assert [t.amount for t in sort_transactions(transactions)] == [Decimal("2"), Decimal("1")]

    def test_summarize_dashboard(self, checking, cash):
        """Test the dashboard cards are computed for the current month."""
        transactions = [
            tx("500", INCOME, "薪資", date(2023, 10, 1)),
            tx("50", EXPENSE, "飲食", date(2023, 10, 2)),
            tx("70", EXPENSE, "飲食", date(2023, 9, 2)),
        ]
        stocks = [stock("A", "10", "10", "12")]
        summary = summarize_dashboard([checking, cash], transactions, stocks, date(2023, 10, 15))
        assert summary.cash_total == Decimal("1200")
        assert summary.net_worth == Decimal("1320")
        assert summary.monthly.income == Decimal("500")
        assert summary.monthly.expense == Decimal("50")
        assert summary.portfolio.gain == Decimal("20")
