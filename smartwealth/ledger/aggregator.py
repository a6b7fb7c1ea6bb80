"""
Ledger Aggregator

Pure functions over the three ledger collections (accounts, transactions,
stock positions). Nothing here touches storage, the network or the clock
unless a date is passed in.

DESIGN DECISION: Derived figures are never stored.
Every storage push re-runs these functions over the full record set,
so there is no incremental state to drift out of sync.

KNOWN LIMITATIONS:
- Totals across different currencies are summed nominally.
  No conversion is attempted; converting would change observable totals.
- apply_transaction is the only balance mutation that keeps
  "balance == opening + income - expense". Direct edits break it on purpose.
"""

from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from decimal import Decimal
from typing import Optional

from smartwealth.models.ledger import (
    UNKNOWN_ACCOUNT_NAME,
    Account,
    CategoryTotal,
    DashboardSummary,
    MonthlyTotals,
    PortfolioSummary,
    PositionPerformance,
    StockPosition,
    Transaction,
    TransactionType,
    TrendBucket,
)

ZERO = Decimal("0")
DEFAULT_TREND_BUCKETS = 6


# =============================================================================
# TOTALS
# =============================================================================

def compute_net_worth(
    accounts: Iterable[Account],
    stocks: Iterable[StockPosition],
) -> Decimal:
    """
    Sum of all account balances plus the market value of all positions.

    No currency conversion is performed.
    """
    cash = sum((account.balance for account in accounts), ZERO)
    return cash + _market_value(stocks)


def compute_unrealized_pl(stocks: Iterable[StockPosition]) -> PortfolioSummary:
    """Market value, cost basis and their difference for the whole portfolio."""
    stocks = list(stocks)
    value = _market_value(stocks)
    cost = sum((s.shares * s.average_cost for s in stocks), ZERO)
    return PortfolioSummary(value=value, cost=cost, gain=value - cost)


def position_performance(stock: StockPosition) -> PositionPerformance:
    """
    Figures for a single holding.

    The percentage is (current - average) / average * 100. With a zero
    average cost it is undefined and reported as None instead of
    infinity or NaN.
    """
    market_value = stock.shares * stock.current_price
    cost_basis = stock.shares * stock.average_cost

    gain_percent: Optional[Decimal] = None
    if stock.average_cost != 0:
        gain_percent = (stock.current_price - stock.average_cost) / stock.average_cost * 100

    return PositionPerformance(
        symbol=stock.symbol,
        market_value=market_value,
        cost_basis=cost_basis,
        gain=market_value - cost_basis,
        gain_percent=gain_percent,
    )


def _market_value(stocks: Iterable[StockPosition]) -> Decimal:
    return sum((s.shares * s.current_price for s in stocks), ZERO)


# =============================================================================
# TIME AND CATEGORY GROUPING
# =============================================================================

def compute_monthly_totals(
    transactions: Iterable[Transaction],
    year: int,
    month: int,
) -> MonthlyTotals:
    """
    Income and expense for one calendar month.

    Compares year and month components of naive dates; no timezone handling.
    """
    income = ZERO
    expense = ZERO
    for t in transactions:
        if t.date.year != year or t.date.month != month:
            continue
        if t.type is TransactionType.INCOME:
            income += t.amount
        else:
            expense += t.amount
    return MonthlyTotals(year=year, month=month, income=income, expense=expense)


def compute_category_breakdown(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType = TransactionType.EXPENSE,
) -> list[CategoryTotal]:
    """
    Totals per category string, in order of first appearance.

    Any category string counts, not just the suggested ones.
    """
    totals: dict[str, Decimal] = {}
    for t in transactions:
        if t.type is not transaction_type:
            continue
        totals[t.category] = totals.get(t.category, ZERO) + t.amount
    return [CategoryTotal(category=c, total=v) for c, v in totals.items()]


def compute_trend_series(
    transactions: Iterable[Transaction],
    bucket_count: int = DEFAULT_TREND_BUCKETS,
) -> list[TrendBucket]:
    """
    Income and expense per year-month, oldest first, last N buckets only.

    Buckets are labelled "YYYY/M" but ordered by (year, month) as numbers,
    so 2023/10 correctly follows 2023/9.
    """
    if bucket_count <= 0:
        return []

    buckets: dict[tuple[int, int], TrendBucket] = {}
    for t in transactions:
        key = (t.date.year, t.date.month)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = TrendBucket(
                period=f"{t.date.year}/{t.date.month}",
                year=t.date.year,
                month=t.date.month,
            )
            buckets[key] = bucket
        if t.type is TransactionType.INCOME:
            bucket.income += t.amount
        else:
            bucket.expense += t.amount

    ordered = [buckets[key] for key in sorted(buckets)]
    return ordered[-bucket_count:]


# =============================================================================
# MUTATION RULES
# =============================================================================

def apply_transaction(
    accounts: Sequence[Account],
    transaction: Transaction,
) -> list[Account]:
    """
    Return accounts with the transaction's effect applied to its account.

    Income adds, expense subtracts. If the account does not exist the
    accounts come back unchanged; the transaction is then an orphan,
    which is not an error. The input accounts are never modified.
    """
    updated = []
    for account in accounts:
        if account.id == transaction.account_id:
            account = account.model_copy(
                update={"balance": account.balance + transaction.signed_amount}
            )
        updated.append(account)
    return updated


def invert_transaction(transaction: Transaction) -> Transaction:
    """Same amount, opposite type. Applying it undoes the original."""
    return transaction.model_copy(update={"type": transaction.type.opposite})


def reconcile_stock_price_update(
    stocks: Sequence[StockPosition],
    price_updates: Mapping[str, Decimal],
) -> list[StockPosition]:
    """
    Replace current prices for symbols present in price_updates.

    Positions without an update keep their price. Updates for symbols
    that are not held are ignored. Prices go through the model's
    validation, so a float keeps its printed value and a negative
    price raises ValidationError.
    """
    updated = []
    for stock in stocks:
        if stock.symbol in price_updates:
            stock = StockPosition.model_validate({
                **stock.model_dump(),
                "current_price": Decimal(str(price_updates[stock.symbol])),
            })
        updated.append(stock)
    return updated


# =============================================================================
# VIEW HELPERS
# =============================================================================

def account_name(accounts: Iterable[Account], account_id: str) -> str:
    """Display name for an account id; orphans get a placeholder."""
    for account in accounts:
        if account.id == account_id:
            return account.name
    return UNKNOWN_ACCOUNT_NAME


def filter_transactions(
    transactions: Iterable[Transaction],
    transaction_type: Optional[TransactionType] = None,
) -> list[Transaction]:
    if transaction_type is None:
        return list(transactions)
    return [t for t in transactions if t.type is transaction_type]


def sort_transactions(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Newest first."""
    return sorted(transactions, key=lambda t: t.date, reverse=True)


def summarize_dashboard(
    accounts: Sequence[Account],
    transactions: Sequence[Transaction],
    stocks: Sequence[StockPosition],
    today: date,
) -> DashboardSummary:
    """Figures for the dashboard cards, relative to the given day."""
    return DashboardSummary(
        net_worth=compute_net_worth(accounts, stocks),
        cash_total=sum((a.balance for a in accounts), ZERO),
        monthly=compute_monthly_totals(transactions, today.year, today.month),
        portfolio=compute_unrealized_pl(stocks),
    )
