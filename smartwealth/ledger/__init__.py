"""Ledger aggregation package."""

from smartwealth.ledger.aggregator import (
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

__all__ = [
    "account_name",
    "apply_transaction",
    "compute_category_breakdown",
    "compute_monthly_totals",
    "compute_net_worth",
    "compute_trend_series",
    "compute_unrealized_pl",
    "filter_transactions",
    "invert_transaction",
    "position_performance",
    "reconcile_stock_price_update",
    "sort_transactions",
    "summarize_dashboard",
]
