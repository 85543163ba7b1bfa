"""Read-only aggregation over the ledger."""

from finance_tracker.queries.aggregator import (
    Aggregator,
    cash_flow_trend,
    expenses_by_category,
    net_worth,
    percent_change,
    period_metrics,
)

__all__ = [
    "Aggregator",
    "cash_flow_trend",
    "expenses_by_category",
    "net_worth",
    "percent_change",
    "period_metrics",
]
