"""Aggregation package."""

from expense_tracker.queries.aggregation import (
    filter_by_date,
    group_totals,
    monthly_totals,
    signed_total,
    sum_amounts,
)

__all__ = [
    "filter_by_date",
    "group_totals",
    "monthly_totals",
    "signed_total",
    "sum_amounts",
]
