"""Derived financial metrics."""

from finance_tracker.aggregation.aggregator import (
    ALL_CATEGORIES,
    add_funds,
    average,
    bill_due_status,
    breakdown_slices,
    budget_status,
    budget_statuses,
    budget_tier,
    category_breakdown,
    dashboard_summary,
    distinct_categories,
    filter_to_period,
    goal_progress,
    monthly_trend,
    net_balance,
    period_bounds,
    search_records,
    sort_records,
    split_bills,
    split_goals,
    total,
)

__all__ = [
    "ALL_CATEGORIES",
    "add_funds",
    "average",
    "bill_due_status",
    "breakdown_slices",
    "budget_status",
    "budget_statuses",
    "budget_tier",
    "category_breakdown",
    "dashboard_summary",
    "distinct_categories",
    "filter_to_period",
    "goal_progress",
    "monthly_trend",
    "net_balance",
    "period_bounds",
    "search_records",
    "sort_records",
    "split_bills",
    "split_goals",
    "total",
]
