"""Ledger aggregation, view projection and dashboard charts (no I/O)."""

from finance_tracker.ledger.aggregation import (
    aggregate,
    available_years,
    compute_totals,
    filter_entries,
    goal_progress,
    monthly_total,
    scope_records,
    sort_by_date_desc,
    summarize_debts,
    summarize_incomes,
    toggle_filter,
)
from finance_tracker.ledger.charts import bar_figure, pie_figure
from finance_tracker.ledger.projection import (
    BUCKETS,
    bucket_for_label,
    chart_buckets,
    project_dashboard,
    select_bucket,
    table_rows,
)

__all__ = [
    "aggregate",
    "available_years",
    "compute_totals",
    "filter_entries",
    "goal_progress",
    "monthly_total",
    "scope_records",
    "sort_by_date_desc",
    "summarize_debts",
    "summarize_incomes",
    "toggle_filter",
    "bar_figure",
    "pie_figure",
    "BUCKETS",
    "bucket_for_label",
    "chart_buckets",
    "project_dashboard",
    "select_bucket",
    "table_rows",
]
