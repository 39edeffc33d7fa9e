"""
View Projection Layer

Turns aggregation output into what the pages draw: exactly three chart
buckets and a transaction table whose rows point back at their bucket.

DESIGN DECISION: The chart and the table share one identity key per bucket
(CategoryFilter values). Clicking a bar and filtering the table are the
same state change, so they can never disagree.
"""

from collections.abc import Iterable
from typing import Optional, Union

from finance_tracker.ledger.aggregation import aggregate, sort_by_date_desc, toggle_filter
from finance_tracker.models.ledger import (
    CategoryFilter,
    ChartBucket,
    DashboardProjection,
    LedgerEntry,
    LedgerSnapshot,
    LedgerTotals,
    RecordKind,
    TableRow,
    ViewState,
)


# key -> (label, colour); order is the chart order
BUCKETS: dict[CategoryFilter, tuple[str, str]] = {
    CategoryFilter.INCOME: ("Income", "#2dd4bf"),
    CategoryFilter.OUTSTANDING: ("Outstanding Debt", "#f87171"),
    CategoryFilter.PAID: ("Paid Debt", "#4ade80"),
}


def chart_buckets(totals: LedgerTotals, active: CategoryFilter) -> tuple[ChartBucket, ...]:
    """The three aggregate buckets; the one matching the active filter is flagged."""
    values = {
        CategoryFilter.INCOME: totals.total_income,
        CategoryFilter.OUTSTANDING: totals.outstanding_debt,
        CategoryFilter.PAID: totals.paid_debt,
    }
    return tuple(
        ChartBucket(
            key=key,
            label=label,
            value=values[key],
            color=color,
            active=key == active,
        )
        for key, (label, color) in BUCKETS.items()
    )


def bucket_for_label(label: Optional[str]) -> Optional[CategoryFilter]:
    """Map a chart label (as a plotting library reports it) back to its key."""
    for key, (bucket_label, _) in BUCKETS.items():
        if label == bucket_label:
            return key
    return None


def select_bucket(
    view: ViewState,
    key: Union[CategoryFilter, str, None],
) -> ViewState:
    """
    Apply a chart click to the view state.

    A click on a bucket toggles it as the category filter. A click that
    hits no bucket (None or an unknown key) resets the filter to ALL.
    """
    try:
        selected = CategoryFilter(key) if key is not None else None
    except ValueError:
        selected = None

    if selected is None or selected not in BUCKETS:
        new_filter = CategoryFilter.ALL
    else:
        new_filter = toggle_filter(view.category_filter, selected)
    return view.model_copy(update={"category_filter": new_filter})


def table_rows(
    entries: Iterable[LedgerEntry],
    active: CategoryFilter,
) -> tuple[TableRow, ...]:
    """
    Transaction table rows, newest first.

    A row is highlighted when its bucket is the active filter.
    """
    rows = []
    for entry in sort_by_date_desc(entries, lambda e: e.record.date):
        record = entry.record
        bucket = entry.bucket
        rows.append(TableRow(
            id=record.id,
            kind=entry.kind,
            type_label=entry.kind.label,
            name=record.name,
            amount=record.amount,
            date=record.date,
            paid=record.paid if entry.kind is RecordKind.DEBTS else None,
            image_url=record.image_url,
            bucket=bucket,
            highlighted=bucket == active,
        ))
    return tuple(rows)


def project_dashboard(snapshot: LedgerSnapshot, view: ViewState) -> DashboardProjection:
    summary = aggregate(snapshot.debts, snapshot.incomes, snapshot.goal, view)
    return DashboardProjection(
        view=view,
        totals=summary.totals,
        buckets=chart_buckets(summary.totals, view.category_filter),
        rows=table_rows(summary.entries, view.category_filter),
        monthly_income=summary.monthly_income,
        goal_progress=summary.goal_progress,
    )
