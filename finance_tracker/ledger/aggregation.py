"""
Ledger Aggregation Engine

DESIGN DECISION: Aggregation is a pure function of
(debts, incomes, goal, view state). No I/O, no module state, nothing that
blocks. Every recompute starts from the committed snapshot, so running it
twice on the same input gives the same answer and never double counts.

GUARANTEES:
- total_income + outstanding_debt + paid_debt is exactly the sum of every
  scoped amount (Decimal arithmetic, no float drift)
- monthly scope is always a subset of all-time scope
- goal progress stays within [0, 100]
- undated records never match a month but still count all-time
"""

from collections.abc import Callable, Iterable, Sequence
from datetime import date
from decimal import Decimal
from typing import Optional, TypeVar

from finance_tracker.models.ledger import (
    CategoryFilter,
    DebtRecord,
    DebtTrackerSummary,
    GoalSetting,
    IncomeRecord,
    IncomeTrackerSummary,
    LedgerEntry,
    LedgerRecord,
    LedgerSummary,
    LedgerTotals,
    RecordKind,
    ViewMode,
    ViewState,
    YearMonth,
    utc_now,
)


R = TypeVar("R", bound=LedgerRecord)
T = TypeVar("T")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def sort_by_date_desc(items: Iterable[T], date_of: Callable[[T], object] = lambda r: r.date) -> list[T]:
    """
    Newest first. Stable for equal dates; undated items go last.
    """
    items = list(items)
    dated = [item for item in items if date_of(item) is not None]
    undated = [item for item in items if date_of(item) is None]
    dated.sort(key=date_of, reverse=True)
    return dated + undated


def scope_records(
    records: Iterable[R],
    view_mode: ViewMode,
    reference_month: YearMonth,
) -> tuple[R, ...]:
    """Restrict to the reference month in monthly mode; pass through otherwise."""
    if view_mode == ViewMode.MONTHLY:
        return tuple(r for r in records if reference_month.contains(r.date))
    return tuple(records)


def sum_amounts(records: Iterable[LedgerRecord]) -> Decimal:
    return sum((r.amount for r in records), ZERO)


def compute_totals(
    debts: Iterable[DebtRecord],
    incomes: Iterable[IncomeRecord],
) -> LedgerTotals:
    """Partition already-scoped records into the three totals."""
    debts = tuple(debts)
    return LedgerTotals(
        total_income=sum_amounts(incomes),
        outstanding_debt=sum_amounts(d for d in debts if not d.paid),
        paid_debt=sum_amounts(d for d in debts if d.paid),
    )


def filter_entries(
    debts: Sequence[DebtRecord],
    incomes: Sequence[IncomeRecord],
    category_filter: CategoryFilter,
) -> tuple[LedgerEntry, ...]:
    """
    Tag scoped records with their kind and keep the selected category.

    ALL lists incomes then debts before sorting, so equal dates keep that order.
    """
    income_entries = [LedgerEntry(kind=RecordKind.INCOMES, record=i) for i in incomes]
    debt_entries = [LedgerEntry(kind=RecordKind.DEBTS, record=d) for d in debts]

    if category_filter == CategoryFilter.INCOME:
        entries = income_entries
    elif category_filter == CategoryFilter.OUTSTANDING:
        entries = [e for e in debt_entries if not e.record.paid]
    elif category_filter == CategoryFilter.PAID:
        entries = [e for e in debt_entries if e.record.paid]
    else:
        entries = income_entries + debt_entries

    return tuple(sort_by_date_desc(entries, lambda e: e.record.date))


def monthly_total(records: Iterable[LedgerRecord], month: YearMonth) -> Decimal:
    return sum_amounts(r for r in records if month.contains(r.date))


def goal_progress(income: Decimal, goal: GoalSetting) -> Decimal:
    """
    Percentage of the goal reached, clamped to [0, 100].

    GoalSetting guarantees goal > 0.
    """
    progress = income / goal.goal * HUNDRED
    return max(ZERO, min(progress, HUNDRED))


def toggle_filter(current: CategoryFilter, selected: CategoryFilter) -> CategoryFilter:
    """Selecting the active category again clears it back to ALL."""
    if selected == current:
        return CategoryFilter.ALL
    return CategoryFilter(selected)


def aggregate(
    debts: Sequence[DebtRecord],
    incomes: Sequence[IncomeRecord],
    goal: GoalSetting,
    view: ViewState,
) -> LedgerSummary:
    """
    Derive totals, the filtered entry list and goal progress for one view.

    Goal progress always measures the reference month, whatever the view mode.
    """
    scoped_debts = scope_records(debts, view.view_mode, view.reference_month)
    scoped_incomes = scope_records(incomes, view.view_mode, view.reference_month)
    income_this_month = monthly_total(incomes, view.reference_month)

    return LedgerSummary(
        totals=compute_totals(scoped_debts, scoped_incomes),
        entries=filter_entries(scoped_debts, scoped_incomes, view.category_filter),
        monthly_income=income_this_month,
        goal_progress=goal_progress(income_this_month, goal),
    )


def available_years(
    records: Iterable[LedgerRecord],
    today: Optional[date] = None,
) -> list[int]:
    """
    Years offered by the month picker, newest first.

    Spans the earliest record year to the later of the latest record year
    and the current year.
    """
    current_year = (today or utc_now()).year
    years = {r.date.year for r in records if r.date is not None}
    years.add(current_year)
    return list(range(max(years), min(years) - 1, -1))


def summarize_debts(
    debts: Sequence[DebtRecord],
    view_mode: ViewMode,
    reference_month: YearMonth,
) -> DebtTrackerSummary:
    """
    Debt tracker listing: scoped debts newest first, their total, and the
    outstanding total over all debts regardless of scope.
    """
    displayed = tuple(sort_by_date_desc(scope_records(debts, view_mode, reference_month)))
    return DebtTrackerSummary(
        debts=displayed,
        displayed_total=sum_amounts(displayed),
        outstanding_total=sum_amounts(d for d in debts if not d.paid),
    )


def summarize_incomes(
    incomes: Sequence[IncomeRecord],
    goal: GoalSetting,
    view_mode: ViewMode,
    reference_month: YearMonth,
) -> IncomeTrackerSummary:
    """Income tracker listing plus progress towards the monthly goal."""
    displayed = tuple(sort_by_date_desc(scope_records(incomes, view_mode, reference_month)))
    this_month = monthly_total(incomes, reference_month)
    return IncomeTrackerSummary(
        incomes=displayed,
        displayed_total=sum_amounts(displayed),
        monthly_total=this_month,
        goal=goal.goal,
        goal_progress=goal_progress(this_month, goal),
    )
