"""Tests for the ledger aggregation engine."""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from finance_tracker.ledger import (
    aggregate,
    available_years,
    compute_totals,
    filter_entries,
    goal_progress,
    scope_records,
    sort_by_date_desc,
    summarize_debts,
    summarize_incomes,
    toggle_filter,
)
from finance_tracker.models import (
    CategoryFilter,
    DebtRecord,
    GoalSetting,
    IncomeRecord,
    RecordKind,
    ViewMode,
    ViewState,
    YearMonth,
)


JANUARY = YearMonth(year=2024, month=1)


def utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def monthly(month: YearMonth = JANUARY, category: CategoryFilter = CategoryFilter.ALL) -> ViewState:
    return ViewState(reference_month=month, view_mode=ViewMode.MONTHLY, category_filter=category)


def all_time(month: YearMonth = JANUARY, category: CategoryFilter = CategoryFilter.ALL) -> ViewState:
    return ViewState(reference_month=month, view_mode=ViewMode.ALL_TIME, category_filter=category)


class TestScenarios:
    """The reference debt/income scenarios."""

    def test_monthly_january(self, scenario_records):
        """Test monthly view of 2024-01."""
        debts, incomes, goal = scenario_records
        summary = aggregate(debts, incomes, goal, monthly())

        assert summary.totals.total_income == Decimal("1000")
        assert summary.totals.outstanding_debt == Decimal("500")
        assert summary.totals.paid_debt == Decimal("0")
        assert summary.goal_progress == Decimal("50")

    def test_all_time(self, scenario_records):
        """Test the same data across all time."""
        debts, incomes, goal = scenario_records
        summary = aggregate(debts, incomes, goal, all_time())

        assert summary.totals.total_income == Decimal("1000")
        assert summary.totals.outstanding_debt == Decimal("500")
        assert summary.totals.paid_debt == Decimal("300")

    def test_removing_paid_debt(self, scenario_records):
        """Test a recompute without the paid debt drops it from paid totals."""
        debts, incomes, goal = scenario_records
        remaining = tuple(d for d in debts if not d.paid)
        summary = aggregate(remaining, incomes, goal, all_time())
        assert summary.totals.paid_debt == Decimal("0")

    def test_recompute_is_stable(self, scenario_records):
        """Test repeated recomputation never double counts."""
        debts, incomes, goal = scenario_records
        first = aggregate(debts, incomes, goal, all_time())
        second = aggregate(debts, incomes, goal, all_time())
        assert first == second


class TestTotals:
    """Tests for partitioned totals."""

    @pytest.mark.parametrize("view", [monthly(), all_time(), monthly(YearMonth(year=2024, month=2))])
    def test_partition_is_exact(self, scenario_records, view):
        """Test the three totals add up to every scoped amount exactly once."""
        debts, incomes, goal = scenario_records
        summary = aggregate(debts, incomes, goal, view)

        scoped = scope_records(debts, view.view_mode, view.reference_month) + scope_records(
            incomes, view.view_mode, view.reference_month
        )
        assert summary.totals.grand_total == sum((r.amount for r in scoped), Decimal("0"))

    def test_decimal_sums_do_not_drift(self):
        """Test amounts like 0.1 + 0.2 sum exactly."""
        incomes = [
            IncomeRecord(id="a", amount="0.1"),
            IncomeRecord(id="b", amount="0.2"),
        ]
        assert compute_totals([], incomes).total_income == Decimal("0.3")

    def test_empty_input(self):
        """Test no records means zero totals and no entries."""
        summary = aggregate((), (), GoalSetting(goal=Decimal("6000")), all_time())
        assert summary.totals.grand_total == Decimal("0")
        assert summary.entries == ()
        assert summary.goal_progress == Decimal("0")


class TestScoping:
    """Tests for monthly vs all-time scoping."""

    def test_monthly_is_subset_of_all_time(self, scenario_records):
        """Test the monthly scope never contains a record the all-time scope lacks."""
        debts, _, _ = scenario_records
        for month in (JANUARY, YearMonth(year=2024, month=2), YearMonth(year=2023, month=12)):
            month_ids = {d.id for d in scope_records(debts, ViewMode.MONTHLY, month)}
            all_ids = {d.id for d in scope_records(debts, ViewMode.ALL_TIME, month)}
            assert month_ids <= all_ids

    def test_undated_counts_all_time_only(self):
        """Test a record with an unparsable date is excluded from months."""
        income = IncomeRecord.from_document("i1", {"name": "Cash", "amount": "40", "date": "garbage"})
        assert scope_records([income], ViewMode.MONTHLY, JANUARY) == ()
        assert scope_records([income], ViewMode.ALL_TIME, JANUARY) == (income,)

    def test_sort_newest_first_undated_last(self):
        """Test ordering by date, newest first, undated at the end."""
        old = IncomeRecord(id="old", amount=1, date=utc(2023, 5, 1))
        new = IncomeRecord(id="new", amount=1, date=utc(2024, 5, 1))
        undated = IncomeRecord(id="undated", amount=1)
        ordered = sort_by_date_desc([undated, old, new])
        assert [r.id for r in ordered] == ["new", "old", "undated"]


class TestFilters:
    """Tests for category filtering and toggling."""

    def test_filter_outstanding(self, scenario_records):
        """Test OUTSTANDING keeps only unpaid debts."""
        debts, incomes, _ = scenario_records
        entries = filter_entries(debts, incomes, CategoryFilter.OUTSTANDING)
        assert [e.record.id for e in entries] == ["d1"]

    def test_filter_income(self, scenario_records):
        """Test INCOME keeps only incomes."""
        debts, incomes, _ = scenario_records
        entries = filter_entries(debts, incomes, CategoryFilter.INCOME)
        assert [e.kind for e in entries] == [RecordKind.INCOMES]

    def test_filter_all_sorted(self, scenario_records):
        """Test ALL lists everything newest first."""
        debts, incomes, _ = scenario_records
        entries = filter_entries(debts, incomes, CategoryFilter.ALL)
        assert [e.record.id for e in entries] == ["d2", "i1", "d1"]

    @pytest.mark.parametrize("category", [CategoryFilter.INCOME, CategoryFilter.OUTSTANDING, CategoryFilter.PAID])
    def test_toggle_is_involution(self, category):
        """Test selecting the active filter again returns to ALL."""
        active = toggle_filter(CategoryFilter.ALL, category)
        assert active == category
        assert toggle_filter(active, category) == CategoryFilter.ALL

    def test_toggle_switches_between_categories(self):
        """Test selecting a different category replaces the active one."""
        assert toggle_filter(CategoryFilter.PAID, CategoryFilter.INCOME) == CategoryFilter.INCOME


class TestGoalProgress:
    """Tests for goal progress."""

    @pytest.mark.parametrize("income, expected", [
        (Decimal("0"), Decimal("0")),
        (Decimal("1000"), Decimal("50")),
        (Decimal("2000"), Decimal("100")),
        (Decimal("9000"), Decimal("100")),
    ])
    def test_progress_is_clamped(self, income, expected):
        """Test progress stays within 0 and 100."""
        assert goal_progress(income, GoalSetting(goal=Decimal("2000"))) == expected

    def test_progress_uses_reference_month_in_all_time(self, scenario_records):
        """Test progress measures the reference month even in all-time view."""
        debts, incomes, goal = scenario_records
        february = YearMonth(year=2024, month=2)
        summary = aggregate(debts, incomes, goal, all_time(february))
        assert summary.monthly_income == Decimal("0")
        assert summary.goal_progress == Decimal("0")


class TestTrackerSummaries:
    """Tests for the per-page tracker summaries."""

    def test_debt_summary_outstanding_ignores_scope(self, scenario_records):
        """Test outstanding total covers every debt whatever the month."""
        debts, _, _ = scenario_records
        summary = summarize_debts(debts, ViewMode.MONTHLY, YearMonth(year=2024, month=2))
        assert [d.id for d in summary.debts] == ["d2"]
        assert summary.displayed_total == Decimal("300")
        assert summary.outstanding_total == Decimal("500")

    def test_income_summary(self, scenario_records):
        """Test income totals and progress against the goal."""
        _, incomes, goal = scenario_records
        summary = summarize_incomes(incomes, goal, ViewMode.ALL_TIME, JANUARY)
        assert summary.displayed_total == Decimal("1000")
        assert summary.monthly_total == Decimal("1000")
        assert summary.goal == Decimal("2000")
        assert summary.goal_progress == Decimal("50")

    def test_available_years(self, scenario_records):
        """Test the year range spans records through the current year."""
        debts, incomes, _ = scenario_records
        records = [*debts, *incomes, DebtRecord(id="x", amount=1, date=utc(2021, 6, 1))]
        assert available_years(records, today=date(2025, 3, 1)) == [2025, 2024, 2023, 2022, 2021]

    def test_available_years_without_records(self):
        """Test an empty ledger still offers the current year."""
        assert available_years([], today=date(2025, 3, 1)) == [2025]
