"""
Tests for the Finance Tracker data models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (with in-memory stores)
3. No real API calls in tests
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from finance_tracker.models import (
    CategoryFilter,
    DebtRecord,
    GoalSetting,
    IncomeRecord,
    LedgerEntry,
    NewEntry,
    Notification,
    NotificationLevel,
    RecordKind,
    UserScope,
    YearMonth,
    parse_instant,
    to_decimal,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestCoercion:
    """Tests for amount and date coercion helpers."""

    def test_to_decimal_from_text(self):
        """Test numeric text converts exactly."""
        assert to_decimal("1250.50") == Decimal("1250.50")

    def test_to_decimal_from_float_uses_string_form(self):
        """Test floats go through their string form (no binary drift)."""
        assert to_decimal(0.1) == Decimal("0.1")

    def test_to_decimal_rejects_text(self):
        """Test non-numeric text is rejected."""
        with pytest.raises(ValueError):
            to_decimal("lots")

    def test_to_decimal_rejects_bool_and_nan(self):
        """Test booleans and non-finite values are rejected."""
        with pytest.raises(ValueError):
            to_decimal(True)
        with pytest.raises(ValueError):
            to_decimal("NaN")

    def test_parse_instant_zulu(self):
        """Test ISO strings with a trailing Z parse as UTC."""
        parsed = parse_instant("2024-01-05T10:00:00Z")
        assert parsed == datetime(2024, 1, 5, 10, tzinfo=timezone.utc)

    def test_parse_instant_date_is_midnight_utc(self):
        """Test plain dates become midnight UTC."""
        assert parse_instant(date(2024, 2, 10)) == datetime(2024, 2, 10, tzinfo=timezone.utc)

    def test_parse_instant_garbage_is_none(self):
        """Test unparsable values return None."""
        assert parse_instant("not a date") is None
        assert parse_instant(12) is None


class TestScopeAndCalendar:
    """Tests for UserScope paths and YearMonth."""

    def test_collection_paths(self):
        """Test the per-user collection layout."""
        scope = UserScope(app_id="app", user_id="u1")
        assert scope.collection_path(RecordKind.DEBTS) == "artifacts/app/users/u1/debts"
        assert scope.collection_path(RecordKind.INCOMES) == "artifacts/app/users/u1/incomes"
        assert scope.settings_path == "artifacts/app/users/u1/settings"

    def test_year_month_contains(self):
        """Test month membership; undated never matches."""
        month = YearMonth(year=2024, month=1)
        assert month.contains(datetime(2024, 1, 31, 23, 59, tzinfo=timezone.utc))
        assert not month.contains(datetime(2024, 2, 1, tzinfo=timezone.utc))
        assert not month.contains(None)

    def test_year_month_str(self):
        """Test YYYY-MM formatting."""
        assert str(YearMonth(year=2024, month=3)) == "2024-03"

    def test_year_month_rejects_bad_month(self):
        """Test month bounds are enforced."""
        with pytest.raises(ValueError):
            YearMonth(year=2024, month=13)


class TestRecordModels:
    """Tests for debt and income records."""

    def test_debt_from_legacy_document(self):
        """Test text amounts and ISO dates decode."""
        debt = DebtRecord.from_document("d1", {
            "name": "Alex",
            "amount": "500",
            "date": "2024-01-05T00:00:00Z",
            "paid": False,
        })
        assert debt.id == "d1"
        assert debt.amount == Decimal("500")
        assert debt.date.month == 1
        assert debt.attachment is None

    def test_unparsable_date_becomes_none(self):
        """Test a broken stored date does not fail decoding."""
        income = IncomeRecord.from_document("i1", {"name": "Gift", "amount": 20, "date": "soon"})
        assert income.date is None

    def test_blank_attachment_fields_mean_none(self):
        """Test empty image strings mean no attachment."""
        debt = DebtRecord.from_document("d1", {"amount": 5, "imageUrl": "", "imagePath": ""})
        assert debt.attachment is None

    def test_attachment_fields_must_be_paired(self):
        """Test URL without path is rejected."""
        with pytest.raises(ValueError):
            DebtRecord.from_document("d1", {"amount": 5, "imageUrl": "https://x/y.png"})

    def test_to_document_round_trip(self):
        """Test the stored shape uses camelCase attachment fields."""
        debt = DebtRecord(
            id="d1",
            name="Alex",
            amount=Decimal("12.50"),
            paid=True,
            imageUrl="https://cdn/x.png",
            imagePath="artifacts/a/users/u/1-x.png",
        )
        document = debt.to_document()
        assert document["amount"] == "12.50"
        assert document["paid"] is True
        assert document["imagePath"] == "artifacts/a/users/u/1-x.png"
        assert DebtRecord.from_document("d1", document) == debt

    def test_records_are_frozen(self):
        """Test snapshot records can't be patched in place."""
        income = IncomeRecord(id="i1", amount=Decimal("1"))
        with pytest.raises(ValueError):
            income.amount = Decimal("2")

    def test_entry_bucket(self):
        """Test each entry maps to exactly one chart bucket."""
        paid = DebtRecord(id="d", amount=Decimal("1"), paid=True)
        unpaid = DebtRecord(id="d", amount=Decimal("1"))
        income = IncomeRecord(id="i", amount=Decimal("1"))
        assert LedgerEntry(kind=RecordKind.DEBTS, record=paid).bucket is CategoryFilter.PAID
        assert LedgerEntry(kind=RecordKind.DEBTS, record=unpaid).bucket is CategoryFilter.OUTSTANDING
        assert LedgerEntry(kind=RecordKind.INCOMES, record=income).bucket is CategoryFilter.INCOME


class TestEntryAndGoal:
    """Tests for NewEntry and GoalSetting constraints."""

    def test_new_entry_rejects_zero_amount(self):
        """Test amounts must be greater than zero."""
        with pytest.raises(ValueError):
            NewEntry(name="Alex", amount=Decimal("0"))

    def test_new_entry_rejects_unparsable_date(self):
        """Test entry dates must parse."""
        with pytest.raises(ValueError):
            NewEntry(name="Alex", amount=Decimal("1"), date="31/31/2024")

    def test_goal_must_be_positive(self):
        """Test the goal is greater than zero."""
        with pytest.raises(ValueError):
            GoalSetting(goal="0")
        assert GoalSetting(goal="6000").goal == Decimal("6000")

    def test_notification_ok(self):
        """Test only ERROR notifications are not ok."""
        assert Notification(level=NotificationLevel.SUCCESS, message="x").ok
        assert Notification(level=NotificationLevel.WARNING, message="x").ok
        assert not Notification(level=NotificationLevel.ERROR, message="x").ok


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            entity_type="debts",
            entity_id="d1",
            description="Created debt",
        )
        assert event.event_type == AuditEventType.RECORD_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.GOAL_UPDATED,
            entity_type="settings",
            entity_id="incomeGoal",
            description="Goal updated",
        )
        row = event.to_sheets_row()
        assert len(row) == 11
        assert row[2] == "goal_updated"

    def test_builder_record_created(self):
        """Test the record-created builder."""
        correlation_id = uuid4()
        event = AuditEventBuilder.record_created(
            kind="debts",
            record_id="d1",
            name="Alex",
            amount="500",
            has_attachment=True,
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.RECORD_CREATED
        assert event.entity_id == "d1"
        assert event.correlation_id == correlation_id

    def test_builder_attachment_delete_failed(self):
        """Test a failed attachment delete records the blob path."""
        event = AuditEventBuilder.attachment_delete_failed(path="a/b.png", error_message="gone")
        assert event.severity == AuditSeverity.ERROR
        assert event.entity_id == "a/b.png"
        assert event.error_message == "gone"
