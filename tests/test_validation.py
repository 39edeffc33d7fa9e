"""Tests for entry and goal validation."""

import pytest
from datetime import date
from decimal import Decimal

from finance_tracker.validation import EntryValidator, ValidationError


@pytest.fixture
def validator() -> EntryValidator:
    return EntryValidator()


class TestEntryValidation:
    """Tests for debt/income entry forms."""

    def test_valid_entry(self, validator):
        """Test a well-formed entry passes with exact amounts."""
        entry = validator.validate_entry("  Alex  ", "250.50", date(2024, 1, 5))
        assert entry.name == "Alex"
        assert entry.amount == Decimal("250.50")
        assert entry.date.day == 5

    def test_missing_date_means_now(self, validator):
        """Test no date leaves it for the store to stamp."""
        assert validator.validate_entry("Alex", 10).date is None

    def test_rejects_non_numeric_amount(self, validator):
        """Test text amounts are rejected, not coerced."""
        with pytest.raises(ValidationError) as exc_info:
            validator.validate_entry("Alex", "ten")
        assert exc_info.value.fields == ["amount"]
        assert exc_info.value.issues[0].issue_type == "invalid_format"

    @pytest.mark.parametrize("amount", ["0", "-5", 0, -1.5])
    def test_rejects_non_positive_amount(self, validator, amount):
        """Test amounts must be greater than zero."""
        with pytest.raises(ValidationError):
            validator.validate_entry("Alex", amount)

    def test_reports_every_issue(self, validator):
        """Test all invalid fields are reported together."""
        with pytest.raises(ValidationError) as exc_info:
            validator.validate_entry("", "", "2024-13-45")
        assert set(exc_info.value.fields) == {"name", "amount", "date"}

    def test_rejects_overlong_name(self, validator):
        """Test names are capped at 200 characters."""
        with pytest.raises(ValidationError) as exc_info:
            validator.validate_entry("x" * 201, "1")
        assert exc_info.value.fields == ["name"]


class TestGoalValidation:
    """Tests for the monthly goal editor."""

    def test_valid_goal(self, validator):
        """Test numeric text is accepted."""
        assert validator.validate_goal("7500") == Decimal("7500")

    @pytest.mark.parametrize("value", [None, "", "abc", "0", "-100"])
    def test_invalid_goal(self, validator, value):
        """Test missing, non-numeric and non-positive goals are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            validator.validate_goal(value)
        assert exc_info.value.fields == ["goal"]

    def test_user_friendly_summary(self, validator):
        """Test the summary lists each issue and its fix."""
        with pytest.raises(ValidationError) as exc_info:
            validator.validate_goal("abc")
        summary = validator.get_user_friendly_summary(exc_info.value)
        assert "Goal must be a number" in summary
        assert "1250.50" in summary
