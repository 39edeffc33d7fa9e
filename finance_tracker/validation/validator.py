"""
Entry Validation

Everything the user types is checked here before any store call:
- names must be non-empty
- amounts and the income goal must be numbers greater than zero
- entry dates must parse to a calendar date

IMPORTANT: Validation NEVER silently fixes issues and never coerces a
non-numeric amount downstream. It reports every problem at once so the form
can keep the user's input and show what to correct.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Union

from finance_tracker.models.ledger import (
    NewEntry,
    ValidationIssue,
    parse_instant,
    to_decimal,
)


class ValidationError(ValueError):
    """Caller-supplied values violate an invariant. Carries every issue found."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        super().__init__("; ".join(issue.message for issue in issues))

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.issues]


def _parse_positive(value: Any, field: str, label: str) -> tuple[Optional[Decimal], Optional[ValidationIssue]]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None, ValidationIssue(
            field=field,
            issue_type="missing",
            message=f"{label} is required",
            suggested_fix=f"Enter a {label.lower()} greater than zero",
        )
    try:
        number = to_decimal(value)
    except ValueError:
        return None, ValidationIssue(
            field=field,
            issue_type="invalid_format",
            message=f"{label} must be a number",
            suggested_fix="Use digits only, e.g. 1250.50",
        )
    if number <= 0:
        return None, ValidationIssue(
            field=field,
            issue_type="invalid_value",
            message=f"{label} must be greater than zero",
        )
    return number, None


class EntryValidator:
    """Validates debt/income entry forms and goal edits."""

    def validate_entry(
        self,
        name: Optional[str],
        amount: Any,
        entry_date: Union[str, date, datetime, None] = None,
    ) -> NewEntry:
        """
        Validate a new debt or income entry.

        Args:
            name: Who or what the money is for / from
            amount: Raw amount as typed (text or number)
            entry_date: Optional date; None means "now" at creation time

        Returns:
            A NewEntry ready for the record store

        Raises:
            ValidationError: With one issue per invalid field
        """
        issues = []

        clean_name = (name or "").strip()
        if not clean_name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Name is required",
            ))
        elif len(clean_name) > 200:
            issues.append(ValidationIssue(
                field="name",
                issue_type="invalid_value",
                message="Name must be at most 200 characters",
            ))

        parsed_amount, issue = _parse_positive(amount, "amount", "Amount")
        if issue:
            issues.append(issue)

        parsed_date = None
        if entry_date not in (None, ""):
            parsed_date = parse_instant(entry_date)
            if parsed_date is None:
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="invalid_format",
                    message=f"Date is not a valid calendar date: {entry_date}",
                    suggested_fix="Use the format YYYY-MM-DD",
                ))

        if issues:
            raise ValidationError(issues)

        return NewEntry(name=clean_name, amount=parsed_amount, date=parsed_date)

    def validate_goal(self, value: Any) -> Decimal:
        """
        Validate a monthly income goal.

        Raises:
            ValidationError: If the value is missing, not a number, or <= 0
        """
        goal, issue = _parse_positive(value, "goal", "Goal")
        if issue:
            raise ValidationError([issue])
        return goal

    def get_user_friendly_summary(self, error: ValidationError) -> str:
        """One line per issue, with the suggested fix where there is one."""
        lines = ["Please fix the following:"]
        for issue in error.issues:
            lines.append(f"   • {issue.message}")
            if issue.suggested_fix:
                lines.append(f"     💡 {issue.suggested_fix}")
        return "\n".join(lines)
