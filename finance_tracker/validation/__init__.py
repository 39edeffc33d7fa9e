"""Entry validation package."""

from finance_tracker.validation.validator import EntryValidator, ValidationError

__all__ = ["EntryValidator", "ValidationError"]
